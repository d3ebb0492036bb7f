"""
Venture OS
Tests — agent sync bridge.

Covers:
    - Shared-secret auth (header, bearer, service-role key)
    - GET snapshot (current + legacy)
    - POST batched push: bulk inserts, per-row updates, automator triggers
    - Workspace clear
"""

from venture_os.models import db
from venture_os.models.client import Client
from venture_os.models.ops import AgentReport, AuditLog, Deployment, SystemConfig
from venture_os.models.pipeline import Contract
from venture_os.models.project import Project, Task
from venture_os.services import pipeline_service, project_service, sprint_service, sync_service
from venture_os.services import task_rules

SERVICE_ROLE_KEY = "test-service-role-key"


def _create_client(name="Acme", **kw):
    client, err = pipeline_service.create_client({"name": name, **kw})
    assert err is None
    db.session.commit()
    return client


def _create_project(name="Portal", **kw):
    project, err = project_service.create_project({"name": name, **kw})
    assert err is None
    db.session.commit()
    return project


def _create_task(project, title="Wire login"):
    task, err = task_rules.create_task({"project_id": project.id, "title": title})
    assert err is None
    db.session.commit()
    return task


def _push(client, headers, payload, url="/api/os/sync"):
    res = client.post(url, json=payload, headers=headers)
    assert res.status_code == 200, res.get_json()
    body = res.get_json()
    assert body["success"] is True
    return body["results"]


# ═════════════════════════════════════════════════════════════════════════════
# AUTH
# ═════════════════════════════════════════════════════════════════════════════

class TestAgentAuth:
    def test_missing_key(self, client):
        res = client.get("/api/os/sync")
        assert res.status_code == 401
        body = res.get_json()
        assert body["success"] is False
        assert body["error"].startswith("Missing authentication")
        assert "timestamp" in body

    def test_wrong_key(self, client):
        res = client.get("/api/os/sync", headers={"X-AGENT-API-KEY": "nope"})
        assert res.status_code == 401
        assert res.get_json()["error"] == "Invalid API key."

    def test_bearer_service_role(self, client):
        res = client.get("/api/os/sync", headers={"Authorization": f"Bearer {SERVICE_ROLE_KEY}"})
        assert res.status_code == 200

    def test_empty_bearer(self, client):
        res = client.get("/api/os/sync", headers={"Authorization": "Bearer "})
        assert res.status_code == 401

    def test_seed_requires_auth(self, client):
        res = client.post("/api/agent/seed", json={"action": "clear"})
        assert res.status_code == 401


# ═════════════════════════════════════════════════════════════════════════════
# PULL
# ═════════════════════════════════════════════════════════════════════════════

class TestSnapshot:
    def test_full_snapshot(self, client, agent_headers):
        _create_client()
        project = _create_project()
        _create_task(project)
        db.session.add(SystemConfig(key="focus_mode", value={"enabled": True}))
        db.session.commit()

        body = client.get("/api/os/sync", headers=agent_headers).get_json()
        for key in ("clients", "opportunities", "active_contracts", "projects",
                    "tasks", "deployments", "config"):
            assert key in body
        assert [c["name"] for c in body["clients"]] == ["Acme"]
        assert [p["name"] for p in body["projects"]] == ["Portal"]
        assert len(body["tasks"]) == 1
        assert body["config"][0]["value"] == {"enabled": True}

    def test_active_contracts_only(self, client, agent_headers):
        c = _create_client()
        db.session.add_all([
            Contract(client_id=c.id, title="Live", status="Active", total_value=100),
            Contract(client_id=c.id, title="Pending", status="Draft", total_value=50),
        ])
        db.session.commit()
        body = client.get("/api/os/sync", headers=agent_headers).get_json()
        assert [k["title"] for k in body["active_contracts"]] == ["Live"]

    def test_legacy_snapshot(self, client, agent_headers):
        _create_project()
        body = client.get("/api/agent/sync", headers=agent_headers).get_json()
        assert "projects" in body and "tasks" in body and "config" in body
        assert "clients" not in body


# ═════════════════════════════════════════════════════════════════════════════
# PUSH
# ═════════════════════════════════════════════════════════════════════════════

class TestPush:
    def test_body_must_be_object(self, client, agent_headers):
        res = client.post("/api/os/sync", json=[1, 2], headers=agent_headers)
        assert res.status_code == 400
        assert res.get_json()["error"] == "Request body must be a JSON object."

    def test_empty_push(self, client, agent_headers):
        assert _push(client, agent_headers, {}) == {}

    def test_audit_logs_inserted(self, client, agent_headers):
        results = _push(client, agent_headers, {"audit_logs": [
            {"level": "Info", "message": "Nightly audit done"},
            {"level": "Warning", "message": "Disk at 80%"},
        ]})
        assert results["audit_logs"] == {"inserted": 2}
        assert {entry.source for entry in AuditLog.query.all()} == {"agent"}

    def test_audit_batch_is_atomic(self, client, agent_headers):
        results = _push(client, agent_headers, {"audit_logs": [
            {"level": "Info", "message": "ok"},
            {"level": "Loud", "message": "bad level"},
        ]})
        assert "error" in results["audit_logs"]
        assert AuditLog.query.count() == 0

    def test_non_list_key(self, client, agent_headers):
        results = _push(client, agent_headers, {"audit_logs": "nope"})
        assert results["audit_logs"] == {"error": "audit_logs must be a list of objects"}

    def test_project_updates_per_row(self, client, agent_headers):
        project = _create_project()
        results = _push(client, agent_headers, {"project_updates": [
            {"id": project.id, "progress": 40},
            {"id": "missing", "progress": 10},
            {"id": project.id, "progress": 140},
        ]})
        rows = results["project_updates"]
        assert rows[0] == {"id": project.id, "success": True, "error": None}
        assert rows[1]["success"] is False
        assert "not found" in rows[1]["error"]
        assert rows[2]["error"] == "progress must be between 0 and 100"
        assert db.session.get(Project, project.id).progress == 40

    def test_task_updates(self, client, agent_headers):
        project = _create_project()
        task = _create_task(project)
        results = _push(client, agent_headers, {"task_updates": [
            {"id": task.id, "title": "Wire SSO login"},
        ]})
        assert results["task_updates"][0]["success"] is True
        body = client.get(f"/api/v1/tasks/{task.id}").get_json()
        assert body["title"] == "Wire SSO login"

    def test_task_updates_bad_due_date(self, client, agent_headers):
        project = _create_project()
        task = _create_task(project)
        results = _push(client, agent_headers, {"task_updates": [
            {"id": task.id, "due_date": "31/31/2030", "title": "Renamed"},
        ]})
        row = results["task_updates"][0]
        assert row["success"] is False
        assert "due_date" in row["error"]
        stored = db.session.get(Task, task.id)
        assert stored.due_date is None
        assert stored.title == "Wire login"

    def test_task_updates_sprint_and_current(self, client, agent_headers):
        project = _create_project()
        task = _create_task(project)
        other = _create_task(project, "Write docs")
        other.is_current = True
        db.session.commit()
        sprint, err = sprint_service.create_sprint(project.id, {"planned_end_at": "2030-01-01T00:00:00Z"})
        assert err is None
        db.session.commit()

        results = _push(client, agent_headers, {"task_updates": [
            {"id": task.id, "sprint_id": sprint.id, "is_current": True, "colour": "red"},
        ]})
        row = results["task_updates"][0]
        assert row["success"] is True
        assert row["ignored"] == ["colour"]

        assert db.session.get(Task, task.id).sprint_id == sprint.id
        assert db.session.get(Task, task.id).is_current is True
        assert db.session.get(Task, other.id).is_current is False

        results = _push(client, agent_headers, {"task_updates": [
            {"id": task.id, "is_current": False, "sprint_id": None},
        ]})
        assert results["task_updates"][0] == {"id": task.id, "success": True, "error": None}
        assert db.session.get(Task, task.id).is_current is False
        assert db.session.get(Task, task.id).sprint_id is None

    def test_project_updates_report_unknown_keys(self, client, agent_headers):
        project = _create_project()
        results = _push(client, agent_headers, {"project_updates": [
            {"id": project.id, "progress": 20, "budget": 5000, "owner": "sam"},
        ]})
        row = results["project_updates"][0]
        assert row["success"] is True
        assert row["ignored"] == ["budget", "owner"]
        assert db.session.get(Project, project.id).progress == 20

    def test_unexpected_failure_returns_envelope(self, client, agent_headers, monkeypatch):
        project = _create_project()

        def explode(payload, keys):
            raise RuntimeError("boom")

        monkeypatch.setattr(sync_service, "process_push", explode)
        res = client.post("/api/os/sync", json={"project_updates": [
            {"id": project.id, "progress": 30},
        ]}, headers=agent_headers)
        assert res.status_code == 500
        body = res.get_json()
        assert body["success"] is False
        assert body["error"] == "Internal sync error"
        assert db.session.get(Project, project.id).progress == 0

    def test_client_health_files_report(self, client, agent_headers):
        c = _create_client()
        results = _push(client, agent_headers, {"client_health": [
            {"id": c.id, "health_score": 40, "reason": "Missed two invoices"},
        ]})
        assert results["client_health"][0]["success"] is True
        assert db.session.get(Client, c.id).health_score == 40
        report = AgentReport.query.one()
        assert report.title == "Health score → 40%"
        assert report.severity == "critical"
        assert report.report_type == "health_adjustment"

    def test_client_health_out_of_range(self, client, agent_headers):
        c = _create_client()
        results = _push(client, agent_headers, {"client_health": [
            {"id": c.id, "health_score": 150},
        ]})
        assert results["client_health"][0]["error"] == "health_score must be <= 100"
        assert db.session.get(Client, c.id).health_score == 100

    def test_agent_reports(self, client, agent_headers):
        results = _push(client, agent_headers, {"agent_reports": [
            {"title": "Weekly digest", "body": "All green", "severity": "info"},
        ]})
        assert results["agent_reports"] == {"inserted": 1}

    def test_deployment_insert_and_update(self, client, agent_headers):
        project = _create_project()
        results = _push(client, agent_headers, {"deployment_status": [
            {"project_id": project.id, "label": "Production", "status": "down"},
        ]})
        row = results["deployment_status"][0]
        assert row["success"] is True
        assert row["inserted"] == 1
        deployment = db.session.get(Deployment, row["id"])
        assert deployment.status == "down"

        results = _push(client, agent_headers, {"deployment_status": [
            {"id": deployment.id, "status": "healthy", "metadata": {"latency_ms": 120}},
        ]})
        assert results["deployment_status"][0]["success"] is True
        body = client.get(f"/api/v1/deployments/{deployment.id}").get_json()
        assert body["status"] == "healthy"
        assert body["metadata"] == {"latency_ms": 120}

    def test_deployment_unknown_id(self, client, agent_headers):
        results = _push(client, agent_headers, {"deployment_status": [
            {"id": "ghost", "status": "down"},
        ]})
        assert results["deployment_status"][0]["success"] is False

    def test_opportunity_won_runs_automator(self, client, agent_headers):
        c = _create_client()
        opp, _ = pipeline_service.create_opportunity({"client_id": c.id, "title": "CRM"})
        db.session.commit()
        results = _push(client, agent_headers, {"opportunity_updates": [
            {"id": opp.id, "stage": "Won"},
        ]})
        assert results["opportunity_updates"][0]["success"] is True
        assert [p.name for p in Project.query.all()] == ["CRM — Build"]

    def test_contract_activation_bumps_health(self, client, agent_headers):
        c = _create_client(health_score=60)
        contract, _ = pipeline_service.create_contract({"client_id": c.id, "title": "Retainer"})
        db.session.commit()
        _push(client, agent_headers, {"contract_updates": [
            {"id": contract.id, "status": "Active"},
        ]})
        assert db.session.get(Client, c.id).health_score == 65


    def test_legacy_push_ignores_newer_keys(self, client, agent_headers):
        c = _create_client()
        results = _push(client, agent_headers, {
            "audit_logs": [{"level": "Info", "message": "hello"}],
            "client_health": [{"id": c.id, "health_score": 10}],
        }, url="/api/agent/sync")
        assert list(results) == ["audit_logs"]
        assert db.session.get(Client, c.id).health_score == 100


# ═════════════════════════════════════════════════════════════════════════════
# SEED
# ═════════════════════════════════════════════════════════════════════════════

class TestSeed:
    def test_clear(self, client, agent_headers):
        _create_client()
        project = _create_project()
        _create_task(project)
        db.session.add(SystemConfig(key="theme", value="dark"))
        db.session.commit()

        res = client.post("/api/agent/seed", json={"action": "clear"}, headers=agent_headers)
        assert res.status_code == 200
        body = res.get_json()
        assert body["message"] == "Workspace cleared."
        assert body["deleted"]["clients"] == 1
        assert body["deleted"]["tasks"] == 1
        assert Project.query.count() == 0
        assert SystemConfig.query.count() == 1

    def test_invalid_action(self, client, agent_headers):
        res = client.post("/api/agent/seed", json={"action": "reset"}, headers=agent_headers)
        assert res.status_code == 400
        assert res.get_json()["error"] == "Invalid action."
