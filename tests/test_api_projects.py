"""
Venture OS
Tests — projects, lifecycle, focus sessions, deployments and the ops feed.
"""

from datetime import UTC, datetime, timedelta

import pytest

from venture_os.models import db
from venture_os.models.project import FocusSession
from venture_os.services import focus_service
from venture_os.services.focus_service import STALE_SESSION_NOTE


@pytest.fixture()
def project(client):
    res = client.post("/api/v1/projects", json={"name": "Brand Refresh"})
    assert res.status_code == 201
    return res.get_json()


# ═════════════════════════════════════════════════════════════════════════════
# PROJECT + LIFECYCLE
# ═════════════════════════════════════════════════════════════════════════════

class TestProjectAPI:
    def test_create_defaults(self, project):
        assert project["status"] == "Understand"
        assert project["progress"] == 0
        assert project["is_frozen"] is False
        assert project["lifecycle"]["current_stage"] == "Requirements"
        assert len(project["lifecycle"]["stage_history"]) == 1

    def test_name_required(self, client):
        assert client.post("/api/v1/projects", json={}).status_code == 400

    def test_unknown_client(self, client):
        res = client.post("/api/v1/projects", json={"name": "X", "client_id": "ghost"})
        assert res.status_code == 404

    def test_get_includes_active_sprint(self, client, project):
        body = client.get(f"/api/v1/projects/{project['id']}").get_json()
        assert body["active_sprint"] is None
        assert body["lifecycle"]["current_stage"] == "Requirements"

    def test_progress_bounds(self, client, project):
        res = client.put(f"/api/v1/projects/{project['id']}", json={"progress": 101})
        assert res.status_code == 400
        res = client.put(f"/api/v1/projects/{project['id']}", json={"progress": 55})
        assert res.get_json()["progress"] == 55

    def test_status_any_to_any(self, client, project):
        res = client.put(f"/api/v1/projects/{project['id']}", json={"status": "Verify"})
        assert res.get_json()["status"] == "Verify"
        res = client.put(f"/api/v1/projects/{project['id']}", json={"status": "Backlog"})
        assert res.get_json()["status"] == "Backlog"
        res = client.put(f"/api/v1/projects/{project['id']}", json={"status": "Shipped"})
        assert res.status_code == 400

    def test_list_by_status(self, client, project):
        client.post("/api/v1/projects", json={"name": "Other"})
        client.put(f"/api/v1/projects/{project['id']}", json={"status": "Implement"})
        body = client.get("/api/v1/projects?status=Implement").get_json()
        assert [p["id"] for p in body["items"]] == [project["id"]]

    def test_delete(self, client, project):
        assert client.delete(f"/api/v1/projects/{project['id']}").status_code == 200
        assert client.get(f"/api/v1/projects/{project['id']}").status_code == 404


class TestLifecycleAPI:
    def test_advance_appends_history(self, client, project):
        url = f"/api/v1/projects/{project['id']}/lifecycle"
        client.post(url, json={"stage": "Building"})
        body = client.post(url, json={"stage": "Testing"}).get_json()
        assert body["current_stage"] == "Testing"
        assert [h["stage"] for h in body["stage_history"]] == ["Requirements", "Building", "Testing"]
        assert body["completed_at"] is None

    def test_same_stage_is_noop(self, client, project):
        url = f"/api/v1/projects/{project['id']}/lifecycle"
        body = client.post(url, json={"stage": "Requirements"}).get_json()
        assert len(body["stage_history"]) == 1

    def test_maintenance_completes(self, client, project):
        url = f"/api/v1/projects/{project['id']}/lifecycle"
        body = client.post(url, json={"stage": "Maintenance"}).get_json()
        assert body["completed_at"] is not None

    def test_invalid_stage(self, client, project):
        url = f"/api/v1/projects/{project['id']}/lifecycle"
        assert client.post(url, json={"stage": "Launch"}).status_code == 400
        assert client.post(url, json={}).status_code == 400


# ═════════════════════════════════════════════════════════════════════════════
# FOCUS SESSIONS
# ═════════════════════════════════════════════════════════════════════════════

class TestFocusSessions:
    def test_enter_focus_reuses_open_session(self, client, project):
        url = f"/api/v1/projects/{project['id']}/focus-sessions"
        first = client.post(url, json={"user_id": "u1"}).get_json()
        second = client.post(url, json={"user_id": "u1"}).get_json()
        assert first["id"] == second["id"]
        assert first["ended_at"] is None

    def test_end_and_last(self, client, project):
        base = f"/api/v1/projects/{project['id']}/focus-sessions"
        session = client.post(base, json={}).get_json()
        client.post(f"/api/v1/focus-sessions/{session['id']}/tasks-completed")
        client.post(f"/api/v1/focus-sessions/{session['id']}/tasks-completed")
        ended = client.post(
            f"/api/v1/focus-sessions/{session['id']}/end", json={"notes": "Good run"}
        ).get_json()
        assert ended["tasks_completed"] == 2
        assert ended["session_notes"] == "Good run"
        assert ended["ended_at"] is not None

        assert client.get(f"{base}/active").status_code == 404
        assert client.get(f"{base}/last").get_json()["id"] == session["id"]

    def test_stale_session_closed_at_midnight(self, project):
        now = datetime(2026, 3, 10, 9, 30, tzinfo=UTC)
        stale = FocusSession(project_id=project["id"], started_at=now - timedelta(days=1))
        db.session.add(stale)
        db.session.commit()

        session, err = focus_service.get_or_create_session(project["id"], now=now)
        assert err is None
        assert session.id != stale.id
        db.session.refresh(stale)
        assert stale.session_notes == STALE_SESSION_NOTE
        assert stale.ended_at.replace(tzinfo=UTC) == datetime(2026, 3, 10, tzinfo=UTC)

    def test_unknown_project(self, client):
        res = client.post("/api/v1/projects/ghost/focus-sessions", json={})
        assert res.status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# DEPLOYMENTS
# ═════════════════════════════════════════════════════════════════════════════

class TestDeploymentAPI:
    def test_crud(self, client, project):
        res = client.post("/api/v1/deployments", json={
            "project_id": project["id"], "label": "Production", "url": "https://brand.example",
        })
        assert res.status_code == 201
        dep = res.get_json()
        assert dep["environment"] == "Vercel"
        assert dep["status"] == "healthy"

        body = client.put(f"/api/v1/deployments/{dep['id']}", json={
            "status": "down", "metadata": {"code": 502},
        }).get_json()
        assert body["status"] == "down"
        assert body["metadata"] == {"code": 502}

        listed = client.get(f"/api/v1/deployments?project_id={project['id']}").get_json()
        assert listed["total"] == 1
        assert client.delete(f"/api/v1/deployments/{dep['id']}").status_code == 200

    def test_label_required(self, client, project):
        res = client.post("/api/v1/deployments", json={"project_id": project["id"]})
        assert res.status_code == 400

    def test_invalid_environment(self, client, project):
        res = client.post("/api/v1/deployments", json={
            "project_id": project["id"], "label": "Prod", "environment": "Heroku",
        })
        assert res.status_code == 400


# ═════════════════════════════════════════════════════════════════════════════
# OPS FEED + CONFIG
# ═════════════════════════════════════════════════════════════════════════════

class TestOpsFeed:
    def test_audit_log(self, client, project):
        res = client.post("/api/v1/audit-logs", json={
            "message": "Deployed v2", "project_id": project["id"],
        })
        assert res.status_code == 201
        assert res.get_json()["level"] == "Info"
        assert res.get_json()["source"] == "system"

        body = client.get(f"/api/v1/audit-logs?project_id={project['id']}").get_json()
        assert [e["message"] for e in body["items"]] == ["Deployed v2"]

    def test_audit_log_validation(self, client):
        assert client.post("/api/v1/audit-logs", json={"message": ""}).status_code == 400
        res = client.post("/api/v1/audit-logs", json={"message": "x", "level": "Debug"})
        assert res.status_code == 400

    def test_report_resolve(self, client):
        report = client.post("/api/v1/agent-reports", json={
            "title": "Invoice overdue", "severity": "warning",
        }).get_json()
        assert report["is_resolved"] is False

        body = client.post(f"/api/v1/agent-reports/{report['id']}/resolve").get_json()
        assert body["is_resolved"] is True
        assert body["resolved_at"] is not None

        assert client.get("/api/v1/agent-reports?resolved=false").get_json()["total"] == 0
        assert client.get("/api/v1/agent-reports?resolved=true").get_json()["total"] == 1

    def test_report_bad_severity(self, client):
        res = client.post("/api/v1/agent-reports", json={"title": "x", "severity": "urgent"})
        assert res.status_code == 400


class TestSystemConfig:
    def test_upsert(self, client):
        res = client.put("/api/v1/system-config/focus_hours", json={"value": {"start": 9}})
        assert res.status_code == 201
        res = client.put("/api/v1/system-config/focus_hours", json={"value": {"start": 10}})
        assert res.status_code == 200
        assert client.get("/api/v1/system-config/focus_hours").get_json()["value"] == {"start": 10}
        assert client.get("/api/v1/system-config").get_json()["total"] == 1

    def test_value_required(self, client):
        assert client.put("/api/v1/system-config/theme", json={}).status_code == 400

    def test_delete(self, client):
        client.put("/api/v1/system-config/theme", json={"value": "dark"})
        assert client.delete("/api/v1/system-config/theme").status_code == 200
        assert client.get("/api/v1/system-config/theme").status_code == 404
