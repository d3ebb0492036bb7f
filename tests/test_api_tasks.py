"""
Venture OS
Tests — task API (CRUD, flow board, subtasks, dependencies).
"""

import pytest


@pytest.fixture()
def project(client):
    res = client.post("/api/v1/projects", json={"name": "Flow Board"})
    assert res.status_code == 201
    return res.get_json()


def _create_task(client, project_id, title="Task", **kw):
    res = client.post("/api/v1/tasks", json={"project_id": project_id, "title": title, **kw})
    assert res.status_code == 201, res.get_json()
    return res.get_json()


# ═════════════════════════════════════════════════════════════════════════════
# CRUD
# ═════════════════════════════════════════════════════════════════════════════

class TestTaskCrud:
    def test_create_defaults(self, client, project):
        task = _create_task(client, project["id"])
        assert task["status"] == "Todo"
        assert task["priority"] == "Medium"
        assert task["type"] == "Implementation"
        assert task["subtasks"] == []
        assert task["subtask_progress"] == 0
        assert task["is_current"] is False

    def test_title_required(self, client, project):
        res = client.post("/api/v1/tasks", json={"project_id": project["id"], "title": " "})
        assert res.status_code == 400

    def test_invalid_priority(self, client, project):
        res = client.post("/api/v1/tasks", json={
            "project_id": project["id"], "title": "x", "priority": "Urgent",
        })
        assert res.status_code == 400

    def test_unknown_project(self, client):
        res = client.post("/api/v1/tasks", json={"project_id": "nope", "title": "x"})
        assert res.status_code == 404

    def test_personal_task(self, client):
        res = client.post("/api/v1/tasks", json={"title": "Renew passport"})
        assert res.status_code == 201
        assert res.get_json()["project_id"] is None

    def test_filters(self, client, project):
        _create_task(client, project["id"], "a", priority="High")
        _create_task(client, project["id"], "b")
        body = client.get(f"/api/v1/tasks?project_id={project['id']}&priority=High").get_json()
        assert [t["title"] for t in body["items"]] == ["a"]
        body = client.get("/api/v1/tasks?backlog=true").get_json()
        assert body["total"] == 2

    def test_update_to_done_stamps_completed(self, client, project):
        task = _create_task(client, project["id"])
        res = client.put(f"/api/v1/tasks/{task['id']}", json={"status": "Done"})
        assert res.get_json()["completed_at"] is not None
        res = client.put(f"/api/v1/tasks/{task['id']}", json={"status": "Todo"})
        assert res.get_json()["completed_at"] is None

    def test_unparseable_due_date_keeps_stored_value(self, client, project):
        task = _create_task(client, project["id"], due_date="2030-05-01T09:00:00Z")
        res = client.put(f"/api/v1/tasks/{task['id']}", json={"due_date": "not-a-date"})
        assert res.status_code == 400
        assert "due_date" in res.get_json()["error"]
        stored = client.get(f"/api/v1/tasks/{task['id']}").get_json()["due_date"]
        assert stored.startswith("2030-05-01T09:00:00")

    def test_empty_due_date_clears(self, client, project):
        task = _create_task(client, project["id"], due_date="2030-05-01T09:00:00Z")
        res = client.put(f"/api/v1/tasks/{task['id']}", json={"due_date": ""})
        assert res.status_code == 200
        assert res.get_json()["due_date"] is None

    def test_delete(self, client, project):
        task = _create_task(client, project["id"])
        assert client.delete(f"/api/v1/tasks/{task['id']}").status_code == 200
        assert client.get(f"/api/v1/tasks/{task['id']}").status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# FLOW
# ═════════════════════════════════════════════════════════════════════════════

class TestFlowActions:
    def test_single_current_task(self, client, project):
        a = _create_task(client, project["id"], "a")
        b = _create_task(client, project["id"], "b")
        client.post(f"/api/v1/tasks/{a['id']}/current", json={"project_id": project["id"]})
        client.post(f"/api/v1/tasks/{b['id']}/current", json={"project_id": project["id"]})

        current = client.get(f"/api/v1/projects/{project['id']}/current-task").get_json()
        assert current["task"]["id"] == b["id"]
        assert client.get(f"/api/v1/tasks/{a['id']}").get_json()["is_current"] is False

        client.delete(f"/api/v1/projects/{project['id']}/current-task")
        current = client.get(f"/api/v1/projects/{project['id']}/current-task").get_json()
        assert current["task"] is None

    def test_current_task_wrong_project(self, client, project):
        task = _create_task(client, project["id"])
        res = client.post(f"/api/v1/tasks/{task['id']}/current", json={"project_id": "other"})
        assert res.status_code == 404

    def test_skip(self, client, project):
        task = _create_task(client, project["id"])
        client.post(f"/api/v1/tasks/{task['id']}/current", json={"project_id": project["id"]})
        body = client.post(f"/api/v1/tasks/{task['id']}/skip").get_json()
        assert body["skip_count"] == 1
        assert body["is_current"] is False

    def test_block_requires_reason(self, client, project):
        task = _create_task(client, project["id"])
        assert client.post(f"/api/v1/tasks/{task['id']}/block", json={}).status_code == 400
        body = client.post(
            f"/api/v1/tasks/{task['id']}/block", json={"reason": "Waiting on DNS"}
        ).get_json()
        assert body["status"] == "Blocked"
        assert body["block_reason"] == "Waiting on DNS"

    def test_complete_suggests_next(self, client, project):
        first = _create_task(client, project["id"], "first")
        second = _create_task(client, project["id"], "second")
        body = client.post(f"/api/v1/tasks/{first['id']}/complete").get_json()
        assert body["task"]["status"] == "Done"
        assert body["next_task"]["id"] == second["id"]

        body = client.post(f"/api/v1/tasks/{second['id']}/complete").get_json()
        assert body["next_task"] is None

    def test_next_task_excludes(self, client, project):
        only = _create_task(client, project["id"])
        body = client.get(
            f"/api/v1/projects/{project['id']}/next-task?exclude={only['id']}"
        ).get_json()
        assert body["task"] is None

    def test_status_patch(self, client, project):
        task = _create_task(client, project["id"])
        assert client.patch(f"/api/v1/tasks/{task['id']}/status", json={}).status_code == 400
        res = client.patch(f"/api/v1/tasks/{task['id']}/status", json={"status": "In Progress"})
        assert res.get_json()["status"] == "In Progress"
        res = client.patch(f"/api/v1/tasks/{task['id']}/status", json={"status": "Paused"})
        assert res.status_code == 400

    def test_log_time_accumulates(self, client, project):
        task = _create_task(client, project["id"])
        client.post(f"/api/v1/tasks/{task['id']}/time", json={"minutes": 25})
        body = client.post(f"/api/v1/tasks/{task['id']}/time", json={"minutes": 20}).get_json()
        assert body["time_spent_minutes"] == 45
        res = client.post(f"/api/v1/tasks/{task['id']}/time", json={"minutes": 0})
        assert res.status_code == 400

    def test_move_to_sprint_and_back(self, client, project):
        task = _create_task(client, project["id"])
        sprint = client.post(
            f"/api/v1/projects/{project['id']}/sprints",
            json={"goal": "S1", "planned_end_at": "2030-01-01T00:00:00Z"},
        ).get_json()
        body = client.put(f"/api/v1/tasks/{task['id']}/sprint", json={"sprint_id": sprint["id"]}).get_json()
        assert body["sprint_id"] == sprint["id"]
        body = client.put(f"/api/v1/tasks/{task['id']}/sprint", json={"sprint_id": None}).get_json()
        assert body["sprint_id"] is None


# ═════════════════════════════════════════════════════════════════════════════
# SUBTASKS
# ═════════════════════════════════════════════════════════════════════════════

class TestSubtaskAPI:
    def test_checklist(self, client, project):
        task = _create_task(client, project["id"])
        base = f"/api/v1/tasks/{task['id']}/subtasks"

        res = client.post(base, json={"title": "Draft copy"})
        assert res.status_code == 201
        client.post(base, json={"title": "Review copy"})
        subtasks = client.post(base, json={"title": "Publish"}).get_json()["subtasks"]
        assert [s["title"] for s in subtasks] == ["Draft copy", "Review copy", "Publish"]

        client.patch(f"{base}/{subtasks[0]['id']}", json={"completed": True})
        body = client.get(f"/api/v1/tasks/{task['id']}").get_json()
        assert body["subtask_progress"] == 33

        remaining = client.delete(f"{base}/{subtasks[2]['id']}").get_json()["subtasks"]
        assert len(remaining) == 2
        assert client.get(f"/api/v1/tasks/{task['id']}").get_json()["subtask_progress"] == 50

    def test_blank_title(self, client, project):
        task = _create_task(client, project["id"])
        res = client.post(f"/api/v1/tasks/{task['id']}/subtasks", json={"title": ""})
        assert res.status_code == 400

    def test_replace_list(self, client, project):
        task = _create_task(client, project["id"])
        body = client.put(f"/api/v1/tasks/{task['id']}/subtasks", json={"subtasks": [
            {"id": "b", "title": "Second", "completed": True},
            {"id": "a", "title": "First"},
        ]}).get_json()
        assert [s["id"] for s in body["subtasks"]] == ["b", "a"]
        assert body["subtask_progress"] == 50
        res = client.put(f"/api/v1/tasks/{task['id']}/subtasks", json={"subtasks": "x"})
        assert res.status_code == 400

    def test_replace_list_rejects_non_objects(self, client, project):
        task = _create_task(client, project["id"])
        for bad in (["a"], [{"title": "ok"}, 3], [None]):
            res = client.put(f"/api/v1/tasks/{task['id']}/subtasks", json={"subtasks": bad})
            assert res.status_code == 400
            assert res.get_json()["error"] == "subtasks must be a list of objects"
        assert client.get(f"/api/v1/tasks/{task['id']}").get_json()["subtasks"] == []

    def test_replace_list_assigns_missing_ids(self, client, project):
        task = _create_task(client, project["id"])
        body = client.put(f"/api/v1/tasks/{task['id']}/subtasks", json={"subtasks": [
            {"title": "No id"}, {"id": "", "title": "Blank id"},
        ]}).get_json()
        ids = [s["id"] for s in body["subtasks"]]
        assert all(ids)
        assert len(set(ids)) == 2
        toggled = client.patch(
            f"/api/v1/tasks/{task['id']}/subtasks/{ids[0]}", json={"completed": True},
        ).get_json()["subtasks"]
        assert toggled[0]["completed"] is True


# ═════════════════════════════════════════════════════════════════════════════
# DEPENDENCIES
# ═════════════════════════════════════════════════════════════════════════════

class TestDependencyAPI:
    def test_can_start_follows_predecessor(self, client, project):
        schema = _create_task(client, project["id"], "Schema")
        api = _create_task(client, project["id"], "API")

        res = client.post(f"/api/v1/tasks/{api['id']}/dependencies",
                          json={"depends_on_task_id": schema["id"]})
        assert res.status_code == 201
        dep = res.get_json()

        assert client.get(f"/api/v1/tasks/{api['id']}/can-start").get_json()["can_start"] is False
        client.post(f"/api/v1/tasks/{schema['id']}/complete")
        assert client.get(f"/api/v1/tasks/{api['id']}/can-start").get_json()["can_start"] is True

        listed = client.get(f"/api/v1/tasks/{api['id']}/dependencies").get_json()
        assert listed["total"] == 1
        assert client.delete(f"/api/v1/task-dependencies/{dep['id']}").status_code == 200
        assert client.get(f"/api/v1/tasks/{api['id']}/dependencies").get_json()["total"] == 0

    def test_self_and_duplicate(self, client, project):
        a = _create_task(client, project["id"], "a")
        b = _create_task(client, project["id"], "b")
        url = f"/api/v1/tasks/{a['id']}/dependencies"
        assert client.post(url, json={"depends_on_task_id": a["id"]}).status_code == 400
        assert client.post(url, json={"depends_on_task_id": b["id"]}).status_code == 201
        assert client.post(url, json={"depends_on_task_id": b["id"]}).status_code == 409

    def test_missing_body(self, client, project):
        a = _create_task(client, project["id"])
        res = client.post(f"/api/v1/tasks/{a['id']}/dependencies", json={})
        assert res.status_code == 400
