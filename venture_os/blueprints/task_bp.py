"""
Venture OS
Task blueprint — task CRUD and the flow-board actions.

Endpoints:
    TASK         /api/v1/tasks                                  GET, POST
                 /api/v1/tasks/<id>                             GET, PUT, DELETE

    FLOW         /api/v1/tasks/<id>/current                     POST
                 /api/v1/projects/<pid>/current-task            GET, DELETE
                 /api/v1/projects/<pid>/next-task               GET
                 /api/v1/tasks/<id>/skip                        POST
                 /api/v1/tasks/<id>/block                       POST   { reason }
                 /api/v1/tasks/<id>/complete                    POST
                 /api/v1/tasks/<id>/status                      PATCH  { status }
                 /api/v1/tasks/<id>/time                        POST   { minutes }
                 /api/v1/tasks/<id>/sprint                      PUT    { sprint_id | null }

    SUBTASKS     /api/v1/tasks/<id>/subtasks                    POST, PUT
                 /api/v1/tasks/<id>/subtasks/<sid>              PATCH, DELETE

    DEPENDENCY   /api/v1/tasks/<id>/dependencies                GET, POST
                 /api/v1/tasks/<id>/can-start                   GET
                 /api/v1/task-dependencies/<id>                 DELETE
"""

import logging

from flask import Blueprint, jsonify, request

from venture_os.blueprints import bool_arg, commit_response, fail, json_body, paginate_query
from venture_os.models.project import Task
from venture_os.services import task_rules
from venture_os.utils.errors import E, api_error
from venture_os.utils.helpers import get_or_404

logger = logging.getLogger(__name__)

task_bp = Blueprint("task", __name__, url_prefix="/api/v1")


# ═══════════════════════════════════════════════════════════════════════════
#  TASK CRUD
# ═══════════════════════════════════════════════════════════════════════════

@task_bp.route("/tasks", methods=["GET"])
def list_tasks():
    """
    Query params:
        project_id, sprint_id, status, priority
        backlog=true  — only tasks outside any sprint
    """
    q = Task.query
    for field in ("project_id", "sprint_id", "status", "priority"):
        value = request.args.get(field)
        if value:
            q = q.filter(getattr(Task, field) == value)
    if bool_arg("backlog"):
        q = q.filter(Task.sprint_id.is_(None))
    tasks, total = paginate_query(q.order_by(Task.created_at.asc()))
    return jsonify({"items": [t.to_dict() for t in tasks], "total": total})


@task_bp.route("/tasks", methods=["POST"])
def create_task():
    task, err = task_rules.create_task(json_body())
    if err:
        return fail(err)
    return commit_response(task.to_dict(), 201)


@task_bp.route("/tasks/<task_id>", methods=["GET"])
def get_task(task_id):
    task, err = get_or_404(Task, task_id)
    if err:
        return err
    return jsonify(task.to_dict())


@task_bp.route("/tasks/<task_id>", methods=["PUT", "PATCH"])
def update_task(task_id):
    task, err = task_rules.update_task(task_id, json_body())
    if err:
        return fail(err)
    return commit_response(task.to_dict())


@task_bp.route("/tasks/<task_id>", methods=["DELETE"])
def delete_task(task_id):
    _, err = task_rules.delete_task(task_id)
    if err:
        return fail(err)
    return commit_response({"message": "Task deleted"})


# ═══════════════════════════════════════════════════════════════════════════
#  FLOW ACTIONS
# ═══════════════════════════════════════════════════════════════════════════

@task_bp.route("/tasks/<task_id>/current", methods=["POST"])
def set_current(task_id):
    task, err = task_rules.set_current_task(task_id, json_body().get("project_id"))
    if err:
        return fail(err)
    return commit_response(task.to_dict())


@task_bp.route("/projects/<project_id>/current-task", methods=["GET"])
def get_current(project_id):
    task = Task.query.filter_by(project_id=project_id, is_current=True).first()
    return jsonify({"task": task.to_dict() if task else None})


@task_bp.route("/projects/<project_id>/current-task", methods=["DELETE"])
def unset_current(project_id):
    task_rules.unset_current_task(project_id)
    return commit_response({"message": "Current task cleared"})


@task_bp.route("/projects/<project_id>/next-task", methods=["GET"])
def next_task(project_id):
    task, _ = task_rules.get_next_task(project_id, request.args.get("exclude"))
    return jsonify({"task": task.to_dict() if task else None})


@task_bp.route("/tasks/<task_id>/skip", methods=["POST"])
def skip_task(task_id):
    task, err = task_rules.skip_task(task_id)
    if err:
        return fail(err)
    return commit_response(task.to_dict())


@task_bp.route("/tasks/<task_id>/block", methods=["POST"])
def block_task(task_id):
    task, err = task_rules.block_task(task_id, json_body().get("reason"))
    if err:
        return fail(err)
    return commit_response(task.to_dict())


@task_bp.route("/tasks/<task_id>/complete", methods=["POST"])
def complete_task(task_id):
    result, err = task_rules.complete_task(task_id)
    if err:
        return fail(err)
    next_ = result["next_task"]
    return commit_response({
        "task": result["task"].to_dict(),
        "next_task": next_.to_dict() if next_ else None,
    })


@task_bp.route("/tasks/<task_id>/status", methods=["PATCH"])
def update_status(task_id):
    data = json_body()
    if not data.get("status"):
        return api_error(E.VALIDATION_REQUIRED, "status is required")
    task, err = task_rules.update_task_status(task_id, data["status"])
    if err:
        return fail(err)
    return commit_response(task.to_dict())


@task_bp.route("/tasks/<task_id>/time", methods=["POST"])
def log_time(task_id):
    task, err = task_rules.log_time(task_id, json_body().get("minutes"))
    if err:
        return fail(err)
    return commit_response(task.to_dict())


@task_bp.route("/tasks/<task_id>/sprint", methods=["PUT"])
def move_to_sprint(task_id):
    task, err = task_rules.move_task_to_sprint(task_id, json_body().get("sprint_id"))
    if err:
        return fail(err)
    return commit_response(task.to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  SUBTASKS
# ═══════════════════════════════════════════════════════════════════════════

@task_bp.route("/tasks/<task_id>/subtasks", methods=["POST"])
def add_subtask(task_id):
    subtasks, err = task_rules.add_subtask(task_id, json_body().get("title"))
    if err:
        return fail(err)
    return commit_response({"subtasks": subtasks}, 201)


@task_bp.route("/tasks/<task_id>/subtasks", methods=["PUT"])
def replace_subtasks(task_id):
    task, err = task_rules.update_subtasks(task_id, json_body().get("subtasks"))
    if err:
        return fail(err)
    return commit_response(task.to_dict())


@task_bp.route("/tasks/<task_id>/subtasks/<subtask_id>", methods=["PATCH"])
def toggle_subtask(task_id, subtask_id):
    completed = bool(json_body().get("completed"))
    subtasks, err = task_rules.toggle_subtask(task_id, subtask_id, completed)
    if err:
        return fail(err)
    return commit_response({"subtasks": subtasks})


@task_bp.route("/tasks/<task_id>/subtasks/<subtask_id>", methods=["DELETE"])
def remove_subtask(task_id, subtask_id):
    subtasks, err = task_rules.remove_subtask(task_id, subtask_id)
    if err:
        return fail(err)
    return commit_response({"subtasks": subtasks})


# ═══════════════════════════════════════════════════════════════════════════
#  DEPENDENCIES
# ═══════════════════════════════════════════════════════════════════════════

@task_bp.route("/tasks/<task_id>/dependencies", methods=["GET"])
def list_dependencies(task_id):
    deps, _ = task_rules.list_task_dependencies(task_id)
    return jsonify({"items": [d.to_dict() for d in deps], "total": len(deps)})


@task_bp.route("/tasks/<task_id>/dependencies", methods=["POST"])
def add_dependency(task_id):
    """Body: ``{"depends_on_task_id": "..."}``"""
    depends_on = json_body().get("depends_on_task_id")
    if not depends_on:
        return api_error(E.VALIDATION_REQUIRED, "depends_on_task_id is required")
    dep, err = task_rules.add_task_dependency(task_id, depends_on)
    if err:
        return fail(err)
    return commit_response(dep.to_dict(), 201)


@task_bp.route("/tasks/<task_id>/can-start", methods=["GET"])
def can_start(task_id):
    return jsonify({"task_id": task_id, "can_start": task_rules.can_start_task(task_id)})


@task_bp.route("/task-dependencies/<dependency_id>", methods=["DELETE"])
def remove_dependency(dependency_id):
    _, err = task_rules.remove_task_dependency(dependency_id)
    if err:
        return fail(err)
    return commit_response({"message": "Dependency removed"})
