"""
Venture OS
Project blueprint — projects, lifecycle, sprints, focus sessions,
deployments and the focus recommendation.

Endpoints:
    PROJECT      /api/v1/projects                                  GET, POST
                 /api/v1/projects/<id>                             GET, PUT, DELETE
                 /api/v1/projects/<id>/lifecycle                   GET, POST (advance)

    SPRINT       /api/v1/projects/<id>/sprints                     GET, POST
                 /api/v1/projects/<id>/sprints/active              GET
                 /api/v1/sprints/<id>                              GET, PUT, DELETE
                 /api/v1/sprints/<id>/start                        POST
                 /api/v1/sprints/<id>/complete                     POST
                 /api/v1/sprints/<id>/cancel                       POST

    FOCUS        /api/v1/projects/<id>/focus-sessions              GET, POST (enter focus)
                 /api/v1/projects/<id>/focus-sessions/active       GET
                 /api/v1/projects/<id>/focus-sessions/last         GET
                 /api/v1/focus-sessions/<id>/end                   POST
                 /api/v1/focus-sessions/<id>/tasks-completed       POST

    DEPLOYMENT   /api/v1/deployments                               GET, POST
                 /api/v1/deployments/<id>                          GET, PUT, DELETE

    RECOMMEND    /api/v1/recommendation                            GET
"""

import logging

from flask import Blueprint, jsonify, request

from venture_os.blueprints import commit_response, fail, json_body, paginate_query
from venture_os.models.ops import Deployment
from venture_os.models.project import FocusSession, Project, Sprint
from venture_os.services import deployment_service as deployment_svc
from venture_os.services import focus_service as focus_svc
from venture_os.services import project_service as project_svc
from venture_os.services import sprint_service as sprint_svc
from venture_os.services.recommendation import generate_recommendation
from venture_os.utils.errors import E, api_error
from venture_os.utils.helpers import get_or_404

logger = logging.getLogger(__name__)

project_bp = Blueprint("project", __name__, url_prefix="/api/v1")


# ═══════════════════════════════════════════════════════════════════════════
#  PROJECT
# ═══════════════════════════════════════════════════════════════════════════

@project_bp.route("/projects", methods=["GET"])
def list_projects():
    q = Project.query
    status = request.args.get("status")
    if status:
        q = q.filter(Project.status == status)
    client_id = request.args.get("client_id")
    if client_id:
        q = q.filter(Project.client_id == client_id)
    projects, total = paginate_query(q.order_by(Project.updated_at.desc()))
    return jsonify({"items": [p.to_dict() for p in projects], "total": total})


@project_bp.route("/projects", methods=["POST"])
def create_project():
    project, err = project_svc.create_project(json_body())
    if err:
        return fail(err)
    payload = project.to_dict()
    payload["lifecycle"] = project.lifecycle.to_dict() if project.lifecycle else None
    return commit_response(payload, 201)


@project_bp.route("/projects/<project_id>", methods=["GET"])
def get_project(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    payload = project.to_dict()
    payload["lifecycle"] = project.lifecycle.to_dict() if project.lifecycle else None
    active = sprint_svc.get_active_sprint(project.id)
    payload["active_sprint"] = active.to_dict() if active else None
    return jsonify(payload)


@project_bp.route("/projects/<project_id>", methods=["PUT", "PATCH"])
def update_project(project_id):
    project, err = project_svc.update_project(project_id, json_body())
    if err:
        return fail(err)
    return commit_response(project.to_dict())


@project_bp.route("/projects/<project_id>", methods=["DELETE"])
def delete_project(project_id):
    _, err = project_svc.delete_project(project_id)
    if err:
        return fail(err)
    return commit_response({"message": "Project deleted"})


@project_bp.route("/projects/<project_id>/lifecycle", methods=["GET"])
def get_lifecycle(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    if project.lifecycle is None:
        return api_error(E.NOT_FOUND, "Lifecycle not found")
    return jsonify(project.lifecycle.to_dict())


@project_bp.route("/projects/<project_id>/lifecycle", methods=["POST"])
def advance_lifecycle(project_id):
    """Body: ``{"stage": "Development"}``"""
    data = json_body()
    if not data.get("stage"):
        return api_error(E.VALIDATION_REQUIRED, "stage is required")
    lifecycle, err = project_svc.advance_lifecycle(project_id, data["stage"])
    if err:
        return fail(err)
    return commit_response(lifecycle.to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  SPRINT
# ═══════════════════════════════════════════════════════════════════════════

@project_bp.route("/projects/<project_id>/sprints", methods=["GET"])
def list_sprints(project_id):
    _, err = get_or_404(Project, project_id)
    if err:
        return err
    q = Sprint.query.filter_by(project_id=project_id)
    status = request.args.get("status")
    if status:
        q = q.filter(Sprint.status == status)
    sprints, total = paginate_query(q.order_by(Sprint.sprint_number.desc()))
    return jsonify({"items": [s.to_dict() for s in sprints], "total": total})


@project_bp.route("/projects/<project_id>/sprints", methods=["POST"])
def create_sprint(project_id):
    sprint, err = sprint_svc.create_sprint(project_id, json_body())
    if err:
        return fail(err)
    return commit_response(sprint.to_dict(), 201)


@project_bp.route("/projects/<project_id>/sprints/active", methods=["GET"])
def get_active_sprint(project_id):
    sprint = sprint_svc.get_active_sprint(project_id)
    if sprint is None:
        return api_error(E.NOT_FOUND, "No active sprint")
    return jsonify(sprint.to_dict(include_tasks=True))


@project_bp.route("/sprints/<sprint_id>", methods=["GET"])
def get_sprint(sprint_id):
    sprint, err = get_or_404(Sprint, sprint_id)
    if err:
        return err
    include_tasks = request.args.get("include_tasks", "true").lower() != "false"
    return jsonify(sprint.to_dict(include_tasks=include_tasks))


@project_bp.route("/sprints/<sprint_id>", methods=["PUT", "PATCH"])
def update_sprint(sprint_id):
    sprint, err = sprint_svc.update_sprint(sprint_id, json_body())
    if err:
        return fail(err)
    return commit_response(sprint.to_dict())


@project_bp.route("/sprints/<sprint_id>", methods=["DELETE"])
def delete_sprint(sprint_id):
    _, err = sprint_svc.delete_sprint(sprint_id)
    if err:
        return fail(err)
    return commit_response({"message": "Sprint deleted"})


@project_bp.route("/sprints/<sprint_id>/start", methods=["POST"])
def start_sprint(sprint_id):
    sprint, err = sprint_svc.start_sprint(sprint_id)
    if err:
        return fail(err)
    return commit_response(sprint.to_dict())


@project_bp.route("/sprints/<sprint_id>/complete", methods=["POST"])
def complete_sprint(sprint_id):
    """
    Body (optional):
        { "carry_forward": [task_id, ...], "backlog": [...], "drop": [...] }
    """
    sprint, err = sprint_svc.complete_sprint(sprint_id, json_body())
    if err:
        return fail(err)
    return commit_response(sprint.to_dict())


@project_bp.route("/sprints/<sprint_id>/cancel", methods=["POST"])
def cancel_sprint(sprint_id):
    sprint, err = sprint_svc.cancel_sprint(sprint_id)
    if err:
        return fail(err)
    return commit_response(sprint.to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  FOCUS SESSIONS
# ═══════════════════════════════════════════════════════════════════════════

@project_bp.route("/projects/<project_id>/focus-sessions", methods=["GET"])
def list_focus_sessions(project_id):
    q = FocusSession.query.filter_by(project_id=project_id)
    user_id = request.args.get("user_id")
    if user_id:
        q = q.filter(FocusSession.user_id == user_id)
    sessions, total = paginate_query(q.order_by(FocusSession.started_at.desc()))
    return jsonify({"items": [s.to_dict() for s in sessions], "total": total})


@project_bp.route("/projects/<project_id>/focus-sessions", methods=["POST"])
def enter_focus(project_id):
    """Enter focus mode: reuse today's open session or start a new one."""
    session, err = focus_svc.get_or_create_session(project_id, json_body().get("user_id"))
    if err:
        return fail(err)
    return commit_response(session.to_dict())


@project_bp.route("/projects/<project_id>/focus-sessions/active", methods=["GET"])
def get_active_focus_session(project_id):
    session = focus_svc.get_active_session(project_id, request.args.get("user_id"))
    if session is None:
        return api_error(E.NOT_FOUND, "No open focus session")
    return jsonify(session.to_dict())


@project_bp.route("/projects/<project_id>/focus-sessions/last", methods=["GET"])
def get_last_focus_session(project_id):
    session = focus_svc.get_last_completed_session(project_id, request.args.get("user_id"))
    if session is None:
        return api_error(E.NOT_FOUND, "No completed focus session")
    return jsonify(session.to_dict())


@project_bp.route("/focus-sessions/<session_id>/end", methods=["POST"])
def end_focus_session(session_id):
    session, err = focus_svc.end_focus_session(session_id, json_body().get("notes"))
    if err:
        return fail(err)
    return commit_response(session.to_dict())


@project_bp.route("/focus-sessions/<session_id>/tasks-completed", methods=["POST"])
def increment_focus_task_count(session_id):
    session, err = focus_svc.increment_session_task_count(session_id)
    if err:
        return fail(err)
    return commit_response(session.to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  DEPLOYMENT
# ═══════════════════════════════════════════════════════════════════════════

@project_bp.route("/deployments", methods=["GET"])
def list_deployments():
    q = Deployment.query
    project_id = request.args.get("project_id")
    if project_id:
        q = q.filter(Deployment.project_id == project_id)
    status = request.args.get("status")
    if status:
        q = q.filter(Deployment.status == status)
    deployments, total = paginate_query(q.order_by(Deployment.created_at.desc()))
    return jsonify({"items": [d.to_dict() for d in deployments], "total": total})


@project_bp.route("/deployments", methods=["POST"])
def create_deployment():
    deployment, err = deployment_svc.create_deployment(json_body())
    if err:
        return fail(err)
    return commit_response(deployment.to_dict(), 201)


@project_bp.route("/deployments/<deployment_id>", methods=["GET"])
def get_deployment(deployment_id):
    deployment, err = get_or_404(Deployment, deployment_id)
    if err:
        return err
    return jsonify(deployment.to_dict())


@project_bp.route("/deployments/<deployment_id>", methods=["PUT", "PATCH"])
def update_deployment(deployment_id):
    deployment, err = deployment_svc.update_deployment(deployment_id, json_body())
    if err:
        return fail(err)
    return commit_response(deployment.to_dict())


@project_bp.route("/deployments/<deployment_id>", methods=["DELETE"])
def delete_deployment(deployment_id):
    _, err = deployment_svc.delete_deployment(deployment_id)
    if err:
        return fail(err)
    return commit_response({"message": "Deployment deleted"})


# ═══════════════════════════════════════════════════════════════════════════
#  RECOMMENDATION
# ═══════════════════════════════════════════════════════════════════════════

@project_bp.route("/recommendation", methods=["GET"])
def get_recommendation():
    """Which project to work on now, with the full ranking."""
    return jsonify(generate_recommendation().to_dict())
