"""
Venture OS
Agent bridge blueprint — state pull / batched push for the external agent.

Endpoints:
    GET  /api/os/sync       — full system snapshot
    POST /api/os/sync       — batched updates, one result entry per key
    GET  /api/agent/sync    — legacy snapshot (projects, tasks, config)
    POST /api/agent/sync    — legacy push (audit_logs, project/task updates)
    POST /api/agent/seed    — {"action": "clear"} wipes workspace data

All endpoints require ``X-AGENT-API-KEY`` or ``Authorization: Bearer``.
A push is committed once, after every key has been processed.
"""

import logging

from flask import Blueprint, request
from sqlalchemy.exc import SQLAlchemyError

from venture_os.middleware.agent_auth import (
    agent_error_response,
    agent_success_response,
    validate_agent_auth,
)
from venture_os.models import db
from venture_os.services import sync_service as sync_svc

logger = logging.getLogger(__name__)

sync_bp = Blueprint("sync", __name__)

SYNC_ERROR = "Internal sync error"


@sync_bp.before_request
def _require_agent_key():
    ok, error = validate_agent_auth(request)
    if not ok:
        logger.warning("Rejected agent request %s %s: %s", request.method, request.path, error)
        return agent_error_response(error, 401)
    return None


def _push(keys):
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return agent_error_response("Request body must be a JSON object.", 400)
    try:
        results = sync_svc.process_push(payload, keys)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Sync push failed")
        return agent_error_response(SYNC_ERROR, 500)
    return agent_success_response({"message": "Sync completed", "results": results})


def _pull(build):
    try:
        state = build()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Sync snapshot failed")
        return agent_error_response(SYNC_ERROR, 500)
    return agent_success_response(state)


# ── Current bridge ───────────────────────────────────────────────────────────

@sync_bp.route("/api/os/sync", methods=["GET"])
def pull_state():
    return _pull(sync_svc.snapshot)


@sync_bp.route("/api/os/sync", methods=["POST"])
def push_updates():
    return _push(sync_svc.SYNC_KEYS)


# ── Legacy agent surface ─────────────────────────────────────────────────────

@sync_bp.route("/api/agent/sync", methods=["GET"])
def legacy_pull():
    return _pull(sync_svc.legacy_snapshot)


@sync_bp.route("/api/agent/sync", methods=["POST"])
def legacy_push():
    return _push(sync_svc.LEGACY_SYNC_KEYS)


@sync_bp.route("/api/agent/seed", methods=["POST"])
def seed():
    data = request.get_json(silent=True) or {}
    if data.get("action") != "clear":
        return agent_error_response("Invalid action.", 400)
    try:
        counts = sync_svc.clear_workspace()
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Workspace clear failed")
        return agent_error_response(SYNC_ERROR, 500)
    return agent_success_response({"message": "Workspace cleared.", "deleted": counts})
