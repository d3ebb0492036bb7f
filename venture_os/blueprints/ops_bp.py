"""
Venture OS
Ops blueprint — activity feed (audit logs, agent reports) and system config.

Endpoints:
    AUDIT        /api/v1/audit-logs                      GET, POST
    REPORT       /api/v1/agent-reports                   GET, POST
                 /api/v1/agent-reports/<id>/resolve      POST
    CONFIG       /api/v1/system-config                   GET
                 /api/v1/system-config/<key>             GET, PUT, DELETE

Audit logs are append-only; there is no update or delete endpoint.
"""

import logging

from flask import Blueprint, jsonify, request

from venture_os.blueprints import bool_arg, commit_response, fail, json_body, paginate_query
from venture_os.models import db
from venture_os.models.ops import SystemConfig
from venture_os.services import feed_service as feed_svc
from venture_os.utils.errors import E, api_error

logger = logging.getLogger(__name__)

ops_bp = Blueprint("ops", __name__, url_prefix="/api/v1")


# ── Audit logs ───────────────────────────────────────────────────────────────

@ops_bp.route("/audit-logs", methods=["GET"])
def list_audit_logs():
    """
    Query params:
        project_id, level, source
        limit / offset  — pagination (newest first)
    """
    q = feed_svc.list_audit_logs(
        project_id=request.args.get("project_id"),
        level=request.args.get("level"),
        source=request.args.get("source"),
    )
    logs, total = paginate_query(q, default_limit=50)
    return jsonify({"items": [entry.to_dict() for entry in logs], "total": total})


@ops_bp.route("/audit-logs", methods=["POST"])
def create_audit_log():
    data = json_body()
    entry, err = feed_svc.log_event(
        data.get("level", "Info"),
        data.get("message"),
        data.get("source") or "system",
        data.get("project_id"),
    )
    if err:
        return fail(err)
    return commit_response(entry.to_dict(), 201)


# ── Agent reports ────────────────────────────────────────────────────────────

@ops_bp.route("/agent-reports", methods=["GET"])
def list_agent_reports():
    q = feed_svc.list_reports(
        client_id=request.args.get("client_id"),
        project_id=request.args.get("project_id"),
        resolved=bool_arg("resolved"),
    )
    reports, total = paginate_query(q, default_limit=50)
    return jsonify({"items": [r.to_dict() for r in reports], "total": total})


@ops_bp.route("/agent-reports", methods=["POST"])
def create_agent_report():
    data = json_body()
    report, err = feed_svc.file_report(
        data.get("title"),
        data.get("body", ""),
        client_id=data.get("client_id"),
        project_id=data.get("project_id"),
        report_type=data.get("report_type") or "note",
        severity=data.get("severity") or "info",
    )
    if err:
        return fail(err)
    return commit_response(report.to_dict(), 201)


@ops_bp.route("/agent-reports/<report_id>/resolve", methods=["POST"])
def resolve_agent_report(report_id):
    report, err = feed_svc.resolve_report(report_id)
    if err:
        return fail(err)
    return commit_response(report.to_dict())


# ── System config ────────────────────────────────────────────────────────────

@ops_bp.route("/system-config", methods=["GET"])
def list_system_config():
    entries = SystemConfig.query.order_by(SystemConfig.key.asc()).all()
    return jsonify({"items": [c.to_dict() for c in entries], "total": len(entries)})


@ops_bp.route("/system-config/<key>", methods=["GET"])
def get_system_config(key):
    entry = db.session.get(SystemConfig, key)
    if entry is None:
        return api_error(E.NOT_FOUND, f"Config key '{key}' not found")
    return jsonify(entry.to_dict())


@ops_bp.route("/system-config/<key>", methods=["PUT"])
def put_system_config(key):
    """Body: ``{"value": <any JSON>}`` — upsert."""
    data = json_body()
    if "value" not in data:
        return api_error(E.VALIDATION_REQUIRED, "value is required")
    entry = db.session.get(SystemConfig, key)
    created = entry is None
    if created:
        entry = SystemConfig(key=key)
        db.session.add(entry)
    entry.value = data["value"]
    db.session.flush()
    return commit_response(entry.to_dict(), 201 if created else 200)


@ops_bp.route("/system-config/<key>", methods=["DELETE"])
def delete_system_config(key):
    entry = db.session.get(SystemConfig, key)
    if entry is None:
        return api_error(E.NOT_FOUND, f"Config key '{key}' not found")
    db.session.delete(entry)
    return commit_response({"message": "Config key deleted"})
