"""Agent sync service — full-state pull and batched push for the external agent.

Push semantics:
    Each recognised top-level key is processed independently and in order.
    Bulk inserts (audit_logs, agent_reports) succeed or fail as a batch and
    report ``{"inserted": n}`` / ``{"error": msg}``. Per-row updates run each
    row in its own SAVEPOINT and report ``[{"id", "success", "error"}]``, so
    one bad row never blocks the others. Status transitions go through the
    pipeline service, so the automator fires exactly as it does for the UI.

Transaction policy: SAVEPOINTs only; the route handler commits once.
"""
import logging

from sqlalchemy.exc import SQLAlchemyError

from venture_os.core.exceptions import ConflictError, NotFoundError, ValidationError
from venture_os.models import db
from venture_os.models.client import Client
from venture_os.models.finance import Invoice, Payment
from venture_os.models.ops import AgentReport, AuditLog, Deployment, SystemConfig
from venture_os.models.pipeline import Contract, Opportunity, PriceOffer
from venture_os.models.project import (
    FocusSession,
    Lifecycle,
    Project,
    Sprint,
    Task,
    TaskDependency,
)
from venture_os.services import deployment_service, feed_service, pipeline_service
from venture_os.services import project_service, task_rules
from venture_os.services.helpers.lookups import get_required
from venture_os.utils.helpers import utcnow

logger = logging.getLogger(__name__)

# Processing order of the push payload.
SYNC_KEYS = (
    "audit_logs",
    "project_updates",
    "task_updates",
    "client_health",
    "agent_reports",
    "deployment_status",
    "opportunity_updates",
    "offer_updates",
    "contract_updates",
)

# The older /api/agent/sync surface only understands these.
LEGACY_SYNC_KEYS = ("audit_logs", "project_updates", "task_updates")

# Children before parents.
WORKSPACE_TABLES = (
    AgentReport,
    AuditLog,
    TaskDependency,
    Task,
    FocusSession,
    Sprint,
    Deployment,
    Lifecycle,
    Payment,
    Invoice,
    Project,
    Contract,
    PriceOffer,
    Opportunity,
    Client,
)

_ROW_ERRORS = (NotFoundError, ValidationError, ConflictError)


def health_severity(score):
    if score < 50:
        return "critical"
    if score < 75:
        return "warning"
    return "info"


def _check(result):
    """Unwrap a service ``(obj, err)`` tuple, raising on error."""
    obj, err = result
    if err:
        raise ValidationError(err["error"])
    return obj


def _db_message(exc):
    return str(getattr(exc, "orig", None) or exc)


def _run_row(row_id, fn):
    """Run ``fn`` in a SAVEPOINT; return the per-row result dict."""
    try:
        with db.session.begin_nested():
            extra = fn() or {}
    except _ROW_ERRORS as exc:
        return {"id": row_id, "success": False, "error": str(exc)}
    except SQLAlchemyError as exc:
        logger.warning("Sync row %s failed: %s", row_id, _db_message(exc))
        return {"id": row_id, "success": False, "error": _db_message(exc)}
    return {"id": row_id, "success": True, "error": None, **extra}


def _run_batch(fn, rows):
    try:
        with db.session.begin_nested():
            for row in rows:
                fn(row)
    except _ROW_ERRORS as exc:
        return {"error": str(exc)}
    except SQLAlchemyError as exc:
        logger.warning("Sync batch failed: %s", _db_message(exc))
        return {"error": _db_message(exc)}
    return {"inserted": len(rows)}


def _fields(row):
    return {k: v for k, v in row.items() if k != "id"}


# ── Per-key processors ───────────────────────────────────────────────────


def _audit_logs(rows):
    def insert(row):
        _check(feed_service.log_event(
            row.get("level", "Info"),
            row.get("message"),
            row.get("source") or "agent",
            row.get("project_id"),
        ))
    return _run_batch(insert, rows)


def _agent_reports(rows):
    def insert(row):
        _check(feed_service.file_report(
            row.get("title"),
            row.get("body", ""),
            client_id=row.get("client_id"),
            project_id=row.get("project_id"),
            report_type=row.get("report_type") or "note",
            severity=row.get("severity") or "info",
        ))
    return _run_batch(insert, rows)


def _ignored(fields, accepted):
    """Row keys no processor applies; reported back as ``ignored``."""
    ignored = sorted(k for k in fields if k not in accepted)
    return {"ignored": ignored} if ignored else {}


def _update_rows(rows, update, accepted=None):
    """Per-row ``update(id, fields)`` through a service function."""
    def apply(row):
        fields = _fields(row)
        _check(update(row.get("id"), fields))
        return _ignored(fields, accepted) if accepted is not None else {}
    return [_run_row(row.get("id"), lambda row=row: apply(row)) for row in rows]


def _project_updates(rows):
    return _update_rows(rows, project_service.update_project, project_service.PROJECT_UPDATE_FIELDS)


def _task_updates(rows):
    """Field edits plus the flow-board keys ``sprint_id`` and ``is_current``."""
    accepted = task_rules.TASK_UPDATE_FIELDS + ("sprint_id", "is_current")

    def apply(row):
        task_id = row.get("id")
        fields = _fields(row)
        _check(task_rules.update_task(task_id, fields))
        if "sprint_id" in fields:
            _check(task_rules.move_task_to_sprint(task_id, fields["sprint_id"]))
        if "is_current" in fields:
            if fields["is_current"]:
                _check(task_rules.set_current_task(task_id, None))
            else:
                get_required(Task, task_id).is_current = False
                db.session.flush()
        return _ignored(fields, accepted)
    return [_run_row(row.get("id"), lambda row=row: apply(row)) for row in rows]


def _client_health(rows):
    def apply(row):
        score = row.get("health_score")
        client = _check(pipeline_service.update_client(row.get("id"), {"health_score": score}))
        if row.get("reason"):
            _check(feed_service.file_report(
                f"Health score → {client.health_score}%",
                row["reason"],
                client_id=client.id,
                report_type="health_adjustment",
                severity=health_severity(client.health_score),
            ))
    return [_run_row(row.get("id"), lambda row=row: apply(row)) for row in rows]


def _deployment_status(rows):
    def update(row):
        deployment = get_required(Deployment, row["id"])
        deployment.status = row.get("status", deployment.status)
        if "metadata" in row:
            deployment.meta = row["metadata"]
        deployment.last_checked_at = utcnow()
        db.session.flush()

    def insert(row):
        deployment = _check(deployment_service.create_deployment(row))
        deployment.status = row.get("status") or "healthy"
        deployment.meta = row.get("metadata") or {}
        db.session.flush()
        return {"id": deployment.id, "inserted": 1}

    results = []
    for row in rows:
        if row.get("id"):
            results.append(_run_row(row["id"], lambda row=row: update(row)))
        else:
            results.append(_run_row(None, lambda row=row: insert(row)))
    return results


def _opportunity_updates(rows):
    return _update_rows(rows, pipeline_service.update_opportunity)


def _offer_updates(rows):
    return _update_rows(rows, pipeline_service.update_price_offer)


def _contract_updates(rows):
    return _update_rows(rows, pipeline_service.update_contract)


_PROCESSORS = {
    "audit_logs": _audit_logs,
    "project_updates": _project_updates,
    "task_updates": _task_updates,
    "client_health": _client_health,
    "agent_reports": _agent_reports,
    "deployment_status": _deployment_status,
    "opportunity_updates": _opportunity_updates,
    "offer_updates": _offer_updates,
    "contract_updates": _contract_updates,
}


def process_push(payload, keys=SYNC_KEYS):
    """Apply a push payload; returns the per-key results dict."""
    results = {}
    for key in keys:
        rows = payload.get(key)
        if not rows:
            continue
        if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
            results[key] = {"error": f"{key} must be a list of objects"}
            continue
        results[key] = _PROCESSORS[key](rows)
        logger.info("Sync %s: %d row(s) processed", key, len(rows))
    return results


# ── Pull ─────────────────────────────────────────────────────────────────


def snapshot():
    """Full system state, unpaginated."""
    return {
        "clients": [c.to_dict() for c in Client.query.order_by(Client.name.asc()).all()],
        "opportunities": [
            o.to_dict() for o in Opportunity.query.order_by(Opportunity.updated_at.desc()).all()
        ],
        "active_contracts": [c.to_dict() for c in Contract.query.filter_by(status="Active").all()],
        "projects": [p.to_dict() for p in Project.query.order_by(Project.updated_at.desc()).all()],
        "tasks": [t.to_dict() for t in Task.query.order_by(Task.updated_at.desc()).all()],
        "deployments": [d.to_dict() for d in Deployment.query.all()],
        "config": [c.to_dict() for c in SystemConfig.query.all()],
    }


def legacy_snapshot():
    state = snapshot()
    return {k: state[k] for k in ("projects", "tasks", "config")}


# ── Workspace reset ──────────────────────────────────────────────────────


def clear_workspace():
    """Delete every workspace row, children first. ``system_config`` is kept.

    Returns:
        {table_name: deleted_count}
    """
    counts = {}
    for model in WORKSPACE_TABLES:
        counts[model.__tablename__] = model.query.delete(synchronize_session=False)
    db.session.flush()
    logger.warning("Workspace cleared: %s", counts)
    return counts
