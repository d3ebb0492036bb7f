"""Activity feed — audit log lines and agent reports.

Audit logs are append-only: there is no update or delete here.
Agent reports can only be resolved.
"""
import logging

from venture_os.core.exceptions import NotFoundError, ValidationError, to_error
from venture_os.models import db
from venture_os.models.ops import AUDIT_LEVELS, REPORT_SEVERITIES, AgentReport, AuditLog
from venture_os.services.helpers.lookups import get_required, require_choice
from venture_os.utils.helpers import utcnow

logger = logging.getLogger(__name__)


def log_event(level, message, source="system", project_id=None):
    try:
        require_choice("level", level, AUDIT_LEVELS)
    except ValidationError as exc:
        return None, to_error(exc)
    if not (message or "").strip():
        return None, {"error": "Message is required", "status": 400}
    entry = AuditLog(level=level, message=message, source=source or "system", project_id=project_id)
    db.session.add(entry)
    db.session.flush()
    return entry, None


def file_report(title, body="", *, client_id=None, project_id=None,
                report_type="note", severity="info"):
    try:
        require_choice("severity", severity, REPORT_SEVERITIES)
    except ValidationError as exc:
        return None, to_error(exc)
    if not (title or "").strip():
        return None, {"error": "Title is required", "status": 400}
    report = AgentReport(
        client_id=client_id,
        project_id=project_id,
        report_type=report_type or "note",
        title=title,
        body=body or "",
        severity=severity,
        is_resolved=False,
    )
    db.session.add(report)
    db.session.flush()
    return report, None


def resolve_report(report_id, now=None):
    try:
        report = get_required(AgentReport, report_id)
    except NotFoundError as exc:
        return None, to_error(exc)
    if not report.is_resolved:
        report.is_resolved = True
        report.resolved_at = now or utcnow()
        db.session.flush()
    return report, None


def list_audit_logs(project_id=None, level=None, source=None):
    """Query of audit logs, newest first (caller paginates)."""
    q = AuditLog.query
    if project_id:
        q = q.filter(AuditLog.project_id == project_id)
    if level:
        q = q.filter(AuditLog.level == level)
    if source:
        q = q.filter(AuditLog.source == source)
    return q.order_by(AuditLog.timestamp.desc())


def list_reports(client_id=None, project_id=None, resolved=None):
    q = AgentReport.query
    if client_id:
        q = q.filter(AgentReport.client_id == client_id)
    if project_id:
        q = q.filter(AgentReport.project_id == project_id)
    if resolved is not None:
        q = q.filter(AgentReport.is_resolved.is_(resolved))
    return q.order_by(AgentReport.created_at.desc())
