"""
Venture OS
Operations models — the automation feed and system state.

Models:
    - AuditLog: append-only log line (automator, agent sync, humans)
    - AgentReport: notification card addressed to a client and/or project
    - Deployment: a running environment of a project
    - SystemConfig: key → JSON value settings shared with the agent
"""

import uuid
from datetime import UTC, datetime

from venture_os.models import db


def _uuid():
    return str(uuid.uuid4())


def _now():
    return datetime.now(UTC)


def _iso(value):
    return value.isoformat() if value else None


AUDIT_LEVELS = ("Critical", "Warning", "Info")

REPORT_SEVERITIES = ("critical", "warning", "info")

DEPLOY_ENVIRONMENTS = ("Vercel", "Railway", "Alibaba", "AWS", "Other")


class AuditLog(db.Model):
    """Append-only log entry. Never updated after insert."""

    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("idx_audit_logs_ts", "timestamp"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    level = db.Column(db.String(10), nullable=False, default="Info", comment="Critical | Warning | Info")
    message = db.Column(db.Text, nullable=False)
    source = db.Column(db.String(100), nullable=False, default="system")
    project_id = db.Column(
        db.String(36), db.ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, default=_now)

    def to_dict(self):
        return {
            "id": self.id,
            "level": self.level,
            "message": self.message,
            "source": self.source,
            "project_id": self.project_id,
            "timestamp": _iso(self.timestamp),
        }

    def __repr__(self):
        return f"<AuditLog {self.level}: {self.message[:40]}>"


class AgentReport(db.Model):
    """Actionable notification produced by the automator or the external agent."""

    __tablename__ = "agent_reports"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    client_id = db.Column(
        db.String(36), db.ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    project_id = db.Column(
        db.String(36), db.ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
    )
    report_type = db.Column(db.String(50), nullable=False, default="note")
    title = db.Column(db.String(300), nullable=False)
    body = db.Column(db.Text, nullable=False, default="")
    severity = db.Column(db.String(10), nullable=False, default="info", comment="critical | warning | info")
    is_resolved = db.Column(db.Boolean, nullable=False, default=False)
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_now)

    def to_dict(self):
        return {
            "id": self.id,
            "client_id": self.client_id,
            "project_id": self.project_id,
            "report_type": self.report_type,
            "title": self.title,
            "body": self.body,
            "severity": self.severity,
            "is_resolved": self.is_resolved,
            "resolved_at": _iso(self.resolved_at),
            "created_at": _iso(self.created_at),
        }


class Deployment(db.Model):
    """Running environment of a project; ``status`` is free text (healthy, down, …)."""

    __tablename__ = "deployments"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(
        db.String(36), db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    client_id = db.Column(
        db.String(36), db.ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
    )
    environment = db.Column(db.String(20), nullable=False, default="Vercel")
    label = db.Column(db.String(200), nullable=False)
    url = db.Column(db.String(500), default="")
    status = db.Column(db.String(30), nullable=False, default="healthy")
    last_checked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    meta = db.Column("metadata", db.JSON, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_now)

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "client_id": self.client_id,
            "environment": self.environment,
            "label": self.label,
            "url": self.url,
            "status": self.status,
            "last_checked_at": _iso(self.last_checked_at),
            "metadata": self.meta,
            "created_at": _iso(self.created_at),
        }


class SystemConfig(db.Model):
    __tablename__ = "system_config"

    key = db.Column(db.String(100), primary_key=True)
    value = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime(timezone=True), default=_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=_now, onupdate=_now)

    def to_dict(self):
        return {
            "key": self.key,
            "value": self.value,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
