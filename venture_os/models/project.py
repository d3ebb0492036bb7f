"""
Venture OS
Delivery domain models.

Models:
    - Project: delivery engagement with a user-driven lifecycle status
    - Lifecycle: stage tracker created alongside every project
    - Sprint: time-boxed bundle of tasks for a project
    - Task: unit of work; carries the embedded subtask list
    - TaskDependency: "task depends on other task" edge
    - FocusSession: a block of focused work on a project (feeds the
      recommendation neglect score)
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


# ── Shared constants ─────────────────────────────────────────────────────

# Any status is reachable from any other; no transition table.
PROJECT_STATUSES = ("Backlog", "Understand", "Document", "Freeze", "Implement", "Verify")

# Statuses considered "in flight" by the recommendation scorer.
ACTIVE_PROJECT_STATUSES = ("Document", "Freeze", "Implement", "Verify")

PROJECT_CATEGORIES = ("Business", "Personal", "Social", "Research")

LIFECYCLE_STAGES = ("Requirements", "Building", "Testing", "Deploying", "Maintenance")

SPRINT_STATUSES = ("planning", "active", "completed", "cancelled")

TASK_STATUSES = ("Todo", "In Progress", "Done", "Blocked")

TASK_PRIORITIES = ("Critical", "High", "Medium", "Low")

TASK_TYPES = ("Architectural", "Implementation", "Audit", "Maintenance")


class Project(db.Model):
    """
    Delivery project.

    ``progress`` is held in [0, 100] by a check constraint and by the
    service layer; status moves are free-form (no state machine).
    """

    __tablename__ = "projects"
    __table_args__ = (
        db.CheckConstraint(
            "progress >= 0 AND progress <= 100",
            name="ck_projects_progress_range",
        ),
        db.Index("ix_projects_status_updated", "status", "updated_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, default="")
    status = db.Column(
        db.String(20), nullable=False, default="Understand",
        comment="Backlog | Understand | Document | Freeze | Implement | Verify",
    )
    progress = db.Column(db.Integer, nullable=False, default=0)
    is_frozen = db.Column(db.Boolean, nullable=False, default=False)
    specs_md = db.Column(db.Text, default="")
    client_id = db.Column(
        db.String(36), db.ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    contract_id = db.Column(
        db.String(36), db.ForeignKey("contracts.id", ondelete="SET NULL"),
        nullable=True,
    )
    service_type = db.Column(db.String(20), nullable=True)
    category = db.Column(db.String(20), nullable=True)
    last_audit_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=_now, onupdate=_now)

    # ── Relationships
    contract = db.relationship("Contract", lazy="joined")
    lifecycle = db.relationship(
        "Lifecycle", backref="project", uselist=False,
        cascade="all, delete-orphan",
    )
    sprints = db.relationship(
        "Sprint", backref="project", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "progress": self.progress,
            "is_frozen": self.is_frozen,
            "specs_md": self.specs_md,
            "client_id": self.client_id,
            "contract_id": self.contract_id,
            "service_type": self.service_type,
            "category": self.category,
            "last_audit_at": _iso(self.last_audit_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Project {self.id}: {self.name} [{self.status}]>"


class Lifecycle(db.Model):
    """Delivery stage tracker; ``stage_history`` is a list of ``{stage, entered_at}``."""

    __tablename__ = "lifecycles"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(
        db.String(36), db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    current_stage = db.Column(db.String(20), nullable=False, default="Requirements")
    stage_history = db.Column(db.JSON, nullable=False, default=list)
    started_at = db.Column(db.DateTime(timezone=True), default=_now)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=_now, onupdate=_now)

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "current_stage": self.current_stage,
            "stage_history": list(self.stage_history or []),
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
        }


class Sprint(db.Model):
    """
    Time-boxed bundle of tasks for a project.

    ``scope_changes`` counts tasks added after the sprint has been running
    for more than the planning grace period (see
    ``services.task_rules.SCOPE_CHANGE_GRACE``).
    """

    __tablename__ = "sprints"
    __table_args__ = (
        db.Index("ix_sprints_project_status", "project_id", "status"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(
        db.String(36), db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    sprint_number = db.Column(db.Integer, nullable=False, default=1)
    goal = db.Column(db.Text, default="")
    status = db.Column(
        db.String(20), nullable=False, default="planning",
        comment="planning | active | completed | cancelled",
    )
    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    planned_end_at = db.Column(db.DateTime(timezone=True), nullable=True)
    ended_at = db.Column(db.DateTime(timezone=True), nullable=True)
    scope_changes = db.Column(db.Integer, nullable=False, default=0)

    # ── Close-out metrics (set by complete_sprint)
    completed_points = db.Column(db.Integer, nullable=True)
    completed_task_count = db.Column(db.Integer, nullable=True)
    focus_time_minutes = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=_now, onupdate=_now)

    tasks = db.relationship("Task", backref="sprint", lazy="dynamic")

    def to_dict(self, include_tasks=False):
        result = {
            "id": self.id,
            "project_id": self.project_id,
            "sprint_number": self.sprint_number,
            "goal": self.goal,
            "status": self.status,
            "started_at": _iso(self.started_at),
            "planned_end_at": _iso(self.planned_end_at),
            "ended_at": _iso(self.ended_at),
            "scope_changes": self.scope_changes,
            "completed_points": self.completed_points,
            "completed_task_count": self.completed_task_count,
            "focus_time_minutes": self.focus_time_minutes,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_tasks:
            result["tasks"] = [t.to_dict() for t in self.tasks]
        return result

    def __repr__(self):
        return f"<Sprint {self.id}: #{self.sprint_number} [{self.status}]>"


class Task(db.Model):
    """
    Unit of work. ``project_id`` NULL means a personal task.

    At most one task per project has ``is_current`` set; this is kept by
    ``services.task_rules.set_current_task`` (clear-then-set), not by a
    database constraint.
    """

    __tablename__ = "tasks"
    __table_args__ = (
        db.Index("ix_tasks_project_status", "project_id", "status"),
        db.Index("ix_tasks_sprint", "sprint_id"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(
        db.String(36), db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=True,
    )
    sprint_id = db.Column(
        db.String(36), db.ForeignKey("sprints.id", ondelete="SET NULL"),
        nullable=True,
    )
    title = db.Column(db.String(500), nullable=False)
    status = db.Column(
        db.String(20), nullable=False, default="Todo",
        comment="Todo | In Progress | Done | Blocked",
    )
    priority = db.Column(
        db.String(20), nullable=False, default="Medium",
        comment="Critical | High | Medium | Low",
    )
    type = db.Column(db.String(20), nullable=False, default="Implementation")
    due_date = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    added_to_sprint_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # ── Flow board
    is_current = db.Column(db.Boolean, nullable=False, default=False)
    story_points = db.Column(db.Integer, nullable=True)
    time_spent_minutes = db.Column(db.Integer, nullable=False, default=0)
    skip_count = db.Column(db.Integer, nullable=False, default=0)
    block_reason = db.Column(db.Text, nullable=True)
    subtasks = db.Column(db.JSON, nullable=False, default=list)

    # ── Open bags ("metadata" is reserved on declarative classes)
    meta = db.Column("metadata", db.JSON, nullable=True)
    agent_context = db.Column(db.JSON, nullable=True)

    # ── Delegation
    delegated_to = db.Column(db.String(200), nullable=True)
    delegation_status = db.Column(db.String(50), nullable=True)
    delegation_notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=_now, onupdate=_now)

    def to_dict(self):
        from venture_os.services.subtasks import progress

        return {
            "id": self.id,
            "project_id": self.project_id,
            "sprint_id": self.sprint_id,
            "title": self.title,
            "status": self.status,
            "priority": self.priority,
            "type": self.type,
            "due_date": _iso(self.due_date),
            "completed_at": _iso(self.completed_at),
            "added_to_sprint_at": _iso(self.added_to_sprint_at),
            "is_current": self.is_current,
            "story_points": self.story_points,
            "time_spent_minutes": self.time_spent_minutes,
            "skip_count": self.skip_count,
            "block_reason": self.block_reason,
            "subtasks": list(self.subtasks or []),
            "subtask_progress": progress(self.subtasks or []),
            "metadata": self.meta,
            "agent_context": self.agent_context,
            "delegated_to": self.delegated_to,
            "delegation_status": self.delegation_status,
            "delegation_notes": self.delegation_notes,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Task {self.id}: {self.title} [{self.status}]>"


class TaskDependency(db.Model):
    """``task_id`` cannot start until ``depends_on_task_id`` is Done."""

    __tablename__ = "task_dependencies"
    __table_args__ = (
        db.UniqueConstraint("task_id", "depends_on_task_id", name="uq_task_dependency_pair"),
        db.CheckConstraint("task_id <> depends_on_task_id", name="ck_task_dependency_not_self"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    task_id = db.Column(
        db.String(36), db.ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    depends_on_task_id = db.Column(
        db.String(36), db.ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at = db.Column(db.DateTime(timezone=True), default=_now)

    def to_dict(self):
        return {
            "id": self.id,
            "task_id": self.task_id,
            "depends_on_task_id": self.depends_on_task_id,
            "created_at": _iso(self.created_at),
        }


class FocusSession(db.Model):
    """Focused work block on a project. Open while ``ended_at`` is NULL."""

    __tablename__ = "focus_sessions"
    __table_args__ = (
        db.Index("ix_focus_sessions_project_started", "project_id", "started_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(
        db.String(36), db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id = db.Column(db.String(36), nullable=True)
    started_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_now)
    ended_at = db.Column(db.DateTime(timezone=True), nullable=True)
    session_notes = db.Column(db.Text, nullable=True)
    tasks_completed = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), default=_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=_now, onupdate=_now)

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "user_id": self.user_id,
            "started_at": _iso(self.started_at),
            "ended_at": _iso(self.ended_at),
            "session_notes": self.session_notes,
            "tasks_completed": self.tasks_completed,
        }
