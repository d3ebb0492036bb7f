"""Project service — project CRUD and lifecycle stage tracking.

Transaction policy: methods use flush() for ID generation, never commit().
Caller (route handler) is responsible for db.session.commit().

Every project is created with a Lifecycle in ``Requirements``; status moves
are free-form (any status → any status), only the enum and the progress
bounds are validated.
"""
import logging

from venture_os.core.exceptions import NotFoundError, ValidationError, to_error
from venture_os.models import db
from venture_os.models.client import Client
from venture_os.models.pipeline import SERVICE_TYPES, Contract
from venture_os.models.project import (
    LIFECYCLE_STAGES,
    PROJECT_CATEGORIES,
    PROJECT_STATUSES,
    Lifecycle,
    Project,
)
from venture_os.services.helpers.lookups import apply_fields, get_required, require_choice
from venture_os.utils.helpers import utcnow

logger = logging.getLogger(__name__)

_PROJECT_FIELDS = (
    "name", "description", "status", "is_frozen", "specs_md", "client_id",
    "contract_id", "service_type", "category",
)

# Every key update_project understands.
PROJECT_UPDATE_FIELDS = _PROJECT_FIELDS + ("progress", "last_audit_at")


def validate_progress(value):
    """Return ``value`` as an int in [0, 100] or raise ValidationError."""
    if isinstance(value, bool):
        raise ValidationError("progress must be an integer")
    try:
        progress = int(value)
    except (TypeError, ValueError):
        raise ValidationError("progress must be an integer") from None
    if progress < 0 or progress > 100:
        raise ValidationError(
            "progress must be between 0 and 100",
            details={"progress": progress},
        )
    return progress


def _check_links(data):
    if data.get("client_id"):
        get_required(Client, data["client_id"])
    if data.get("contract_id"):
        get_required(Contract, data["contract_id"])


def create_lifecycle(project, now=None):
    now = now or utcnow()
    lifecycle = Lifecycle(
        project=project,
        current_stage="Requirements",
        stage_history=[{"stage": "Requirements", "entered_at": now.isoformat()}],
        started_at=now,
    )
    db.session.add(lifecycle)
    db.session.flush()
    return lifecycle


def create_project(data):
    """Create a project in ``Understand`` with a Requirements lifecycle."""
    name = (data.get("name") or "").strip()
    if not name:
        return None, {"error": "Name is required", "status": 400}
    try:
        _check_links(data)
        project = Project(
            name=name,
            description=data.get("description") or "",
            status="Understand",
            progress=0,
            is_frozen=False,
            specs_md=data.get("specs_md") or "",
        )
        apply_fields(
            project, data, ("client_id", "contract_id", "service_type", "category"),
            choices={"service_type": SERVICE_TYPES, "category": PROJECT_CATEGORIES},
            nullable=("service_type", "category"),
        )
    except (NotFoundError, ValidationError) as exc:
        return None, to_error(exc)

    db.session.add(project)
    db.session.flush()
    create_lifecycle(project)
    return project, None


def update_project(project_id, data):
    try:
        project = get_required(Project, project_id)
        _check_links(data)
        apply_fields(
            project, data, _PROJECT_FIELDS,
            choices={
                "status": PROJECT_STATUSES,
                "service_type": SERVICE_TYPES,
                "category": PROJECT_CATEGORIES,
            },
            nullable=("service_type", "category"),
        )
        if "progress" in data:
            project.progress = validate_progress(data["progress"])
        apply_fields(project, data, ("last_audit_at",), datetimes=("last_audit_at",))
    except (NotFoundError, ValidationError) as exc:
        return None, to_error(exc)

    if not (project.name or "").strip():
        return None, {"error": "Name is required", "status": 400}
    db.session.flush()
    return project, None


def delete_project(project_id):
    try:
        project = get_required(Project, project_id)
    except NotFoundError as exc:
        return None, to_error(exc)
    db.session.delete(project)
    db.session.flush()
    return True, None


def advance_lifecycle(project_id, stage, now=None):
    """Move the project's lifecycle to ``stage`` and append a history entry.

    ``Maintenance`` also stamps ``completed_at``.
    """
    now = now or utcnow()
    try:
        require_choice("stage", stage, LIFECYCLE_STAGES)
        project = get_required(Project, project_id)
    except (NotFoundError, ValidationError) as exc:
        return None, to_error(exc)

    lifecycle = project.lifecycle or create_lifecycle(project, now)
    if lifecycle.current_stage == stage:
        return lifecycle, None

    lifecycle.current_stage = stage
    lifecycle.stage_history = list(lifecycle.stage_history or []) + [
        {"stage": stage, "entered_at": now.isoformat()}
    ]
    if stage == "Maintenance":
        lifecycle.completed_at = now
    db.session.flush()
    logger.info("Project %s lifecycle → %s", project.id, stage)
    return lifecycle, None
