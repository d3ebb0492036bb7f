"""Sprint lifecycle service.

Transaction policy: functions use flush(), never commit().

planning → active → completed
              └──→ cancelled

Only one sprint per project may be ``active`` at a time; ``start_sprint``
enforces it with a ConflictError (→ 409).
"""
import logging

from venture_os.core.exceptions import ConflictError, NotFoundError, ValidationError, to_error
from venture_os.models import db
from venture_os.models.project import Project, Sprint, Task
from venture_os.services.helpers.lookups import apply_fields, get_required
from venture_os.utils.helpers import utcnow

logger = logging.getLogger(__name__)


def create_sprint(project_id, data):
    """Create sprint N+1 for the project in ``planning``."""
    try:
        get_required(Project, project_id)
    except NotFoundError as exc:
        return None, to_error(exc)

    if not data.get("planned_end_at"):
        return None, {"error": "planned_end_at is required", "status": 400}

    number = Sprint.query.filter_by(project_id=project_id).count() + 1
    sprint = Sprint(
        project_id=project_id,
        sprint_number=number,
        goal=data.get("goal", ""),
        status="planning",
    )
    try:
        apply_fields(
            sprint, data, ("planned_end_at", "started_at"),
            datetimes=("planned_end_at", "started_at"),
        )
    except ValidationError as exc:
        return None, to_error(exc)
    db.session.add(sprint)
    db.session.flush()
    return sprint, None


def update_sprint(sprint_id, data):
    """Edit goal and dates. Status only moves through start / complete / cancel."""
    try:
        sprint = get_required(Sprint, sprint_id)
        if "status" in data and data["status"] != sprint.status:
            raise ValidationError(
                "Sprint status cannot be set directly; use start, complete or cancel",
                details={"status": data["status"]},
            )
        apply_fields(
            sprint, data,
            ("goal", "planned_end_at", "started_at", "ended_at"),
            datetimes=("planned_end_at", "started_at", "ended_at"),
        )
    except (NotFoundError, ValidationError) as exc:
        return None, to_error(exc)
    db.session.flush()
    return sprint, None


def delete_sprint(sprint_id):
    try:
        sprint = get_required(Sprint, sprint_id)
    except NotFoundError as exc:
        return None, to_error(exc)
    for task in sprint.tasks:
        task.sprint_id = None
        task.added_to_sprint_at = None
    db.session.delete(sprint)
    db.session.flush()
    return True, None


def start_sprint(sprint_id, now=None):
    try:
        sprint = get_required(Sprint, sprint_id)
        active = Sprint.query.filter_by(project_id=sprint.project_id, status="active").first()
        if active is not None:
            raise ConflictError("There is already an active sprint for this project.")
    except (NotFoundError, ConflictError) as exc:
        return None, to_error(exc)

    sprint.status = "active"
    sprint.started_at = now or utcnow()
    db.session.flush()
    logger.info("Sprint %s (#%s) started", sprint.id, sprint.sprint_number)
    return sprint, None


def complete_sprint(sprint_id, decisions=None, now=None):
    """Close a sprint, applying task decisions first, then computing metrics.

    Args:
        decisions: optional ``{"carry_forward": [...], "backlog": [...],
            "drop": [...]}`` lists of task ids. Carry-forward and backlog
            tasks leave the sprint; dropped tasks are deleted.
    """
    try:
        sprint = get_required(Sprint, sprint_id)
    except NotFoundError as exc:
        return None, to_error(exc)

    decisions = decisions or {}
    release_ids = list(decisions.get("carry_forward") or []) + list(decisions.get("backlog") or [])
    drop_ids = list(decisions.get("drop") or [])

    if release_ids:
        for task in Task.query.filter(Task.sprint_id == sprint.id, Task.id.in_(release_ids)).all():
            task.sprint_id = None
            task.added_to_sprint_at = None
    if drop_ids:
        for task in Task.query.filter(Task.sprint_id == sprint.id, Task.id.in_(drop_ids)).all():
            db.session.delete(task)
    db.session.flush()

    tasks = Task.query.filter_by(sprint_id=sprint.id).all()
    done = [t for t in tasks if t.status == "Done"]
    sprint.completed_points = sum(t.story_points or 0 for t in done)
    sprint.completed_task_count = len(done)
    sprint.focus_time_minutes = sum(t.time_spent_minutes or 0 for t in tasks)
    sprint.status = "completed"
    sprint.ended_at = now or utcnow()
    db.session.flush()

    logger.info(
        "Sprint %s completed: %d tasks, %d points, %d focus minutes",
        sprint.id, sprint.completed_task_count, sprint.completed_points,
        sprint.focus_time_minutes,
    )
    return sprint, None


def cancel_sprint(sprint_id, now=None):
    """Cancel a sprint; its unfinished tasks return to the backlog."""
    try:
        sprint = get_required(Sprint, sprint_id)
    except NotFoundError as exc:
        return None, to_error(exc)

    sprint.status = "cancelled"
    sprint.ended_at = now or utcnow()
    for task in Task.query.filter(Task.sprint_id == sprint.id, Task.status != "Done").all():
        task.sprint_id = None
        task.added_to_sprint_at = None
    db.session.flush()
    return sprint, None


def get_active_sprint(project_id):
    return Sprint.query.filter_by(project_id=project_id, status="active").first()
