"""Task state rules — flow-board operations on a single task.

Transaction policy: functions use flush(), never commit().
Caller (route handler) is responsible for db.session.commit().

Every public function returns ``(result, None)`` on success or
``(None, {"error": message, "status": http_status})`` on failure.

Rules:
- at most one ``is_current`` task per project (clear-then-set, two writes)
- skip / block / complete always clear ``is_current``
- adding a task to a sprint that has been running for more than
  ``SCOPE_CHANGE_GRACE`` counts as a scope change
- ``log_time`` accumulates read-modify-write; duplicate calls double count
"""
import logging
import uuid
from datetime import timedelta

from sqlalchemy.exc import IntegrityError

from venture_os.core.exceptions import NotFoundError, ValidationError, to_error
from venture_os.models import db
from venture_os.models.project import (
    TASK_PRIORITIES,
    TASK_STATUSES,
    TASK_TYPES,
    Project,
    Sprint,
    Task,
    TaskDependency,
)
from venture_os.services import subtasks as subtask_list
from venture_os.services.helpers.lookups import (
    apply_fields,
    get_required,
    get_scoped,
    require_choice,
)
from venture_os.utils.helpers import as_utc, utcnow

logger = logging.getLogger(__name__)

# Tasks added within this window after sprint start are still "planning".
SCOPE_CHANGE_GRACE = timedelta(seconds=60)

TASK_UPDATE_FIELDS = (
    "title", "status", "priority", "type", "due_date", "story_points",
    "block_reason", "metadata", "agent_context",
    "delegated_to", "delegation_status", "delegation_notes",
)


def _clear_current(project_id, except_task_id=None):
    q = Task.query.filter(Task.is_current.is_(True))
    if project_id is None:
        q = q.filter(Task.project_id.is_(None))
    else:
        q = q.filter(Task.project_id == project_id)
    if except_task_id:
        q = q.filter(Task.id != except_task_id)
    for other in q.all():
        other.is_current = False


def _set_status(task, status, now):
    """Apply a status change; Done stamps ``completed_at``, leaving Done clears it."""
    if status == "Done" and task.status != "Done":
        task.completed_at = now
    elif status != "Done":
        task.completed_at = None
    task.status = status


# ── Current task ─────────────────────────────────────────────────────────


def set_current_task(task_id, project_id):
    """Make ``task_id`` the single current task of ``project_id``."""
    try:
        if project_id is None:
            task = get_required(Task, task_id)
        else:
            task = get_scoped(Task, task_id, project_id=project_id)
    except NotFoundError as exc:
        return None, to_error(exc)

    _clear_current(task.project_id, except_task_id=task.id)
    db.session.flush()
    task.is_current = True
    db.session.flush()
    return task, None


def unset_current_task(project_id):
    _clear_current(project_id)
    db.session.flush()
    return True, None


# ── Sprint membership ────────────────────────────────────────────────────


def move_task_to_sprint(task_id, sprint_id, project_id=None, now=None):
    """Assign a task to a sprint, or back to the backlog when ``sprint_id`` is None.

    Increments the sprint's ``scope_changes`` when the sprint is active and
    started more than ``SCOPE_CHANGE_GRACE`` before ``now``. Re-assigning a
    task to the sprint it is already in is a no-op.
    """
    now = now or utcnow()
    try:
        task = get_scoped(Task, task_id, project_id=project_id) if project_id else get_required(Task, task_id)
        sprint = get_required(Sprint, sprint_id) if sprint_id else None
    except NotFoundError as exc:
        return None, to_error(exc)

    if sprint is None:
        task.sprint_id = None
        task.added_to_sprint_at = None
        db.session.flush()
        return task, None

    if task.project_id and sprint.project_id != task.project_id:
        return None, {"error": "Sprint belongs to a different project", "status": 400}

    if task.sprint_id == sprint.id:
        return task, None

    if sprint.status == "active" and sprint.started_at is not None:
        if now - as_utc(sprint.started_at) > SCOPE_CHANGE_GRACE:
            sprint.scope_changes = (sprint.scope_changes or 0) + 1
            logger.info(
                "Scope change on sprint %s (#%s): task %s added mid-sprint",
                sprint.id, sprint.sprint_number, task.id,
            )

    task.sprint_id = sprint.id
    task.added_to_sprint_at = now
    db.session.flush()
    return task, None


# ── Subtasks ─────────────────────────────────────────────────────────────


def add_subtask(task_id, title):
    title = (title or "").strip()
    if not title:
        return None, {"error": "Subtask title is required", "status": 400}
    try:
        task = get_required(Task, task_id)
    except NotFoundError as exc:
        return None, to_error(exc)
    task.subtasks = subtask_list.add(task.subtasks, title)
    db.session.flush()
    return task.subtasks, None


def toggle_subtask(task_id, subtask_id, completed):
    try:
        task = get_required(Task, task_id)
    except NotFoundError as exc:
        return None, to_error(exc)
    task.subtasks = subtask_list.toggle(task.subtasks, subtask_id, completed)
    db.session.flush()
    return task.subtasks, None


def remove_subtask(task_id, subtask_id):
    try:
        task = get_required(Task, task_id)
    except NotFoundError as exc:
        return None, to_error(exc)
    task.subtasks = subtask_list.remove(task.subtasks, subtask_id)
    db.session.flush()
    return task.subtasks, None


def update_subtasks(task_id, subtasks):
    """Replace the whole subtask list (reorder / bulk edit)."""
    if not isinstance(subtasks, list) or not all(isinstance(s, dict) for s in subtasks):
        return None, {"error": "subtasks must be a list of objects", "status": 400}
    try:
        task = get_required(Task, task_id)
    except NotFoundError as exc:
        return None, to_error(exc)
    task.subtasks = [
        {
            "id": s.get("id") or str(uuid.uuid4()),
            "title": s.get("title", ""),
            "completed": bool(s.get("completed")),
        }
        for s in subtasks
    ]
    db.session.flush()
    return task, None


# ── Flow actions ─────────────────────────────────────────────────────────


def skip_task(task_id):
    try:
        task = get_required(Task, task_id)
    except NotFoundError as exc:
        return None, to_error(exc)
    task.skip_count = (task.skip_count or 0) + 1
    task.is_current = False
    db.session.flush()
    return task, None


def block_task(task_id, reason):
    reason = (reason or "").strip()
    if not reason:
        return None, {"error": "A block reason is required", "status": 400}
    try:
        task = get_required(Task, task_id)
    except NotFoundError as exc:
        return None, to_error(exc)
    _set_status(task, "Blocked", utcnow())
    task.block_reason = reason
    task.is_current = False
    db.session.flush()
    return task, None


def complete_task(task_id, now=None):
    """Mark Done and suggest what to work on next.

    Returns:
        ({"task": Task, "next_task": Task | None}, None)
    """
    try:
        task = get_required(Task, task_id)
    except NotFoundError as exc:
        return None, to_error(exc)
    _set_status(task, "Done", now or utcnow())
    task.is_current = False
    db.session.flush()

    next_task = None
    if task.project_id:
        next_task, _ = get_next_task(task.project_id, task.id)
    return {"task": task, "next_task": next_task}, None


def update_task_status(task_id, status, now=None):
    try:
        require_choice("status", status, TASK_STATUSES)
        task = get_required(Task, task_id)
    except (ValidationError, NotFoundError) as exc:
        return None, to_error(exc)
    _set_status(task, status, now or utcnow())
    db.session.flush()
    return task, None


def log_time(task_id, minutes):
    """Add ``minutes`` to ``time_spent_minutes``."""
    if isinstance(minutes, bool) or not isinstance(minutes, int) or minutes <= 0:
        return None, {"error": "minutes must be a positive integer", "status": 400}
    try:
        task = get_required(Task, task_id)
    except NotFoundError as exc:
        return None, to_error(exc)
    task.time_spent_minutes = (task.time_spent_minutes or 0) + minutes
    db.session.flush()
    return task, None


def get_next_task(project_id, current_task_id=None):
    """Suggest the next task for a project.

    With an active sprint: another In Progress sprint task, else the oldest
    Todo sprint task. Without one: the oldest non-Done backlog task.
    """
    sprint = Sprint.query.filter_by(project_id=project_id, status="active").first()

    if sprint:
        base = Task.query.filter(Task.sprint_id == sprint.id)
        if current_task_id:
            base = base.filter(Task.id != current_task_id)
        task = base.filter(Task.status == "In Progress").order_by(Task.created_at.asc()).first()
        if task is None:
            task = base.filter(Task.status == "Todo").order_by(Task.created_at.asc()).first()
        return task, None

    q = Task.query.filter(
        Task.project_id == project_id,
        Task.sprint_id.is_(None),
        Task.status != "Done",
    )
    if current_task_id:
        q = q.filter(Task.id != current_task_id)
    return q.order_by(Task.created_at.asc()).first(), None


# ── Task CRUD ────────────────────────────────────────────────────────────


def create_task(data):
    """Create a task; ``project_id`` is optional (personal task)."""
    title = (data.get("title") or "").strip()
    if not title:
        return None, {"error": "Title is required", "status": 400}

    project_id = data.get("project_id")
    try:
        if project_id:
            get_required(Project, project_id)
        task = Task(title=title, project_id=project_id, subtasks=[])
        apply_fields(
            task, data,
            ("status", "priority", "type", "due_date", "story_points",
             "metadata", "agent_context", "delegated_to",
             "delegation_status", "delegation_notes"),
            choices={"status": TASK_STATUSES, "priority": TASK_PRIORITIES, "type": TASK_TYPES},
            datetimes=("due_date",),
            aliases={"metadata": "meta"},
        )
    except (ValidationError, NotFoundError) as exc:
        return None, to_error(exc)

    if task.status == "Done":
        task.completed_at = utcnow()
    db.session.add(task)
    db.session.flush()

    if data.get("sprint_id"):
        _, err = move_task_to_sprint(task.id, data["sprint_id"])
        if err:
            return None, err
    return task, None


def update_task(task_id, data):
    try:
        task = get_required(Task, task_id)
        old_status = task.status
        apply_fields(
            task, data, TASK_UPDATE_FIELDS,
            choices={"status": TASK_STATUSES, "priority": TASK_PRIORITIES, "type": TASK_TYPES},
            datetimes=("due_date",),
            aliases={"metadata": "meta"},
        )
    except (ValidationError, NotFoundError) as exc:
        return None, to_error(exc)

    if "title" in data and not (task.title or "").strip():
        return None, {"error": "Title is required", "status": 400}
    if task.status != old_status:
        new_status = task.status
        task.status = old_status
        _set_status(task, new_status, utcnow())
    db.session.flush()
    return task, None


def delete_task(task_id):
    try:
        task = get_required(Task, task_id)
    except NotFoundError as exc:
        return None, to_error(exc)
    TaskDependency.query.filter(
        (TaskDependency.task_id == task.id) | (TaskDependency.depends_on_task_id == task.id)
    ).delete(synchronize_session=False)
    db.session.delete(task)
    db.session.flush()
    return True, None


# ── Dependencies ─────────────────────────────────────────────────────────


def add_task_dependency(task_id, depends_on_task_id):
    if task_id == depends_on_task_id:
        return None, {"error": "A task cannot depend on itself", "status": 400}
    try:
        get_required(Task, task_id)
        get_required(Task, depends_on_task_id)
    except NotFoundError as exc:
        return None, to_error(exc)

    dep = TaskDependency(task_id=task_id, depends_on_task_id=depends_on_task_id)
    try:
        with db.session.begin_nested():
            db.session.add(dep)
            db.session.flush()
    except IntegrityError:
        return None, {"error": "Dependency already exists", "status": 409}
    return dep, None


def remove_task_dependency(dependency_id):
    try:
        dep = get_required(TaskDependency, dependency_id)
    except NotFoundError as exc:
        return None, to_error(exc)
    db.session.delete(dep)
    db.session.flush()
    return True, None


def list_task_dependencies(task_id):
    deps = (
        TaskDependency.query.filter_by(task_id=task_id)
        .order_by(TaskDependency.created_at.asc())
        .all()
    )
    return deps, None


def can_start_task(task_id):
    """True when every predecessor of ``task_id`` is Done."""
    dep_ids = [
        d.depends_on_task_id
        for d in TaskDependency.query.filter_by(task_id=task_id).all()
    ]
    if not dep_ids:
        return True
    statuses = [t.status for t in Task.query.filter(Task.id.in_(dep_ids)).all()]
    return all(s == "Done" for s in statuses)
