"""Focus session service.

Entering focus mode on a project IS starting a session:
``get_or_create_session`` closes sessions left open on previous days, then
returns the open session or starts a new one.

Transaction policy: flush() only; the caller commits.
"""
import logging
from datetime import datetime, time

from venture_os.core.exceptions import NotFoundError, to_error
from venture_os.models import db
from venture_os.models.project import FocusSession, Project
from venture_os.services.helpers.lookups import get_required
from venture_os.utils.helpers import as_utc, utcnow

logger = logging.getLogger(__name__)

STALE_SESSION_NOTE = "Auto-closed: stale session from previous day"


def _start_of_day(now):
    return datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)


def _open_sessions(project_id, user_id=None):
    q = FocusSession.query.filter(
        FocusSession.project_id == project_id,
        FocusSession.ended_at.is_(None),
    )
    if user_id is not None:
        q = q.filter(FocusSession.user_id == user_id)
    return q


def cleanup_stale_sessions(project_id, user_id=None, now=None):
    """End open sessions that started before today, at today's midnight.

    Returns the number of sessions closed.
    """
    day_start = _start_of_day(as_utc(now or utcnow()))
    closed = 0
    for session in _open_sessions(project_id, user_id).all():
        if as_utc(session.started_at) < day_start:
            session.ended_at = day_start
            session.session_notes = STALE_SESSION_NOTE
            closed += 1
    if closed:
        db.session.flush()
        logger.info("Closed %d stale focus session(s) for project %s", closed, project_id)
    return closed


def get_or_create_session(project_id, user_id=None, now=None):
    now = as_utc(now or utcnow())
    try:
        get_required(Project, project_id)
    except NotFoundError as exc:
        return None, to_error(exc)

    cleanup_stale_sessions(project_id, user_id, now)

    session = _open_sessions(project_id, user_id).order_by(FocusSession.started_at.desc()).first()
    if session is not None:
        return session, None

    session = FocusSession(project_id=project_id, user_id=user_id, started_at=now)
    db.session.add(session)
    db.session.flush()
    return session, None


def get_active_session(project_id, user_id=None):
    return _open_sessions(project_id, user_id).order_by(FocusSession.started_at.desc()).first()


def end_focus_session(session_id, notes=None, now=None):
    try:
        session = get_required(FocusSession, session_id)
    except NotFoundError as exc:
        return None, to_error(exc)
    session.ended_at = now or utcnow()
    session.session_notes = notes
    db.session.flush()
    return session, None


def increment_session_task_count(session_id):
    try:
        session = get_required(FocusSession, session_id)
    except NotFoundError as exc:
        return None, to_error(exc)
    session.tasks_completed = (session.tasks_completed or 0) + 1
    db.session.flush()
    return session, None


def get_last_completed_session(project_id, user_id=None):
    q = FocusSession.query.filter(
        FocusSession.project_id == project_id,
        FocusSession.ended_at.isnot(None),
    )
    if user_id is not None:
        q = q.filter(FocusSession.user_id == user_id)
    return q.order_by(FocusSession.ended_at.desc()).first()
