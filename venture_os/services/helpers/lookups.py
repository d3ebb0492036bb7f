"""
Lookup and field-assignment helpers shared by the service layer.

Every get-by-id in a service goes through ``get_required`` / ``get_scoped`` so
a missing row always surfaces as ``NotFoundError`` (→ HTTP 404), and every
partial update goes through ``apply_fields`` so enum fields are validated in
one place.

Usage:
    task = get_scoped(Task, task_id, project_id=project_id)
    apply_fields(task, data, ("title", "status"), choices={"status": TASK_STATUSES})
"""

import logging

from sqlalchemy import select

from venture_os.core.exceptions import NotFoundError, ValidationError
from venture_os.models import db
from venture_os.utils.helpers import parse_date, parse_datetime

logger = logging.getLogger(__name__)

# Supported scope keyword → expected model column name.
_SCOPE_KWARGS = ("project_id", "client_id", "sprint_id")


def get_required(model, pk):
    """Fetch ``model`` by primary key or raise NotFoundError."""
    obj = db.session.get(model, pk) if pk else None
    if obj is None:
        raise NotFoundError(resource=model.__name__, resource_id=pk)
    return obj


def get_scoped(model, pk, *, project_id=None, client_id=None, sprint_id=None):
    """Fetch a single entity by PK, filtered by the parent it must belong to.

    A row that exists under a different parent is indistinguishable from a
    missing one: both raise NotFoundError.

    Raises:
        ValueError: no scope given, or a scope names a column the model lacks.
        NotFoundError: no matching row in scope.
    """
    provided = {
        "project_id": project_id,
        "client_id": client_id,
        "sprint_id": sprint_id,
    }
    provided = {k: v for k, v in provided.items() if v is not None}
    if not provided:
        raise ValueError(
            f"{model.__name__} id={pk} requires at least one scope filter "
            f"({', '.join(_SCOPE_KWARGS)})."
        )

    missing = sorted(f for f in provided if not hasattr(model, f))
    if missing:
        raise ValueError(f"{model.__name__} has no scope column(s) {missing}")

    stmt = select(model).where(model.id == pk)
    for field, value in provided.items():
        stmt = stmt.where(getattr(model, field) == value)

    result = db.session.execute(stmt).scalar_one_or_none()
    if result is None:
        logger.debug("get_scoped: %s id=%s not found in scope %s", model.__name__, pk, provided)
        raise NotFoundError(resource=model.__name__, resource_id=pk)
    return result


def require_choice(field, value, allowed):
    """Raise ValidationError unless ``value`` is one of ``allowed``."""
    if value not in allowed:
        raise ValidationError(
            f"Invalid {field}: {value!r}",
            details={field: f"must be one of: {', '.join(allowed)}"},
        )
    return value


def apply_fields(
    obj,
    data,
    fields,
    *,
    choices=None,
    nullable=(),
    dates=(),
    datetimes=(),
    aliases=None,
):
    """Copy the keys of ``data`` listed in ``fields`` onto ``obj``.

    Args:
        choices: field → allowed values; checked before assignment.
        nullable: choice fields that also accept ``None``.
        dates / datetimes: fields parsed with ``parse_date`` / ``parse_datetime``.
        aliases: payload key → attribute name (``metadata`` → ``meta``).

    Returns:
        The list of attribute names that were assigned.

    Raises:
        ValidationError: a choice field holds a value outside its set, or a
            date field holds a non-empty value that does not parse.
    """
    choices = choices or {}
    aliases = aliases or {}
    changed = []
    for field in fields:
        if field not in data:
            continue
        value = data[field]
        if field in choices and not (value is None and field in nullable):
            require_choice(field, value, choices[field])
        if field in dates or field in datetimes:
            parsed = parse_date(value) if field in dates else parse_datetime(value)
            if parsed is None and value not in (None, ""):
                raise ValidationError(f"Invalid {field}: {value!r}", details={field: value})
            value = parsed
        attr = aliases.get(field, field)
        setattr(obj, attr, value)
        changed.append(attr)
    return changed
