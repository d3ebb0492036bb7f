"""Shared utility functions used by services and blueprints.

get_or_404:          tuple-return lookup (NOT abort)
parse_date:          returns None on bad input
parse_datetime:      returns None on bad input, always timezone-aware
utcnow / as_utc:     timezone handling (SQLite hands back naive datetimes)
format_currency:     USD, no cents — used in automator messages
db_commit_or_error:  commit wrapper for route handlers
"""
import logging
from datetime import UTC, date, datetime
from decimal import ROUND_HALF_UP, Decimal

from flask import jsonify

from venture_os.models import db

logger = logging.getLogger(__name__)


def get_or_404(model, pk, label=None):
    """Fetch a model instance by primary key or return a 404 error tuple.

    - Success: (obj, None)
    - Failure: (None, (jsonify_response, 404))

        obj, err = get_or_404(Project, pid)
        if err:
            return err
    """
    label = label or model.__name__
    obj = db.session.get(model, pk)
    if not obj:
        return None, (jsonify({"error": f"{label} not found"}), 404)
    return obj, None


def utcnow():
    return datetime.now(UTC)


def as_utc(value):
    """Return ``value`` as an aware UTC datetime (naive values are assumed UTC)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
    # plain date → midnight UTC
    return datetime(value.year, value.month, value.day, tzinfo=UTC)


def parse_date(value):
    """Parse a date string (ISO or DD.MM.YYYY) to a date object.

    Returns None for empty/invalid input. Supports:
    - YYYY-MM-DD
    - YYYY-MM-DDTHH:MM:SS (→ .date())
    - DD.MM.YYYY
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value)).date()
    except (ValueError, TypeError):
        pass
    try:
        return datetime.strptime(str(value), "%d.%m.%Y").date()
    except (ValueError, TypeError):
        return None


def parse_datetime(value):
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into an aware datetime."""
    if not value:
        return None
    if isinstance(value, (datetime, date)):
        return as_utc(value)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(text))
    except (ValueError, TypeError):
        return None


def format_currency(value):
    """Format an amount as whole US dollars: 2000 → ``$2,000``."""
    amount = Decimal(str(value or 0)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.0f}"


# ── Database commit helper ───────────────────────────────────────────────────

def db_commit_or_error():
    """Commit the current SQLAlchemy session, returning an error response on failure.

    Returns:
        None on success.
        (response, status_code) tuple on failure — ready for ``return``.

    Usage::

        err = db_commit_or_error()
        if err:
            return err

    IntegrityError → 409 (constraint violation)
    Other → 500, driver message passed through to the caller.
    """
    from sqlalchemy.exc import IntegrityError, SQLAlchemyError

    try:
        db.session.commit()
        return None
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        return jsonify({"error": str(exc.orig)}), 409
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database error on commit")
        return jsonify({"error": str(getattr(exc, "orig", None) or exc)}), 500
