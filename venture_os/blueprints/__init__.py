"""
Venture OS
Blueprint registry and shared view helpers.
"""

from flask import jsonify, request

from venture_os.models import db
from venture_os.utils.errors import service_error
from venture_os.utils.helpers import db_commit_or_error


def paginate_query(query, default_limit=200, max_limit=1000):
    """Apply limit/offset pagination to a SQLAlchemy query.

    Query params:
        limit  — max items (default 200, capped at max_limit)
        offset — starting position (default 0)

    Returns:
        (items_list, total_count)
    """
    total = query.count()
    try:
        limit = min(int(request.args.get("limit", default_limit)), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    try:
        offset = max(int(request.args.get("offset", 0)), 0)
    except (ValueError, TypeError):
        offset = 0
    items = query.limit(limit).offset(offset).all()
    return items, total


def json_body():
    return request.get_json(silent=True) or {}


def bool_arg(name):
    """``?resolved=true`` → True, ``false``/``0`` → False, missing → None."""
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    return raw.lower() in ("1", "true", "yes")


def fail(err):
    """Discard pending changes and turn a service error dict into a response."""
    db.session.rollback()
    return service_error(err)


def commit_response(payload, status=200):
    """Commit the request's unit of work and return ``payload`` as JSON."""
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(payload), status
