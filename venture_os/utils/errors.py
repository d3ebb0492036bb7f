"""Standardised API error responses.

Usage
-----
    from venture_os.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Task not found")
    return api_error(E.VALIDATION_REQUIRED, "title is required")
    return api_error(E.UNAUTHORIZED, "Invalid API key.")
"""

from __future__ import annotations

from flask import jsonify


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants (``ERR_`` prefix)."""

    # Validation – HTTP 400
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # Auth – HTTP 401
    UNAUTHORIZED = "ERR_UNAUTHORIZED"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict – HTTP 409
    CONFLICT_STATE = "ERR_CONFLICT_STATE"

    # Business rule – HTTP 422
    BUSINESS_RULE = "ERR_BUSINESS_RULE"

    # Server – HTTP 500
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.UNAUTHORIZED: 401,
    E.NOT_FOUND: 404,
    E.CONFLICT_STATE: 409,
    E.BUSINESS_RULE: 422,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}

# Service-layer error dicts carry an HTTP status; map it back to a code.
_CODE_FOR_STATUS: dict[int, str] = {
    400: E.VALIDATION_INVALID,
    401: E.UNAUTHORIZED,
    404: E.NOT_FOUND,
    409: E.CONFLICT_STATE,
    422: E.BUSINESS_RULE,
    500: E.DATABASE,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Extra structured payload.

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status


def service_error(err: dict):
    """Turn a service-layer ``{"error", "status"}`` dict into a response."""
    status = err.get("status", 400)
    return api_error(
        _CODE_FOR_STATUS.get(status, E.VALIDATION_INVALID),
        err["error"],
        status=status,
    )
