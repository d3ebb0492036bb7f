"""
Shared-secret authentication for the agent sync endpoints.

The agent sends its key as ``X-AGENT-API-KEY: <key>`` or
``Authorization: Bearer <key>``. Either the agent key or the service-role
key is accepted.

Usage:
    ok, error = validate_agent_auth(request)
    if not ok:
        return agent_error_response(error, 401)
"""

import secrets
from datetime import UTC, datetime

from flask import current_app, jsonify

MISSING_AUTH = "Missing authentication. Provide X-AGENT-API-KEY header or Bearer token."
INVALID_KEY = "Invalid API key."


def _provided_key(request):
    key = request.headers.get("X-AGENT-API-KEY")
    if key:
        return key
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth[7:] or None
    return None


def validate_agent_auth(request):
    """Return ``(True, None)`` or ``(False, error_message)``."""
    provided = _provided_key(request)
    if not provided:
        return False, MISSING_AUTH

    accepted = [
        current_app.config.get("AGENT_API_KEY"),
        current_app.config.get("SERVICE_ROLE_KEY"),
    ]
    for expected in accepted:
        if expected and secrets.compare_digest(provided.encode(), expected.encode()):
            return True, None
    return False, INVALID_KEY


def _timestamp():
    return datetime.now(UTC).isoformat()


def agent_error_response(message, status=400):
    return jsonify({"success": False, "error": message, "timestamp": _timestamp()}), status


def agent_success_response(data, status=200):
    return jsonify({"success": True, **data, "timestamp": _timestamp()}), status
