"""
Health check blueprint.

Endpoints:
    GET /api/v1/health        — liveness, always 200 if the app is running
    GET /api/v1/health/ready  — readiness with database round-trip
"""

import logging
import time

from flask import Blueprint, current_app, jsonify

from venture_os.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


@health_bp.route("", methods=["GET"])
def health():
    return jsonify({"status": "ok", "app": "Venture OS"}), 200


@health_bp.route("/ready", methods=["GET"])
def ready():
    """Readiness probe: 503 when the database does not answer."""
    checks = {}
    overall = True

    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
        checks["database"] = {"status": "ok", "latency_ms": round(db_ms, 1)}
    except Exception as exc:
        db.session.rollback()
        checks["database"] = {"status": "error", "detail": str(exc)}
        overall = False
        logger.error("Health check — database failed: %s", exc)

    checks["rate_limiter"] = {
        "status": "ok" if current_app.config.get("RATELIMIT_ENABLED", True) else "disabled",
        "storage": current_app.config.get("RATELIMIT_STORAGE_URI", "memory://").split("://")[0],
    }
    checks["agent_auth"] = {
        "status": "ok"
        if current_app.config.get("AGENT_API_KEY") or current_app.config.get("SERVICE_ROLE_KEY")
        else "unconfigured",
    }

    status = "ok" if overall else "degraded"
    return jsonify({"status": status, "checks": checks}), 200 if overall else 503
