"""
Rate limiting configuration.

The Limiter instance is created in ``venture_os/__init__.py`` with no
default limits; this module applies per-blueprint limits.

Usage:
    from venture_os.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

# Agent sync: one payload can touch hundreds of rows.
SYNC_LIMIT = "30/minute"
WRITE_LIMIT = "120/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints (per remote IP).

        - sync / agent endpoints:  30/minute
        - CRUD blueprints:         120/minute
        - health:                  exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING") or not app.config.get("RATELIMIT_ENABLED", True):
        app.logger.info("Rate limiter disabled")
        return

    bp = app.blueprints.get("sync")
    if bp:
        limiter.limit(SYNC_LIMIT)(bp)

    for bp_name in ("pipeline", "project", "task", "ops", "finance"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured: sync %s, crud %s", SYNC_LIMIT, WRITE_LIMIT)
