"""
Venture OS
Flask Application Factory.

Usage:
    from venture_os import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from venture_os.config import config
from venture_os.core.exceptions import ConflictError, NotFoundError, ValidationError
from venture_os.middleware.logging_config import configure_logging
from venture_os.middleware.rate_limiter import init_rate_limits
from venture_os.middleware.security_headers import init_security_headers
from venture_os.middleware.timing import init_request_timing
from venture_os.models import db
from venture_os.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import event as _sa_event, engine as _sa_engine


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
# Storage comes from RATELIMIT_STORAGE_URI in the app config.
limiter = Limiter(key_func=get_remote_address, default_limits=[])


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    os.makedirs(app.instance_path, exist_ok=True)  # dev SQLite file lives here
    # Instantiated so ProductionConfig can refuse to start without its settings.
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    init_security_headers(app)
    init_request_timing(app)

    # ── Request guards (input length + Content-Type) ─────────────────────
    @app.before_request
    def _guard_request():
        from flask import request as _req, abort
        max_len = app.config.get("MAX_CONTENT_LENGTH")
        if max_len and _req.content_length and _req.content_length > max_len:
            abort(413, description="Request body too large")
        if _req.method in ("POST", "PUT", "PATCH") and _req.path.startswith("/api/"):
            ct = _req.content_type or ""
            if _req.content_length and "json" not in ct:
                abort(415, description="Content-Type must be application/json")

    # ── Import all models so Alembic can detect them ─────────────────────
    from venture_os.models import client as _client_models      # noqa: F401
    from venture_os.models import pipeline as _pipeline_models  # noqa: F401
    from venture_os.models import project as _project_models    # noqa: F401
    from venture_os.models import ops as _ops_models            # noqa: F401
    from venture_os.models import finance as _finance_models    # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from venture_os.blueprints.health_bp import health_bp
    from venture_os.blueprints.pipeline_bp import pipeline_bp
    from venture_os.blueprints.project_bp import project_bp
    from venture_os.blueprints.task_bp import task_bp
    from venture_os.blueprints.ops_bp import ops_bp
    from venture_os.blueprints.sync_bp import sync_bp
    from venture_os.blueprints.finance_bp import finance_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(pipeline_bp)
    app.register_blueprint(project_bp)
    app.register_blueprint(task_bp)
    app.register_blueprint(ops_bp)
    app.register_blueprint(finance_bp)
    app.register_blueprint(sync_bp)

    init_rate_limits(app, limiter)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("recommend")
    def recommend_cmd():
        """Print the project to focus on right now."""
        from venture_os.services.recommendation import generate_recommendation
        rec = generate_recommendation()
        if rec.project is None:
            print(rec.reason)
            return
        print(f"{rec.project.name}  (score {rec.score})")
        print(f"  {rec.reason}")
        for entry in rec.ranking[1:]:
            print(f"  - {entry.project.name}: {entry.score}")

    @app.cli.command("clear-workspace")
    def clear_workspace_cmd():
        """Delete all workspace data (system config is kept)."""
        from venture_os.services.sync_service import clear_workspace
        counts = clear_workspace()
        db.session.commit()
        logger.info("Workspace cleared: %s", counts)
        print(f"Deleted {sum(counts.values())} rows.")

    # ── Domain exceptions raised out of services ─────────────────────────
    @app.errorhandler(NotFoundError)
    def _not_found_error(e):
        return api_error(E.NOT_FOUND, str(e))

    @app.errorhandler(ValidationError)
    def _validation_error(e):
        return api_error(E.BUSINESS_RULE, str(e), details=e.details or None)

    @app.errorhandler(ConflictError)
    def _conflict_error(e):
        return api_error(E.CONFLICT_STATE, str(e))

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        from flask import request
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error"}, 500

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(413)
    def payload_too_large(e):
        return {"error": "Request body too large"}, 413

    @app.errorhandler(415)
    def unsupported_media_type(e):
        return {"error": "Content-Type must be application/json"}, 415

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "detail": str(e.description)}, 429

    return app
