import logging
import os
from datetime import timedelta

from flask import Flask, g, jsonify, request
from dotenv import load_dotenv
from sqlalchemy import inspect as sa_inspect

from app.archreview.config import load_config
from app.archreview.db import init_db, teardown_db_session
from app.archreview.routes import bp as routes_bp
from app.archreview.auth import bp as auth_bp, load_current_user
from app.archreview.modules.solution_review.api import bp as solution_review_bp

logger = logging.getLogger(__name__)

# Columns the code relies on that were added after the first release of each table.
EXPECTED_COLUMNS: dict[str, tuple[str, ...]] = {
    "solution_reviews": ("version", "created_by", "last_modified_by"),
    "audit_events": ("request_id", "actor_user_email", "client_ip"),
}


def _error(code: str, message: str, status: int, **extra):
    return jsonify({"error": {"code": code, "message": message, **extra}}), status


def _check_production_config(app: Flask) -> None:
    env = (app.config.get("ENV") or "").strip().lower()
    if env not in ("prod", "production"):
        return
    db_url = str(app.config.get("DATABASE_URL") or "").strip()
    if not db_url:
        raise RuntimeError("DATABASE_URL is required in production.")
    if db_url.startswith("sqlite"):
        raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
    if str(app.config.get("SECRET_KEY") or "") in ("", "change-me"):
        raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")


def missing_columns(app: Flask) -> list[str]:
    """Expected columns absent from existing tables. Tables not created yet are skipped."""
    insp = sa_inspect(app.extensions["sqlalchemy_engine"])
    missing: list[str] = []
    for table, columns in EXPECTED_COLUMNS.items():
        if not insp.has_table(table):
            continue
        present = {c["name"] for c in insp.get_columns(table)}
        missing.extend(f"{table}.{col}" for col in columns if col not in present)
    return missing


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return _error("SERVER_ERROR", "Server error occurred. Please try again later.", 500, retryable=True)

    @app.errorhandler(403)
    def _err_403(e):  # type: ignore[no-redef]
        missing = getattr(g, "missing_permission", None)
        if missing:
            app.logger.warning("Forbidden: missing_permission=%s request_id=%s", missing, getattr(g, "request_id", None))
        return _error("FORBIDDEN", "You do not have permission to perform this action.", 403, missingPermission=missing)

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        return _error("NOT_FOUND", "The requested resource was not found.", 404)

    @app.errorhandler(405)
    def _err_405(e):  # type: ignore[no-redef]
        return _error("METHOD_NOT_ALLOWED", "Method not allowed for this resource.", 405)

    @app.errorhandler(413)
    def _err_413(e):  # type: ignore[no-redef]
        return _error("PAYLOAD_TOO_LARGE", "Request body too large.", 413)


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True

    _check_production_config(app)
    init_db(app)

    # Forked gunicorn workers must not share pooled connections with the master.
    if hasattr(os, "register_at_fork"):
        def _dispose_engine_after_fork() -> None:
            app.extensions["sqlalchemy_engine"].dispose()
            app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

        os.register_at_fork(after_in_child=_dispose_engine_after_fork)

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(solution_review_bp, url_prefix="/api/v1/solution-review")

    try:
        schema_missing = missing_columns(app)
    except Exception as e:
        app.logger.exception("Schema health check failed: %s", e)
        schema_missing = []
    app.config["_schema_health_missing"] = schema_missing
    if schema_missing:
        app.logger.error("DB schema out of date; run `alembic upgrade head`. Missing: %s", ", ".join(schema_missing))

    @app.before_request
    def _before_request():  # type: ignore[no-redef]
        if request.path.startswith(("/health", "/healthz")):
            g.current_user = None
            return None
        if app.config["_schema_health_missing"] and request.path.startswith("/api/"):
            return _error(
                "SCHEMA_OUT_OF_DATE",
                "Database schema is out of date.",
                503,
                details={"missing": app.config["_schema_health_missing"]},
            )
        load_current_user()
        return None

    app.teardown_appcontext(teardown_db_session)
    _register_error_handlers(app)

    logger.info("create_app() complete (env=%s, auto_activate_on_approve=%s)", app.config["ENV"], app.config["AUTO_ACTIVATE_ON_APPROVE"])
    return app
