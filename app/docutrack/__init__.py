import logging

from flask import Flask, g, request
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException

from app.docutrack.config import load_config
from app.docutrack.db import init_db, teardown_db_session
from app.docutrack.routes import bp as routes_bp
from app.docutrack.auth import bp as auth_bp, load_current_user
from app.docutrack.modules.documents.api import bp as documents_bp
from app.docutrack.modules.documents.service import (
    ConcurrentModification,
    DocumentNotFound,
    IllegalTransition,
    ValidationFailure,
)
from app.docutrack.modules.notifications.api import bp as notifications_bp
from app.docutrack.modules.reports.api import bp as reports_bp
from app.docutrack.storage import StorageError
from app.docutrack.utils import fail


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)

    # Storage config check (log loudly on misconfiguration)
    if app.config.get("STORAGE_BACKEND") == "s3":
        missing_s3 = [
            key
            for key in ("S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY")
            if not app.config.get(key)
        ]
        if missing_s3:
            app.logger.error("STORAGE CONFIG ERROR: Missing required S3 env vars: %s", ", ".join(missing_s3))

    if not app.config.get("ENFORCE_STATUS_TRANSITIONS"):
        app.logger.warning("ENFORCE_STATUS_TRANSITIONS is off; any document status may be written at any time.")

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(documents_bp, url_prefix="/documents")
    app.register_blueprint(notifications_bp, url_prefix="/notifications")
    app.register_blueprint(reports_bp, url_prefix="/reports")

    app.before_request(load_current_user)
    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(ValidationFailure)
    def _err_validation(e):  # type: ignore[no-redef]
        return fail(str(e), 400)

    @app.errorhandler(DocumentNotFound)
    def _err_not_found(e):  # type: ignore[no-redef]
        return fail(str(e), 404)

    @app.errorhandler(IllegalTransition)
    @app.errorhandler(ConcurrentModification)
    def _err_conflict(e):  # type: ignore[no-redef]
        app.logger.warning("Rejected document write (request_id=%s): %s", getattr(g, "request_id", None), e)
        return fail(str(e), 409)

    @app.errorhandler(StorageError)
    def _err_storage(e):  # type: ignore[no-redef]
        app.logger.error("Storage failure (request_id=%s): %s", getattr(g, "request_id", None), e)
        return fail("Document storage is unavailable. Please try again.", 502)

    @app.errorhandler(413)
    def _err_413(e):  # type: ignore[no-redef]
        return fail("File too large. Maximum size is 25MB.", 413)

    @app.errorhandler(403)
    def _err_403(e):  # type: ignore[no-redef]
        missing = getattr(g, "missing_permission", None)
        if missing:
            app.logger.warning("Forbidden: missing_permission=%s request_id=%s", missing, getattr(g, "request_id", None))
        return fail("You do not have permission to do that.", 403)

    @app.errorhandler(HTTPException)
    def _err_http(e):  # type: ignore[no-redef]
        return fail(e.description or e.name, e.code or 500)

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s path=%s)", getattr(g, "request_id", None), request.path)
        return fail("Internal server error.", 500)

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
