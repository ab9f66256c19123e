"""
app/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time — this enables:
           - Multiple isolated test app instances
           - Clean separation between app creation and app startup
           - `flask db` / Alembic to work without starting the full server

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Configure logging from LOG_LEVEL
  3. Initialise extensions (SQLAlchemy, Marshmallow) via init_app()
  4. Build the service graph (hasher, token issuer, revocation store,
     session service) and attach it to app.extensions
  5. Register all route blueprints under /api/v1
  6. Register global error handlers (AppError → JSON, Exception → 500)
"""

from __future__ import annotations

import logging
import traceback

from flask import Flask, jsonify, request
from marshmallow import ValidationError

from authcore.config import config_by_name, validate_production_config

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development") -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Resolved via config_by_name in config.py.
                     Defaults to "development".
    """
    app = Flask(__name__)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    _configure_logging(app)

    # ── Extensions ─────────────────────────────────────────────────────────
    # Import here (not at module top) to avoid circular imports.
    from authcore.app.extensions import db, ma
    db.init_app(app)
    ma.init_app(app)

    # ── Model registration ─────────────────────────────────────────────────
    # Import all models so that SQLAlchemy's MetaData is populated.
    # Alembic needs to see these to auto-generate migrations.
    with app.app_context():
        from authcore.app.models import (  # noqa: F401
            associations,
            permission,
            role,
            user,
        )

    # ── Services ───────────────────────────────────────────────────────────
    from authcore.app.services import init_services
    init_services(app)

    _register_blueprints(app)
    _register_health_check(app)
    _register_error_handlers(app)
    _register_cors(app)

    logger.info(
        "authcore app created (config=%s, revocation_backend=%s).",
        config_name,
        app.config.get("REVOCATION_BACKEND"),
    )
    return app


def _configure_logging(app: Flask) -> None:
    """
    Applies LOG_LEVEL to the "authcore" logger tree and the Flask app logger.

    A stream handler is attached only when the root logger has none, so a
    host process (gunicorn, pytest) that already configured logging keeps
    control of formatting.
    """
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO

    package_logger = logging.getLogger("authcore")
    package_logger.setLevel(level)
    app.logger.setLevel(level)

    if not logging.getLogger().handlers and not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        package_logger.addHandler(handler)


def _register_blueprints(app: Flask) -> None:
    """Registers all route blueprints under the /api/v1 prefix."""
    from authcore.app.routes.auth import auth_bp
    from authcore.app.routes.users import users_bp

    app.register_blueprint(auth_bp,  url_prefix="/api/v1/auth")
    app.register_blueprint(users_bp, url_prefix="/api/v1/users")


def _register_health_check(app: Flask) -> None:
    """
    GET /api/v1/health — liveness plus revocation-store reachability.

    Returns 200 when the store answers, 503 when it does not. The in-memory
    backend has no connection to verify and always reports "ok".
    """
    from authcore.app.services import get_session_service
    from authcore.app.stores.revocation_store import RevocationStoreError

    @app.route("/api/v1/health", methods=["GET"])
    def health():
        store = get_session_service().revocations
        verify = getattr(store, "verify_connection", None)
        store_status = "ok"
        if verify is not None:
            try:
                verify()
            except RevocationStoreError as exc:
                app.logger.warning("Health check: revocation store unreachable: %s", exc)
                store_status = "unavailable"

        healthy = store_status == "ok"
        body = {
            "data": {
                "status": "ok" if healthy else "degraded",
                "revocation_store": store_status,
            },
            "warnings": [],
        }
        return jsonify(body), 200 if healthy else 503


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError        → structured JSON error envelope with the correct HTTP status
      ValidationError → marshmallow schema errors formatted as MISSING_FIELD /
                        INVALID_FIELD responses (400)
      Exception       → generic INTERNAL_ERROR (500); full traceback logged

    Stack traces never leave the server.
    """
    from authcore.app.errors import RETRY_AFTER_SECONDS, AppError, ErrorCode

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """
        Converts an AppError raised anywhere in the request lifecycle
        (middleware, service, route) into the standard error envelope.
        """
        response = jsonify(error.to_dict())
        if error.http_status == 503:
            response.headers["Retry-After"] = str(RETRY_AFTER_SECONDS)
        return response, error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        Converts marshmallow ValidationError into the standard error envelope.

        Only the FIRST field error is returned ("one error, not many").
        """
        messages = error.messages  # e.g. {"email": ["Not a valid email address."]}

        field = None
        message = "Invalid input."
        code = ErrorCode.INVALID_FIELD

        if isinstance(messages, dict):
            for field_name, field_errors in messages.items():
                field = field_name if field_name != "_schema" else None
                if isinstance(field_errors, list):
                    message = field_errors[0] if field_errors else "Invalid value."
                else:
                    message = str(field_errors)
                break
        elif isinstance(messages, list) and messages:
            message = messages[0]

        if str(message).startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD

        response_body = {"error": {"code": code, "message": message}}
        if field is not None:
            response_body["error"]["field"] = field

        return jsonify(response_body), 400

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        """
        Catches all unhandled exceptions and returns a generic 500 response.

        HTTPExceptions raised by Flask/Werkzeug (404 on an unknown path,
        405 on a wrong method) keep their own status.
        """
        from werkzeug.exceptions import HTTPException

        if isinstance(error, HTTPException):
            return jsonify({
                "error": {
                    "code": error.name.upper().replace(" ", "_"),
                    "message": error.description,
                }
            }), error.code

        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "An unexpected error occurred. Please try again later.",
            }
        }), 500


def _register_cors(app: Flask) -> None:
    """
    Adds CORS headers for browser-based local development.

    Enabled only when DEBUG or TESTING is true.
    """

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allow_all = bool(app.config.get("DEBUG") or app.config.get("TESTING"))

        if allow_all:
            response.headers["Access-Control-Allow-Origin"] = origin if origin else "*"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"

        return response
