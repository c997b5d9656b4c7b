"""
app/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time — this enables:
           - Multiple isolated test app instances with their own secrets
           - Alembic to import the models without starting the server

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Configure logging from LOG_LEVEL
  3. Initialise extensions (SQLAlchemy, Marshmallow) and the CredentialGate
  4. Register all route blueprints under /api
  5. Register global error handlers (AppError, ValidationError,
     SQLAlchemy errors, Exception → the {success: false, error} envelope)
  6. Register a custom JSON provider to serialise Decimal as string
"""

from __future__ import annotations

import logging
import traceback
from decimal import Decimal

from flask import Flask, jsonify, request
from flask.json.provider import DefaultJSONProvider
from marshmallow import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from werkzeug.exceptions import HTTPException

from campledger.config import config_by_name, validate_production_config


# ── Custom JSON provider ───────────────────────────────────────────────────
# Flask's default JSON encoder does not handle Decimal.
# Monetary amounts are serialised as strings to preserve precision.

class DecimalJSONProvider(DefaultJSONProvider):
    """
    Extends Flask's default JSON provider to serialise Decimal as str.

    Example: Decimal("10.50") → "10.50" (not 10.5 or 10.500000001)
    """

    def default(self, o):
        if isinstance(o, Decimal):
            return str(o)
        return super().default(o)


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development") -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Resolved via config_by_name in config.py.
                     Defaults to "development".

    Returns:
        A fully configured Flask app ready to serve requests.
    """
    app = Flask(__name__)
    app.json_provider_class = DecimalJSONProvider
    app.json = DecimalJSONProvider(app)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    _configure_logging(app)

    # ── Extensions ─────────────────────────────────────────────────────────
    # Import here (not at module top) to avoid circular imports.
    from campledger.app.extensions import db, ma
    from campledger.app.services.auth_service import CredentialGate, GateConfig

    db.init_app(app)
    ma.init_app(app)
    app.extensions["credential_gate"] = CredentialGate(GateConfig.from_mapping(app.config))

    # ── Model registration ─────────────────────────────────────────────────
    # Populates SQLAlchemy's MetaData for create_all() and Alembic.
    with app.app_context():
        import campledger.app.models  # noqa: F401

    # ── Blueprints ─────────────────────────────────────────────────────────
    _register_blueprints(app)

    # ── Error handlers ─────────────────────────────────────────────────────
    _register_error_handlers(app)
    _register_cors(app)

    return app


def _configure_logging(app: Flask) -> None:
    """
    Sets the level for app.logger and the campledger service loggers.

    Service modules log through logging.getLogger(__name__) and propagate to
    the stderr handler installed on the package-level "campledger" logger.
    """
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO

    package_logger = logging.getLogger("campledger")
    package_logger.setLevel(level)
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("[%(asctime)s] %(levelname)s in %(name)s: %(message)s")
        )
        package_logger.addHandler(handler)

    # app.logger is "campledger.app"; created after the package handler so
    # Flask does not attach a second default handler.
    app.logger.setLevel(level)


def _register_blueprints(app: Flask) -> None:
    """
    Registers all route blueprints under the /api prefix.

    The url_prefix is set here so individual route files only specify
    the path relative to their resource.
    """
    from campledger.app.routes.auth import auth_bp
    from campledger.app.routes.budget import budget_bp
    from campledger.app.routes.members import members_bp

    app.register_blueprint(auth_bp,    url_prefix="/api/auth")
    app.register_blueprint(budget_bp,  url_prefix="/api/budget")
    app.register_blueprint(members_bp, url_prefix="/api/members")

    @app.route("/api/health", methods=["GET"])
    def health():
        """Liveness check. No auth, no database."""
        return jsonify({"success": True, "data": {"status": "ok"}}), 200


def _flatten_validation_messages(messages, prefix: str = "") -> list[dict]:
    """
    Turns marshmallow's nested messages into a flat details list.

        {"payments": {0: {"amount": ["..."]}}}
          → [{"field": "payments.0.amount", "message": "..."}]

    Schema-level errors ("_schema") get no field.
    """
    details: list[dict] = []
    if isinstance(messages, dict):
        for key, value in messages.items():
            if key == "_schema":
                path = prefix or None
            else:
                path = f"{prefix}.{key}" if prefix else str(key)
            details.extend(_flatten_validation_messages(value, path or ""))
    elif isinstance(messages, list):
        for item in messages:
            if isinstance(item, (dict, list)):
                details.extend(_flatten_validation_messages(item, prefix))
            else:
                details.append({"field": prefix or None, "message": str(item)})
    else:
        details.append({"field": prefix or None, "message": str(messages)})
    return details


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError        → failure envelope with the error's HTTP status
      ValidationError → 400; first error as code/message/field, every
                        field-level error in `details`
      TimeoutError    → 503 DATABASE_TIMEOUT (no pooled connection in time)
      SQLAlchemyError → 500 INTERNAL_ERROR with the driver message in
                        `details` for operator diagnosis
      Exception       → 500 INTERNAL_ERROR; traceback logged, never returned
    """
    from campledger.app.errors import AppError, ErrorCode
    from campledger.app.extensions import db

    known_codes = set(vars(ErrorCode).values())

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """
        Converts an AppError raised anywhere in the request lifecycle
        (middleware, service, route) into the failure envelope.

        Routes never catch AppError — they let it propagate here.
        """
        db.session.rollback()
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        Converts marshmallow ValidationError into the failure envelope.

        The error code is taken from the first message if it is a registered
        ErrorCode constant (e.g. INVALID_AMOUNT_PRECISION), MISSING_FIELD for
        absent required fields, INVALID_FIELD otherwise.
        """
        details = _flatten_validation_messages(error.messages)
        first = details[0] if details else {"field": None, "message": "Invalid input."}

        raw_message = first["message"]
        if raw_message in known_codes:
            code = raw_message
            message = _code_to_message(code)
        elif raw_message.startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD
            message = raw_message
        else:
            code = ErrorCode.INVALID_FIELD
            message = raw_message

        for detail in details:
            if detail["message"] in known_codes:
                detail["message"] = _code_to_message(detail["message"])

        app_error = AppError(
            code,
            message,
            400,
            field=first["field"],
            details=details,
        )
        return jsonify(app_error.to_dict()), 400

    @app.errorhandler(PoolTimeoutError)
    def handle_pool_timeout(error: PoolTimeoutError):
        app.logger.error("Database connection timeout: %s", error)
        db.session.rollback()
        app_error = AppError(
            ErrorCode.DATABASE_TIMEOUT,
            "Timed out waiting for a database connection.",
            503,
        )
        return jsonify(app_error.to_dict()), 503

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error: SQLAlchemyError):
        """
        Persistence failures: the session is rolled back and the underlying
        message is attached so the operator can see what the database said.
        """
        app.logger.error(
            "Database error on %s %s: %s\n%s",
            request.method,
            request.path,
            str(error),
            traceback.format_exc(),
        )
        db.session.rollback()
        app_error = AppError(
            ErrorCode.INTERNAL_ERROR,
            "A database error occurred.",
            500,
            details=str(getattr(error, "orig", None) or error),
        )
        return jsonify(app_error.to_dict()), 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        """
        Catches all unhandled exceptions and returns a generic 500 response.

        The full traceback is logged to the application logger. Stack traces
        never leave the server in the response body.
        """
        # Unknown routes and methods (404/405) keep their status.
        if isinstance(error, HTTPException):
            return jsonify({
                "success": False,
                "error": {
                    "code": error.name.upper().replace(" ", "_"),
                    "message": error.description,
                },
            }), error.code

        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "success": False,
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "An unexpected error occurred. Please try again later.",
            },
        }), 500


def _register_cors(app: Flask) -> None:
    """
    Adds CORS headers for browser-based local development.

    Enabled when DEBUG or TESTING is true so an admin UI served from another
    local port can call the API with Authorization headers.
    """

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allow_all = bool(app.config.get("DEBUG") or app.config.get("TESTING"))

        if allow_all:
            response.headers["Access-Control-Allow-Origin"] = origin if origin else "*"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"

        return response


def _code_to_message(code: str) -> str:
    """
    Returns a human-readable default message for a known error code.
    Used when a ValidationError message IS the error code constant itself.
    """
    _messages = {
        "INVALID_AMOUNT_PRECISION": "Amount must have at most 2 decimal places.",
        "INVALID_CATEGORY": "The cost category value is not valid.",
        "INVALID_PAYMENTS": "Payments must be an array.",
    }
    return _messages.get(code, "Invalid input.")
