# backend/pos/__init__.py
import logging
import time
import uuid

from flask import Flask, g, has_request_context, jsonify, request
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import PosError
from .extensions import db, migrate, mail
from .i18n import select_language, translate

REQUEST_ID_HEADER = "X-Request-ID"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"


class RequestIdFilter(logging.Filter):
    """Stamp every record with the current request id ('-' outside requests)."""

    def filter(self, record):
        record.request_id = g.get("request_id", "-") if has_request_context() else "-"
        return True


def _configure_logging(app: Flask) -> None:
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestIdFilter())

    # app.logger is the "pos" logger; service loggers (pos.services.*) propagate to it
    root = logging.getLogger("pos")
    root.setLevel(level)
    if not any(isinstance(f, RequestIdFilter) for h in root.handlers for f in h.filters):
        root.addHandler(handler)


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(PosError)
    def handle_pos_error(error):
        db.session.rollback()
        lang = select_language(request.headers.get("Accept-Language"))
        message = translate(error.message_key, lang, **error.params)
        if error.status_code >= 500:
            app.logger.error("%s [%s]: %s", error.code, error.status_code, error.message)
        else:
            app.logger.info("%s [%s]: %s", error.code, error.status_code, error.message)
        return jsonify(error.to_dict(message)), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({
            "error": (error.name or "http_error").lower().replace(" ", "_"),
            "message": error.description,
        }), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        db.session.rollback()
        app.logger.exception("Unhandled exception on %s %s", request.method, request.path)
        lang = select_language(request.headers.get("Accept-Language"))
        return jsonify({
            "error": "internal_error",
            "message": translate("internal_error", lang),
        }), 500


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    # Overrides must land before extensions bind; engines are created at init
    if config_overrides:
        app.config.update(config_overrides)

    _configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    mail.init_app(app)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    from .services.gateways import init_gateways
    from .services.policy_service import init_policy
    from .services.email_service import init_email
    init_gateways(app)
    init_policy(app)
    init_email(app)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.users import users_bp
    from .routes.outlets import outlets_bp
    from .routes.products import products_bp
    from .routes.recipes import recipes_bp
    from .routes.orders import orders_bp
    from .routes.payments import payments_bp
    from .routes.account import account_bp
    from .routes.callbacks import callbacks_bp
    from .routes.suppliers import suppliers_bp
    from .routes.purchase_orders import purchase_orders_bp
    from .routes.reports import reports_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(outlets_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(recipes_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(account_bp)
    app.register_blueprint(callbacks_bp)
    app.register_blueprint(suppliers_bp)
    app.register_blueprint(purchase_orders_bp)
    app.register_blueprint(reports_bp)

    @app.before_request
    def assign_request_id():
        g.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        g.request_started = time.perf_counter()

    @app.after_request
    def log_access(response):
        response.headers[REQUEST_ID_HEADER] = g.get("request_id", "-")
        started = g.get("request_started")
        elapsed_ms = (time.perf_counter() - started) * 1000 if started else 0.0
        app.logger.info(
            "%s %s %s %.1fms", request.method, request.path, response.status_code, elapsed_ms,
        )
        return response

    _register_error_handlers(app)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
