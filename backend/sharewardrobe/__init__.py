# backend/sharewardrobe/__init__.py
import uuid

from flask import Flask, g, jsonify, request
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from .config import Config
from .extensions import db, migrate
from .errors import ConflictError, ShareWardrobeError

REQUEST_ID_HEADER = "X-Request-ID"


def _error_response(payload: dict, status: int):
    payload.setdefault("details", {})
    payload["request_id"] = getattr(g, "request_id", None)
    return jsonify(payload), status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ShareWardrobeError)
    def handle_domain_error(exc: ShareWardrobeError):
        if exc.status_code >= 500:
            app.logger.error("Request %s failed: %s", g.get("request_id"), exc.message)
        return _error_response(exc.to_dict(), exc.status_code)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(exc: IntegrityError):
        db.session.rollback()
        app.logger.warning("Request %s hit a constraint: %s", g.get("request_id"), exc.orig)
        conflict = ConflictError("Request conflicts with existing data")
        return _error_response(conflict.to_dict(), conflict.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return _error_response({"error": exc.description or exc.name}, exc.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        db.session.rollback()
        app.logger.exception("Unhandled error in request %s", g.get("request_id"))
        return _error_response({"error": "Internal server error"}, 500)


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(str(app.config.get("LOG_LEVEL", "INFO")).upper())

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    from .services.gateways import init_gateways
    init_gateways(app)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.catalog import catalog_bp
    from .routes.cart import cart_bp
    from .routes.negotiations import negotiations_bp
    from .routes.orders import orders_bp
    from .routes.rentals import rentals_bp
    from .routes.transactions import transactions_bp
    from .routes.notifications import notifications_bp
    from .routes.deliveries import deliveries_bp
    from .routes.warehouse import warehouse_bp
    from .routes.admin import admin_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(cart_bp)
    app.register_blueprint(negotiations_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(rentals_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(deliveries_bp)
    app.register_blueprint(warehouse_bp)
    app.register_blueprint(admin_bp)

    @app.before_request
    def assign_request_id():
        g.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex

    @app.after_request
    def add_request_id_header(response):
        request_id = g.get("request_id")
        if request_id:
            response.headers[REQUEST_ID_HEADER] = request_id
        return response

    register_error_handlers(app)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
