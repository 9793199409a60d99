# backend/globos/__init__.py
import logging

from flask import Flask, request
from werkzeug.exceptions import HTTPException, MethodNotAllowed, NotFound, RequestEntityTooLarge

from .config import Config
from .errors import error_response, server_error
from .extensions import db, migrate


def create_app(config_object=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object or Config)
    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.products import products_bp
    from .routes.catalog import catalog_bp
    from .routes.clients import clients_bp
    from .routes.sales import sales_bp
    from .routes.orders import orders_bp
    from .routes.reports import reports_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(clients_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(reports_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = set(app.config.get("CORS_ORIGINS") or [])
        if origin and ("*" in allowed_origins or origin in allowed_origins):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    @app.errorhandler(NotFound)
    def handle_not_found(e):
        return error_response("Ruta no encontrada", f"La ruta {request.path} no existe", 404)

    @app.errorhandler(MethodNotAllowed)
    def handle_method_not_allowed(e):
        return error_response("Método no permitido", f"{request.method} no está permitido en {request.path}", 405)

    @app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(e):
        return error_response("Archivo muy grande", "La imagen no puede exceder 5MB", 413)

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        if isinstance(e, HTTPException):
            return error_response(e.name, e.description or e.name, e.code)
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return server_error(e)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
