# backend/stockroom/__init__.py
from flask import Flask, current_app, request
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import ServiceError
from .extensions import db, migrate
from .logging_config import register_request_logging, setup_logging


def create_app(config_class=Config) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_class)

    setup_logging(app)
    register_request_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.companies import companies_bp
    from .routes.warehouses import warehouses_bp
    from .routes.products import products_bp
    from .routes.stock import stock_bp
    from .routes.customers import customers_bp
    from .routes.suppliers import suppliers_bp
    from .routes.sales_orders import sales_orders_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(companies_bp)
    app.register_blueprint(warehouses_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(stock_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(suppliers_bp)
    app.register_blueprint(sales_orders_bp)

    register_error_handlers(app)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config["CORS_ALLOWED_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type, X-Request-ID"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ServiceError)
    def handle_service_error(e: ServiceError):
        if e.status_code >= 500:
            current_app.logger.error("Service error: %s", e.message)
        return e.to_dict(), e.status_code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e: Exception):
        # Routing errors (404/405) keep their normal responses
        if isinstance(e, HTTPException):
            return {"error": e.description, "code": e.name.lower().replace(" ", "_")}, e.code
        current_app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        db.session.rollback()
        return {"error": "Internal server error", "code": "internal"}, 500
