import logging
import os

from flask import Flask
from sqlalchemy.exc import SQLAlchemyError

from feedme.config import CONFIGS
from feedme.extensions import db, migrate, jwt, ma, cors
from feedme.services.delivery_client import DeliveryClient
from feedme.services.menu_scraper import MenuScraper
from feedme.utils.exceptions import ServiceError
from feedme.utils.response_formatter import error_response


def create_app(config_name=None):
    app = Flask(__name__, instance_relative_config=False)
    env = config_name or os.getenv("FLASK_ENV", "development")
    app.config.from_object(CONFIGS.get(env, CONFIGS["development"]))

    app.logger.setLevel(getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO))
    logging.getLogger("feedme").setLevel(app.logger.level)

    # initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    ma.init_app(app)
    origins = [o.strip() for o in app.config["CORS_ORIGINS"].split(",")]
    cors.init_app(
        app,
        resources={r"/api/*": {"origins": origins}},
        supports_credentials=True,
        allow_headers=["Content-Type", "Authorization"],
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    )

    # models must be imported before create_all / migrations see them
    from feedme.models import (  # noqa: F401
        cart,
        delivery_handoff,
        invitation,
        order,
        order_session,
        organization,
        payment,
        restaurant,
        user,
    )

    # third-party clients, replaceable in tests
    app.extensions["delivery_client"] = DeliveryClient.from_config(app.config)
    app.extensions["menu_scraper"] = MenuScraper(timeout=app.config["MENU_SCRAPE_TIMEOUT"])

    # register blueprints
    from feedme.routes.health_routes import bp as health_bp
    from feedme.routes.user_routes import bp as user_bp
    from feedme.routes.company_routes import bp as company_bp
    from feedme.routes.invitation_routes import bp as invitation_bp
    from feedme.routes.session_routes import bp as session_bp
    from feedme.routes.order_routes import bp as order_bp
    from feedme.routes.delivery_routes import bp as delivery_bp
    from feedme.routes.menu_routes import bp as menu_bp
    from feedme.routes.cart_routes import bp as cart_bp
    from feedme.routes.webhook_routes import bp as webhook_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(user_bp)
    app.register_blueprint(company_bp)
    app.register_blueprint(invitation_bp)
    app.register_blueprint(session_bp)
    app.register_blueprint(order_bp)
    app.register_blueprint(delivery_bp)
    app.register_blueprint(menu_bp)
    app.register_blueprint(cart_bp)
    app.register_blueprint(webhook_bp)

    from feedme.commands import register_commands
    register_commands(app)

    # error handlers to match required error format
    @app.errorhandler(ServiceError)
    def service_error(e):
        if e.status >= 500:
            app.logger.error("%s: %s", e.code, e.message)
        return error_response(e.code, e.message, e.details, status=e.status)

    @app.errorhandler(SQLAlchemyError)
    def database_error(e):
        db.session.rollback()
        app.logger.error("Database error: %s", e)
        return error_response("UPSTREAM_FAILURE", str(e), status=500)

    @app.errorhandler(400)
    def bad_request(e):
        return error_response("BAD_REQUEST", str(e), status=400)

    @app.errorhandler(404)
    def not_found(e):
        return error_response("NOT_FOUND", "Resource not found", status=404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return error_response("METHOD_NOT_ALLOWED", "Method not allowed", status=405)

    @app.errorhandler(500)
    def server_error(e):
        return error_response("SERVER_ERROR", "Internal server error", status=500)

    @jwt.unauthorized_loader
    def missing_token(reason):
        return error_response("UNAUTHORIZED", reason, status=401)

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return error_response("UNAUTHORIZED", reason, status=401)

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return error_response("UNAUTHORIZED", "Token has expired", status=401)

    return app
