# backend/bazaar/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db
from .gateway import InMemoryGateway
from .time_utils import utcnow


def create_app(config_object=None, gateway=None, clock=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object or Config)
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Initialize extensions
    db.init_app(app)

    # Import models so metadata is complete before create_all
    from . import models  # noqa: F401

    with app.app_context():
        db.create_all()

    if gateway is None:
        seed_file = app.config.get("GATEWAY_SEED_FILE")
        gateway = InMemoryGateway.from_seed_file(seed_file) if seed_file else InMemoryGateway()

    from .services.registry import init_services
    init_services(app, gateway, clock or utcnow)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.offers import offers_bp
    from .routes.auctions import auctions_bp
    from .routes.likes import likes_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(offers_bp)
    app.register_blueprint(auctions_bp)
    app.register_blueprint(likes_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config["CORS_ALLOWED_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
