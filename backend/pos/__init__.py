# backend/pos/__init__.py

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import PosError
from .extensions import db, migrate


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db, directory=app.config["MIGRATIONS_DIR"])

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # One service set per app, bound to the app's scoped session
    from .services import build_services
    app.extensions["pos"] = build_services(
        db.session,
        default_min_stock=app.config["DEFAULT_MIN_STOCK"],
        top_products_limit=app.config["TOP_PRODUCTS_LIMIT"],
        bcrypt_rounds=app.config["BCRYPT_ROUNDS"],
    )

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.products import products_bp
    from .routes.sales import sales_bp
    from .routes.ledger import ledger_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(ledger_bp)

    @app.errorhandler(PosError)
    def handle_pos_error(exc: PosError):
        if exc.status_code >= 500:
            app.logger.error("Store failure: %s", exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        if isinstance(exc, HTTPException):
            return jsonify({"error": exc.description}), exc.code
        app.logger.exception("Unhandled error")
        return jsonify({"error": "Internal server error"}), 500

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    if app.config["AUTO_MIGRATE"]:
        from flask_migrate import upgrade
        with app.app_context():
            app.logger.info("Applying pending migrations from %s", app.config["MIGRATIONS_DIR"])
            upgrade(directory=app.config["MIGRATIONS_DIR"])

    return app
