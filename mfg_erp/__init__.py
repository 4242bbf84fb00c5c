"""
mfg_erp/__init__.py

Flask application factory for the Manufacturing ERP balance & inventory engine.

Requirements:
- Clear architecture: services hold every balance/stock rule, blueprints only
  adapt HTTP requests to service calls.
- PostgreSQL-ready (SQLAlchemy + migrations, row locks) but SQLite is used for dev.
- UI is never trusted; server-side access control is enforced.
"""

from __future__ import annotations

import click
from flask import Flask, jsonify

from .errors import ErpError
from .extensions import csrf, db, login_manager, migrate
from .logger import configure_logging
from .models import User

# Blueprint imports kept inside create_app() where possible to reduce import side effects.


def create_app(config_object: str = "config.Config") -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)

    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id: str) -> User | None:
        """Load user for Flask-Login."""
        try:
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"success": False, "error": "unauthenticated", "message": "Please log in."}), 401

    # ----------------------------------------------------------------------
    # Errors: every engine failure becomes the same JSON envelope
    # ----------------------------------------------------------------------
    @app.errorhandler(ErpError)
    def handle_erp_error(error: ErpError):
        return jsonify(error.to_dict()), error.status_code

    # ----------------------------------------------------------------------
    # Blueprints
    # ----------------------------------------------------------------------
    from .blueprints.auth import auth_bp
    from .blueprints.funds import funds_bp
    from .blueprints.purchases import purchases_bp
    from .blueprints.manufacturing import manufacturing_bp
    from .blueprints.inventory import inventory_bp
    from .blueprints.sales import sales_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(funds_bp)
    app.register_blueprint(purchases_bp)
    app.register_blueprint(manufacturing_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(sales_bp)

    # ----------------------------------------------------------------------
    # CLI
    # ----------------------------------------------------------------------
    @app.cli.command("init-db")
    def init_db_command():
        """Create all tables (development only; use `flask db upgrade` otherwise)."""
        db.create_all()
        click.echo("Database tables created.")

    @app.cli.command("seed-users")
    @click.option("--password", default="change-me", show_default=True, help="Password for new users.")
    def seed_users_command(password: str):
        """Seed one active user per role."""
        from .seed import seed_default_users

        created = seed_default_users(password)
        click.echo(f"Default users seeded ({created} created).")

    # ----------------------------------------------------------------------
    # Home
    # ----------------------------------------------------------------------
    @app.route("/")
    def index():
        return jsonify({"success": True, "app": app.config.get("APP_NAME")})

    return app
