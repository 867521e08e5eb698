"""
salesflow/__init__.py

Flask application factory for the SalesFlow business workflow tracker.

Architecture:
- JSON API only (the browser front end is served separately).
- Lifecycle modules (lifecycle, documents, approval, linkage, exports) hold
  the rules; blueprints translate HTTP into Actor + payload and back.
- SalesFlowError subclasses are rendered as {"error": {"kind", "message"}}
  with their HTTP status. Nothing else leaks stack traces to clients.
"""

from __future__ import annotations

import logging

import click
from flask import Flask, jsonify, send_file
from flask_login import login_required
from werkzeug.exceptions import HTTPException

from .attachments import LocalAttachmentStore
from .errors import NotFound, SalesFlowError, Unauthenticated
from .extensions import csrf, db, login_manager, migrate
from .models import User

logger = logging.getLogger(__name__)

HTTP_ERROR_KINDS = {
    400: "validation_error",
    401: "unauthenticated",
    403: "forbidden",
    404: "not_found",
}


def _configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    logging.getLogger("salesflow").setLevel(level)


def create_app(test_config: dict | None = None) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object("config.Config")
    if test_config:
        app.config.update(test_config)

    _configure_logging(app)

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    login_manager.init_app(app)

    app.extensions["salesflow.attachments"] = LocalAttachmentStore(app.config["UPLOAD_DIR"])

    @login_manager.user_loader
    def load_user(user_id: str) -> User | None:
        """Load user for Flask-Login. Deactivated accounts lose their session."""
        try:
            user = db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None
        if user is None or not user.is_active:
            return None
        return user

    @login_manager.unauthorized_handler
    def unauthorized():
        raise Unauthenticated()

    # ----------------------------------------------------------------------
    # Errors
    # ----------------------------------------------------------------------
    @app.errorhandler(SalesFlowError)
    def handle_domain_error(exc: SalesFlowError):
        if exc.status_code >= 500:
            logger.error("%s: %s", exc.kind, exc.message)
        return jsonify({"error": exc.to_dict()}), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        kind = HTTP_ERROR_KINDS.get(exc.code, exc.name.lower().replace(" ", "_"))
        return jsonify({"error": {"kind": kind, "message": exc.description}}), exc.code

    # ----------------------------------------------------------------------
    # Blueprints
    # ----------------------------------------------------------------------
    from .blueprints.auth import auth_bp
    from .blueprints.queries import queries_bp
    from .blueprints.quotations import quotations_bp
    from .blueprints.purchase_orders import purchase_orders_bp
    from .blueprints.invoices import invoices_bp
    from .blueprints.users import users_bp
    from .blueprints.admin import admin_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(queries_bp)
    app.register_blueprint(quotations_bp)
    app.register_blueprint(purchase_orders_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(admin_bp)

    # ----------------------------------------------------------------------
    # Shared read endpoints
    # ----------------------------------------------------------------------
    @app.route("/api/suggestions/<kind>")
    @login_required
    def suggestions(kind: str):
        """Autocomplete values learned from queries (org, client, supplier)."""
        from .utils import get_suggestions

        return jsonify(get_suggestions(kind))

    @app.route("/uploads/<path:filename>")
    @login_required
    def uploaded_file(filename: str):
        """Serve a stored attachment or export to any logged-in user."""
        path = app.extensions["salesflow.attachments"].resolve(filename)
        if path is None:
            raise NotFound("File", filename)
        return send_file(path)

    # ----------------------------------------------------------------------
    # CLI
    # ----------------------------------------------------------------------
    @app.cli.command("init-db")
    def init_db_command():
        """Create all tables (development; use `flask db upgrade` in production)."""
        db.create_all()
        click.echo("Database tables created.")

    @app.cli.command("seed-admin")
    def seed_admin_command():
        """Create the configured admin user if no user exists."""
        from .seed import seed_default_admin

        user = seed_default_admin()
        if user is None:
            click.echo("Users already exist; nothing seeded.")
        else:
            click.echo(f"Admin user '{user.username}' created.")

    @app.cli.command("purge-deleted")
    @click.option("--days", type=int, default=None, help="Retention in days (default RETENTION_DAYS).")
    def purge_deleted_command(days: int | None):
        """Hard-delete queries soft-deleted longer than the retention period."""
        from .retention import purge_deleted_queries

        purged = purge_deleted_queries(days if days is not None else app.config["RETENTION_DAYS"])
        click.echo(f"Purged {purged} deleted queries.")

    # ----------------------------------------------------------------------
    # Startup
    # ----------------------------------------------------------------------
    if app.config.get("AUTO_CREATE_SCHEMA"):
        from .seed import seed_default_admin

        with app.app_context():
            db.create_all()
            seed_default_admin()

    interval = int(app.config.get("RETENTION_SWEEP_INTERVAL") or 0)
    if interval > 0 and not app.testing:
        from .retention import RetentionSweeper

        sweeper = RetentionSweeper(app, interval, app.config["RETENTION_DAYS"])
        app.extensions["salesflow.sweeper"] = sweeper
        sweeper.start()

    return app
