import click
import stripe
from flask import Flask, jsonify
from flask_migrate import Migrate
from sqlalchemy.exc import IntegrityError

from config import Config
from routes import (
    health_bp,
    auth_bp,
    court_bp,
    reservation_bp,
    lesson_bp,
    event_bp,
    membership_bp,
    payments_bp,
    webhook_bp,
    admin_bp,
)
from models import db
from models.user import User, Role
from utils.seed import seed_defaults
from utils.auth_context import load_current_user
from utils.stripe_client import StripeNotConfigured
from security.csrf import protect_request


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Register routes
    for bp in (health_bp, auth_bp, court_bp, reservation_bp, lesson_bp,
               event_bp, membership_bp, payments_bp, webhook_bp, admin_bp):
        app.register_blueprint(bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # Roles, event types and membership tiers (safe & idempotent)
    with app.app_context():
        if app.config.get("AUTO_CREATE_SCHEMA"):
            db.create_all()
        seed_defaults()

    @app.before_request
    def _load_user():
        load_current_user()

    app.before_request(protect_request)

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_error_handlers(app)
    register_cli(app)

    return app


def register_error_handlers(app):
    @app.errorhandler(stripe.StripeError)
    def _stripe_error(exc):
        db.session.rollback()
        app.logger.error("Stripe request failed: %s", exc.user_message or str(exc))
        return jsonify(error="Payment provider error", details=exc.user_message), 502

    @app.errorhandler(IntegrityError)
    def _integrity_error(exc):
        db.session.rollback()
        app.logger.warning("Integrity error: %s", exc.orig)
        return jsonify(error="Conflicting record already exists"), 409

    @app.errorhandler(StripeNotConfigured)
    def _stripe_not_configured(exc):
        app.logger.error("%s", exc)
        return jsonify(error="Payments are not configured"), 500

    @app.errorhandler(404)
    def _not_found(_exc):
        return jsonify(error="Not found"), 404

    @app.errorhandler(405)
    def _method_not_allowed(_exc):
        return jsonify(error="Method not allowed"), 405


def _add_role(user, role_name):
    role = Role.query.filter_by(name=role_name).first()
    if not role:
        role = Role(name=role_name)
        db.session.add(role)
        db.session.flush()
    if role not in user.roles:
        user.roles.append(role)


def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a user to ADMIN by email (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            click.echo("User not found")
            return

        _add_role(user, "ADMIN")
        db.session.commit()
        click.echo(f"{user.email} promoted to ADMIN")

    @app.cli.command("make-coach")
    @click.argument("email")
    @click.option("--rate", type=int, required=True, help="Hourly rate in minor units.")
    def make_coach(email, rate):
        """Mark a user as a bookable coach."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            click.echo("User not found")
            return

        user.is_coach = True
        user.coaching_rate = rate
        _add_role(user, "COACH")
        db.session.commit()
        click.echo(f"{user.email} is now a coach at {rate} per hour")

    @app.cli.command("seed")
    def seed():
        """Insert default roles, event types and membership tiers."""
        seed_defaults()
        click.echo("Defaults seeded")


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
