"""
Shared test fixtures.

Every test gets a fresh app on an in-memory SQLite database with the default
roles, event types and membership tiers seeded. Stripe is never called for
real; payment tests patch the SDK calls they need.
"""

from datetime import date, timedelta

import pytest

from app import create_app
from config import Config
from models import db
from models.court import Court
from models.membership import MembershipType
from models.user import User, Role
from utils.memberships import activate_membership

PASSWORD = "Pickle1234"


class TestConfig(Config):
    __test__ = False

    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    AUTO_CREATE_SCHEMA = True
    BCRYPT_ROUNDS = 4
    LOGIN_RATE_MAX_REQUESTS = 1000
    STRIPE_SECRET_KEY = "sk_test_123"
    STRIPE_WEBHOOK_SECRET = "whsec_test"
    SMTP_HOST = None
    LOG_LEVEL = "WARNING"


@pytest.fixture()
def app():
    app = create_app(TestConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def future_day():
    """A day far enough ahead that every slot is bookable and cancellable."""
    return date.today() + timedelta(days=3)


# ── Helpers ────────────────────────────────────────────────────────────────


def register(client, email, password=PASSWORD, **profile):
    return client.post("/auth/register", json={"email": email, "password": password, **profile})


def login_mobile(client, email, password=PASSWORD):
    resp = client.post("/auth/login", json={"email": email, "password": password, "client": "mobile"})
    assert resp.status_code == 200, resp.get_json()
    return {"Authorization": f"Bearer {resp.get_json()['access_token']}"}


def sign_waiver(client, headers):
    resp = client.post("/auth/waiver", json={"accepted": True}, headers=headers)
    assert resp.status_code == 200


@pytest.fixture()
def make_player(client):
    """Registers, logs in (Bearer) and signs the waiver. Returns auth headers."""
    def _make(email="player@example.com", waiver=True, **profile):
        profile.setdefault("first_name", "Pat")
        profile.setdefault("last_name", "Player")
        assert register(client, email, **profile).status_code == 201
        headers = login_mobile(client, email)
        if waiver:
            sign_waiver(client, headers)
        return headers
    return _make


@pytest.fixture()
def courts(app):
    with app.app_context():
        rows = [Court(name="Court 1", hourly_rate=2500), Court(name="Court 2", hourly_rate=2500)]
        db.session.add_all(rows)
        db.session.commit()
        return [c.id for c in rows]


def promote(app, email, role_name):
    with app.app_context():
        user = User.query.filter_by(email=email).first()
        role = Role.query.filter_by(name=role_name).first()
        user.roles.append(role)
        db.session.commit()
        return user.id


@pytest.fixture()
def coach(app, client):
    """A bookable coach at 50000/hour. Returns the coach's user id."""
    email = "coach@example.com"
    assert register(client, email, first_name="Casey", last_name="Coach").status_code == 201
    with app.app_context():
        user = User.query.filter_by(email=email).first()
        user.is_coach = True
        user.coaching_rate = 50000
        user.specialties = ["dinking", "third shot drop"]
        db.session.commit()
        return user.id


def give_membership(app, email, tier):
    with app.app_context():
        user = User.query.filter_by(email=email).first()
        membership_type = MembershipType.query.filter_by(name=tier).first()
        activate_membership(user.id, membership_type.id)
        db.session.commit()
