from routes.health import health_bp
from routes.auth import auth_bp
from routes.courts import court_bp
from routes.reservations import reservation_bp
from routes.lessons import lesson_bp
from routes.events import event_bp
from routes.memberships import membership_bp
from routes.payments import payments_bp
from routes.stripe_webhook import webhook_bp
from routes.admin import admin_bp

__all__ = [
    "health_bp",
    "auth_bp",
    "court_bp",
    "reservation_bp",
    "lesson_bp",
    "event_bp",
    "membership_bp",
    "payments_bp",
    "webhook_bp",
    "admin_bp",
]
