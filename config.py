import os

from dotenv import load_dotenv

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

# .env in the project root is optional
load_dotenv(os.path.join(BASE_DIR, ".env"))


class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to app.py as pickleclub.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "pickleclub.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # create_all() at startup (dev/tests); production runs `flask db upgrade`
    AUTO_CREATE_SCHEMA = os.getenv("AUTO_CREATE_SCHEMA", "true").lower() == "true"

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # Session cookie name for the web client; mobile sends the same token as Bearer
    AUTH_COOKIE_NAME = "pickleclub_session"

    # 30 days, the mobile app stays signed in
    SESSION_LIFETIME_SECONDS = 30 * 24 * 60 * 60

    # Idle timeout: 7 days
    IDLE_TIMEOUT_SECONDS = 7 * 24 * 60 * 60

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"

    BCRYPT_ROUNDS = 12
    PASSWORD_MIN_LEN = 8

    # Brute-force protection
    MAX_LOGIN_ATTEMPTS = 5
    LOCKOUT_MINUTES = 5

    # Fixed window rate limit for the login endpoint
    LOGIN_RATE_WINDOW_SECONDS = 60
    LOGIN_RATE_MAX_REQUESTS = 15

    # Booking grid: first slot starts at OPEN, last slot ends at CLOSE
    BOOKING_OPEN_HOUR = int(os.getenv("BOOKING_OPEN_HOUR", "8"))
    BOOKING_CLOSE_HOUR = int(os.getenv("BOOKING_CLOSE_HOUR", "20"))

    # Consecutive hours per booking (the web court flow used 4)
    MAX_RESERVATION_HOURS = int(os.getenv("MAX_RESERVATION_HOURS", "3"))
    MAX_LESSON_HOURS = int(os.getenv("MAX_LESSON_HOURS", "3"))

    # Cancellation policy
    CANCEL_CUTOFF_HOURS = 12

    # Reservations and lessons need a signed waiver first
    REQUIRE_WAIVER = True

    # Prices are stored in minor units of this currency
    CURRENCY = os.getenv("CURRENCY", "mxn")
    DEFAULT_COURT_RATE = 2500

    MEMBERSHIP_PERIOD_MONTHS = 1

    # Stripe
    STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")

    # Email (SMTP), booking confirmations
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

    DEBUG = False
