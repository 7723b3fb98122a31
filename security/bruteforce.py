from datetime import datetime, timedelta
from flask import current_app

from models import db
from models.login_attempt import LoginAttempt
from security.client import client_ip


def _row(email: str):
    return LoginAttempt.query.filter_by(email=email, ip=client_ip()).first()


def is_locked(email: str) -> tuple[bool, int]:
    """
    Returns (locked, seconds_remaining) for this email from this IP.
    """
    row = _row(email)
    if not row or not row.locked_until:
        return False, 0

    now = datetime.utcnow()
    if row.locked_until <= now:
        return False, 0
    return True, max(int((row.locked_until - now).total_seconds()), 1)


def register_failure(email: str) -> tuple[int, bool]:
    """
    Increments the failure counter. Returns (fail_count, locked_now).
    An expired lock starts a fresh count.
    """
    now = datetime.utcnow()
    row = _row(email)
    if not row:
        row = LoginAttempt(email=email, ip=client_ip(), fail_count=0)
        db.session.add(row)
    elif row.locked_until and row.locked_until <= now:
        row.fail_count = 0
        row.locked_until = None

    row.fail_count += 1
    row.last_fail_at = now

    max_attempts = current_app.config.get("MAX_LOGIN_ATTEMPTS", 5)
    lock_minutes = current_app.config.get("LOCKOUT_MINUTES", 5)

    locked_now = row.fail_count >= max_attempts
    if locked_now:
        row.locked_until = now + timedelta(minutes=lock_minutes)

    db.session.commit()
    return row.fail_count, locked_now


def reset_attempts(email: str):
    row = _row(email)
    if not row:
        return
    db.session.delete(row)
    db.session.commit()
