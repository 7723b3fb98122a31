from datetime import datetime, timedelta
from flask import current_app

from models import db
from models.ip_rate_limit import IpRateLimit
from security.client import client_ip


def check_and_increment(bucket: str, window_seconds: int, max_requests: int) -> tuple[bool, int]:
    """
    Fixed window counter per (ip, bucket). Returns (allowed, retry_after_seconds).
    """
    ip = client_ip()
    now = datetime.utcnow()

    row = IpRateLimit.query.filter_by(ip=ip, bucket=bucket).first()
    if not row:
        row = IpRateLimit(ip=ip, bucket=bucket, window_start=now, count=0)
        db.session.add(row)

    window_end = row.window_start + timedelta(seconds=window_seconds)
    if now >= window_end:
        row.window_start = now
        row.count = 0
        window_end = now + timedelta(seconds=window_seconds)

    row.count += 1
    db.session.commit()

    if row.count > max_requests:
        return False, max(int((window_end - now).total_seconds()), 1)
    return True, 0


def check_and_increment_login_rate() -> tuple[bool, int]:
    return check_and_increment(
        "login",
        current_app.config.get("LOGIN_RATE_WINDOW_SECONDS", 60),
        current_app.config.get("LOGIN_RATE_MAX_REQUESTS", 15),
    )
