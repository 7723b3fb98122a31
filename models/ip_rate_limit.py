from models.db import db


class IpRateLimit(db.Model):
    """Fixed window request counter, one row per (ip, bucket)."""
    __tablename__ = "ip_rate_limits"
    __table_args__ = (
        db.UniqueConstraint("ip", "bucket", name="uq_rate_limit_ip_bucket"),
    )

    id = db.Column(db.Integer, primary_key=True)
    ip = db.Column(db.String(64), nullable=False, index=True)
    bucket = db.Column(db.String(40), nullable=False, default="login")

    window_start = db.Column(db.DateTime, nullable=False)
    count = db.Column(db.Integer, default=0, nullable=False)
