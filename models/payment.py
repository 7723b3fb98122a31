from datetime import datetime
from models.db import db


class Payment(db.Model):
    __tablename__ = "payments"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    purpose = db.Column(db.String(20), nullable=False)  # RESERVATION, LESSON, EVENT, MEMBERSHIP
    registration_id = db.Column(db.Integer, db.ForeignKey("event_registrations.id"), nullable=True, index=True)
    membership_type_id = db.Column(db.Integer, db.ForeignKey("membership_types.id"), nullable=True)

    amount = db.Column(db.Integer, nullable=False)   # smallest unit
    currency = db.Column(db.String(10), nullable=False, default="mxn")

    status = db.Column(db.String(20), nullable=False, default="INIT")  # INIT, PAID, FAILED
    stripe_payment_intent_id = db.Column(db.String(255), nullable=True, unique=True, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    paid_at = db.Column(db.DateTime, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purpose": self.purpose,
            "registration_id": self.registration_id,
            "membership_type_id": self.membership_type_id,
            "amount": self.amount,
            "currency": self.currency,
            "status": self.status,
            "created_at": self.created_at.isoformat(),
            "paid_at": self.paid_at.isoformat() if self.paid_at else None,
        }
