from datetime import datetime
from models.db import db


class MembershipType(db.Model):
    __tablename__ = "membership_types"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(40), unique=True, nullable=False)  # pay_to_play, standard, ultimate
    description = db.Column(db.String(255), nullable=True)
    cost = db.Column(db.Integer, nullable=False, default=0)  # per period, minor units
    stripe_product_id = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    discounts = db.relationship("MembershipEventDiscount", back_populates="membership_type", lazy="selectin")


class MembershipEventDiscount(db.Model):
    __tablename__ = "membership_event_discounts"

    id = db.Column(db.Integer, primary_key=True)
    membership_type_id = db.Column(db.Integer, db.ForeignKey("membership_types.id"), nullable=False)
    event_type_id = db.Column(db.Integer, db.ForeignKey("event_types.id"), nullable=False)
    discount_percentage = db.Column(db.Float, nullable=False, default=0)

    membership_type = db.relationship("MembershipType", back_populates="discounts")
    event_type = db.relationship("EventType")

    __table_args__ = (
        db.UniqueConstraint("membership_type_id", "event_type_id", name="uq_discount_type_event"),
    )


class Membership(db.Model):
    __tablename__ = "memberships"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    membership_type_id = db.Column(db.Integer, db.ForeignKey("membership_types.id"), nullable=False)

    status = db.Column(db.String(20), nullable=False, default="active")
    # status values: active, cancelled, expired
    start_date = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    end_date = db.Column(db.DateTime, nullable=True)

    stripe_payment_intent_id = db.Column(db.String(255), nullable=True, unique=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    membership_type = db.relationship("MembershipType")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "membership_type": self.membership_type.name,
            "status": self.status,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat() if self.end_date else None,
        }
