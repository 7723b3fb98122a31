from datetime import datetime
from models.db import db

# courts held by an event (a reservation holds one, a tournament may hold all)
event_courts = db.Table(
    "event_courts",
    db.Column("event_id", db.Integer, db.ForeignKey("events.id"), primary_key=True),
    db.Column("court_id", db.Integer, db.ForeignKey("courts.id"), primary_key=True),
)


class EventType(db.Model):
    __tablename__ = "event_types"

    COURT_RESERVATION = "court_reservation"
    LESSON = "lesson"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(40), unique=True, nullable=False)
    name = db.Column(db.String(80), nullable=False)

    # private events (reservations, lessons) stay off the public calendar
    is_private = db.Column(db.Boolean, default=False, nullable=False)


class Event(db.Model):
    __tablename__ = "events"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(160), nullable=False)
    description = db.Column(db.Text, nullable=True)
    event_type_id = db.Column(db.Integer, db.ForeignKey("event_types.id"), nullable=False, index=True)

    start_time = db.Column(db.DateTime, nullable=False, index=True)
    end_time = db.Column(db.DateTime, nullable=False)

    capacity = db.Column(db.Integer, nullable=True)  # null = unlimited
    cost = db.Column(db.Integer, nullable=False, default=0)  # per participant, minor units
    spotlight = db.Column(db.Boolean, default=False, nullable=False)
    image_path = db.Column(db.String(255), nullable=True)

    coach_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancel_reason = db.Column(db.String(120), nullable=True)

    event_type = db.relationship("EventType")
    courts = db.relationship("Court", secondary=event_courts, lazy="selectin")
    coach = db.relationship("User", foreign_keys=[coach_id])
    registrations = db.relationship("EventRegistration", back_populates="event", lazy="selectin")
    held_hours = db.relationship("HeldHour", cascade="all, delete-orphan")

    @property
    def court_ids(self):
        return [c.id for c in self.courts]

    @property
    def active_registrations(self):
        return [r for r in self.registrations if r.cancelled_at is None]

    @property
    def spots_left(self):
        if self.capacity is None:
            return None
        return max(0, self.capacity - len(self.active_registrations))

    @property
    def is_full(self) -> bool:
        return self.capacity is not None and self.spots_left == 0

    def to_dict(self, viewer_id=None) -> dict:
        participants = [
            {"user_id": r.user_id, "first_name": r.user.first_name, "last_initial": r.user.last_initial}
            for r in self.active_registrations
        ]
        return {
            "id": self.id,
            "name": self.name,
            "type": self.event_type.name if self.event_type else None,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "description": self.description,
            "location": ", ".join(c.name for c in self.courts) or "TBD",
            "court_ids": self.court_ids,
            "coach_id": self.coach_id,
            "capacity": self.capacity,
            "current_participants": len(participants),
            "spots_left": self.spots_left,
            "cost": self.cost,
            "spotlight": self.spotlight,
            "image_path": self.image_path,
            "participants": participants,
            "is_registered": any(p["user_id"] == viewer_id for p in participants) if viewer_id else False,
        }


class EventRegistration(db.Model):
    __tablename__ = "event_registrations"

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey("events.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    payment_status = db.Column(db.String(20), nullable=False, default="UNPAID")
    # status values: UNPAID, PAID, WAIVED
    amount_due = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)

    event = db.relationship("Event", back_populates="registrations")
    user = db.relationship("User")

    __table_args__ = (
        # re-registering reactivates the row instead of adding one
        db.UniqueConstraint("event_id", "user_id", name="uq_registration_event_user"),
    )


class HeldHour(db.Model):
    """One hour a private event holds on a court or a coach."""
    __tablename__ = "held_hours"

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey("events.id"), nullable=False, index=True)
    court_id = db.Column(db.Integer, db.ForeignKey("courts.id"), nullable=True)
    coach_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    starts_at = db.Column(db.DateTime, nullable=False)

    __table_args__ = (
        # Hard business-rule: a court or a coach is booked once per hour (prevents double booking)
        db.UniqueConstraint("court_id", "starts_at", name="uq_held_hour_court"),
        db.UniqueConstraint("coach_id", "starts_at", name="uq_held_hour_coach"),
    )
