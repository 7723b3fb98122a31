from datetime import date, datetime, time, timedelta

from flask import current_app

from models import db
from models.event import Event, EventType, EventRegistration, HeldHour
from booking.slots import hourly_slots
from security.rbac import is_staff


def booking_grid():
    return hourly_slots(
        current_app.config.get("BOOKING_OPEN_HOUR", 8),
        current_app.config.get("BOOKING_CLOSE_HOUR", 20),
    )


def parse_day(value) -> date:
    """YYYY-MM-DD (a full ISO datetime is accepted and truncated)."""
    if not value or not isinstance(value, str):
        raise ValueError("date is required (YYYY-MM-DD)")
    return datetime.fromisoformat(value.strip()).date()


def events_between(start: datetime, end: datetime, *, coach_id=None, with_coach=False):
    """Non-cancelled events overlapping [start, end)."""
    q = Event.query.filter(
        Event.cancelled_at.is_(None),
        Event.start_time < end,
        Event.end_time > start,
    )
    if coach_id is not None:
        q = q.filter(Event.coach_id == coach_id)
    elif with_coach:
        q = q.filter(Event.coach_id.isnot(None))
    return q.order_by(Event.start_time.asc()).all()


def events_on(day: date, **filters):
    start = datetime.combine(day, time.min)
    return events_between(start, start + timedelta(days=1), **filters)


def parse_id(value) -> int:
    """Positive integer id from a JSON body; ValueError for anything else."""
    if isinstance(value, bool):
        raise ValueError("id must be a positive integer")
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValueError("id must be a positive integer")
    if parsed < 1:
        raise ValueError("id must be a positive integer")
    return parsed


def event_type(code: str) -> EventType:
    row = EventType.query.filter_by(code=code).first()
    if row is None:
        raise LookupError(f"Event type {code!r} is not configured")
    return row


def _held_hours(start, end, courts, coach):
    rows = []
    hour = start
    while hour < end:
        rows.extend(HeldHour(court_id=c.id, starts_at=hour) for c in courts)
        if coach is not None:
            rows.append(HeldHour(coach_id=coach.id, starts_at=hour))
        hour += timedelta(hours=1)
    return rows


def release_hours(event):
    """Frees the courts and coach a cancelled event was holding."""
    event.held_hours = []


def book_private_event(user, type_code, name, description, start, end, pricing, courts=(), coach=None):
    """
    Creates the event that holds the courts/coach plus the user's registration.
    Staff and free bookings are marked WAIVED, everything else waits for payment.
    Every hour is also written to held_hours, so a concurrent booking of the
    same court or coach fails with IntegrityError on flush. Caller commits.
    """
    event = Event(
        name=name,
        description=description,
        event_type_id=event_type(type_code).id,
        start_time=start,
        end_time=end,
        capacity=1,
        cost=pricing.final_price,
        coach_id=coach.id if coach is not None else None,
        created_by=user.id,
    )
    event.courts = list(courts)
    event.held_hours = _held_hours(start, end, event.courts, coach)
    db.session.add(event)
    db.session.flush()

    waived = pricing.final_price == 0 or is_staff(user)
    registration = EventRegistration(
        event_id=event.id,
        user_id=user.id,
        payment_status="WAIVED" if waived else "UNPAID",
        amount_due=pricing.final_price,
    )
    db.session.add(registration)
    db.session.flush()
    return event, registration


def registration_kind(event) -> str:
    code = event.event_type.code if event.event_type else None
    if code == EventType.COURT_RESERVATION:
        return "reservation"
    if code == EventType.LESSON:
        return "lesson"
    return "event"


def registration_dict(registration) -> dict:
    event = registration.event
    return {
        "id": registration.id,
        "event_id": event.id,
        "type": registration_kind(event),
        "title": event.name,
        "start_time": event.start_time.isoformat(),
        "end_time": event.end_time.isoformat(),
        "location": ", ".join(c.name for c in event.courts) or "TBD",
        "court_name": event.courts[0].name if event.courts else None,
        "coach_name": event.coach.display_name if event.coach is not None else None,
        "payment_status": registration.payment_status,
        "amount_due": registration.amount_due,
        "cancelled": event.cancelled_at is not None or registration.cancelled_at is not None,
    }
