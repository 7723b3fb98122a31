from datetime import datetime, timedelta

from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy.exc import IntegrityError

from models import db
from models.court import Court
from models.event import Event, EventRegistration, EventType
from booking.availability import first_free_court, is_court_free
from booking.slots import SlotSelectionError, span, validate_selection
from security.rbac import has_role, ADMIN
from utils.audit import log_event
from utils.auth_context import login_required, waiver_required
from utils.emailer import send_booking_confirmation
from utils.memberships import quote
from utils.schedule import (
    book_private_event,
    booking_grid,
    events_between,
    parse_day,
    parse_id,
    registration_dict,
    release_hours,
)

reservation_bp = Blueprint("reservation", __name__)


# ---------- PLAYERS: reserve a court for consecutive hours ----------
@reservation_bp.post("/reservations")
@waiver_required
def create_reservation():
    """
    {"date": "2026-05-01", "hours": [9, 10], "court_id": 2}
    Without court_id the first court free for the whole block is used.
    """
    data = request.get_json(silent=True) or {}
    max_hours = current_app.config.get("MAX_RESERVATION_HOURS", 3)

    try:
        day = parse_day(data.get("date"))
    except ValueError:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400
    try:
        hours = validate_selection(data.get("hours"), max_hours, booking_grid())
    except SlotSelectionError as exc:
        return jsonify(error=str(exc)), 400

    start, end = span(day, hours)
    if start < datetime.now().replace(minute=0, second=0, microsecond=0):
        return jsonify(error="Cannot book past time slots"), 400

    # same-day events read right before the insert; a held court is a 409
    events = events_between(start, end)
    court_id = data.get("court_id")
    if court_id is not None:
        try:
            court = db.session.get(Court, parse_id(court_id))
        except ValueError:
            return jsonify(error="court_id must be a positive integer"), 400
        if not court or not court.is_active:
            return jsonify(error="Court not found"), 404
        if not is_court_free(court.id, start, end, events):
            log_event("RESERVATION_FAIL_COURT_TAKEN", user_id=g.user.id, entity="court", entity_id=court.id)
            return jsonify(error="Court already booked for that time"), 409
    else:
        courts = Court.query.filter_by(is_active=True).order_by(Court.name.asc()).all()
        free_id = first_free_court([c.id for c in courts], start, end, events)
        if free_id is None:
            return jsonify(error="No court is free for the whole selection"), 409
        court = db.session.get(Court, free_id)

    pricing = quote(g.user.id, court.hourly_rate, len(hours), EventType.COURT_RESERVATION)
    total_hours = len(hours)
    try:
        event, registration = book_private_event(
            g.user,
            EventType.COURT_RESERVATION,
            name=f"Court Reservation ({total_hours} hours)" if total_hours > 1 else "Court Reservation",
            description=f"{total_hours}-hour court reservation for {court.name}",
            start=start,
            end=end,
            pricing=pricing,
            courts=[court],
        )
        log_event(
            "RESERVATION_CREATE", user_id=g.user.id, entity="event", entity_id=event.id,
            metadata={"court_id": court.id, "hours": hours, "final_price": pricing.final_price},
            commit=False,
        )
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        # uq_held_hour_court triggers here when another booking won the race
        log_event("RESERVATION_FAIL_COURT_TAKEN", user_id=g.user.id, entity="court", entity_id=court.id)
        return jsonify(error="Court already booked for that time"), 409

    send_booking_confirmation(g.user, event, pricing)
    return jsonify(
        id=event.id,
        registration_id=registration.id,
        court=court.to_dict(),
        start_time=start.isoformat(),
        end_time=end.isoformat(),
        hours=hours,
        payment_status=registration.payment_status,
        pricing=pricing.to_dict(),
    ), 201


def _own_private_event(event_id: int):
    event = db.session.get(Event, event_id)
    if not event or event.cancelled_at is not None:
        return None, None
    if not event.event_type.is_private:
        return None, None
    registration = EventRegistration.query.filter_by(event_id=event.id, user_id=g.user.id).first()
    if registration is None and not has_role(ADMIN):
        return None, None
    return event, registration


@reservation_bp.get("/reservations/<int:event_id>")
@login_required
def get_reservation(event_id: int):
    event, registration = _own_private_event(event_id)
    if event is None or registration is None:
        return jsonify(error="Reservation not found"), 404
    return jsonify(registration_dict(registration)), 200


# ---------- PLAYERS: cancel a reservation or lesson (policy window) ----------
@reservation_bp.post("/reservations/<int:event_id>/cancel")
@login_required
def cancel_reservation(event_id: int):
    data = request.get_json(silent=True) or {}
    reason = (data.get("reason") or "").strip()[:120] or None

    event, registration = _own_private_event(event_id)
    if event is None:
        return jsonify(error="Reservation not found"), 404

    cutoff_hours = current_app.config.get("CANCEL_CUTOFF_HOURS", 12)
    if event.start_time - datetime.now() < timedelta(hours=cutoff_hours) and not has_role(ADMIN):
        return jsonify(error=f"Cancellation not allowed within {cutoff_hours} hours of start"), 403

    now = datetime.utcnow()
    event.cancelled_at = now
    event.cancel_reason = reason
    release_hours(event)
    for reg in event.active_registrations:
        reg.cancelled_at = now

    log_event("RESERVATION_CANCEL", user_id=g.user.id, entity="event", entity_id=event.id,
              metadata={"reason": reason}, commit=False)
    db.session.commit()
    return jsonify(message="Cancelled"), 200


@reservation_bp.post("/lessons/<int:event_id>/cancel")
@login_required
def cancel_lesson(event_id: int):
    return cancel_reservation(event_id)


# ---------- PLAYERS: everything I'm signed up for ----------
@reservation_bp.get("/registrations/me")
@login_required
def my_registrations():
    include_past = request.args.get("include_past", "false").lower() == "true"

    q = (
        EventRegistration.query
        .join(Event, EventRegistration.event_id == Event.id)
        .filter(
            EventRegistration.user_id == g.user.id,
            EventRegistration.cancelled_at.is_(None),
            Event.cancelled_at.is_(None),
        )
    )
    if not include_past:
        q = q.filter(Event.end_time >= datetime.now())

    rows = q.order_by(Event.start_time.asc()).all()
    return jsonify([registration_dict(r) for r in rows]), 200
