from datetime import datetime, timedelta, time

from flask import Blueprint, request, jsonify, g

from models import db
from models.event import Event, EventRegistration, EventType
from utils.audit import log_event
from utils.auth_context import login_required, waiver_required
from utils.schedule import parse_day

event_bp = Blueprint("event", __name__, url_prefix="/events")


def _public_events():
    return (
        Event.query
        .join(EventType, Event.event_type_id == EventType.id)
        .filter(EventType.is_private.is_(False), Event.cancelled_at.is_(None))
    )


def _viewer_id():
    user = getattr(g, "user", None)
    return user.id if user else None


@event_bp.get("")
def list_events():
    """
    Calendar for a date range, private reservations and lessons excluded.
    ?from=YYYY-MM-DD&to=YYYY-MM-DD (defaults: today .. +30 days)
    """
    try:
        start_day = parse_day(request.args.get("from")) if request.args.get("from") else datetime.now().date()
        end_day = parse_day(request.args.get("to")) if request.args.get("to") else start_day + timedelta(days=30)
    except ValueError:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400
    if end_day < start_day:
        return jsonify(error="'to' must not be before 'from'"), 400

    start = datetime.combine(start_day, time.min)
    end = datetime.combine(end_day + timedelta(days=1), time.min)
    rows = (
        _public_events()
        .filter(Event.start_time < end, Event.end_time > start)
        .order_by(Event.start_time.asc())
        .all()
    )
    viewer_id = _viewer_id()
    return jsonify([e.to_dict(viewer_id) for e in rows]), 200


@event_bp.get("/spotlight")
def spotlight_events():
    rows = (
        _public_events()
        .filter(Event.spotlight.is_(True), Event.end_time >= datetime.now())
        .order_by(Event.start_time.asc())
        .limit(10)
        .all()
    )
    viewer_id = _viewer_id()
    return jsonify([e.to_dict(viewer_id) for e in rows]), 200


@event_bp.get("/<int:event_id>")
def get_event(event_id: int):
    event = _public_events().filter(Event.id == event_id).first()
    if not event:
        return jsonify(error="Event not found"), 404
    return jsonify(event.to_dict(_viewer_id())), 200


@event_bp.post("/<int:event_id>/register")
@waiver_required
def register_for_event(event_id: int):
    event = _public_events().filter(Event.id == event_id).first()
    if not event:
        return jsonify(error="Event not found"), 404
    if event.start_time <= datetime.now():
        return jsonify(error="Event has already started"), 400

    registration = EventRegistration.query.filter_by(event_id=event.id, user_id=g.user.id).first()
    if registration is not None and registration.cancelled_at is None:
        return jsonify(error="Already registered for this event"), 409
    if event.is_full:
        return jsonify(error="Event is full"), 409

    status = "WAIVED" if event.cost == 0 else "UNPAID"
    if registration is None:
        registration = EventRegistration(event_id=event.id, user_id=g.user.id)
        db.session.add(registration)
    registration.cancelled_at = None
    registration.payment_status = status
    registration.amount_due = event.cost
    db.session.flush()

    log_event("EVENT_REGISTER", user_id=g.user.id, entity="event", entity_id=event.id,
              metadata={"registration_id": registration.id}, commit=False)
    db.session.commit()
    return jsonify(
        message="Registered",
        registration_id=registration.id,
        payment_status=registration.payment_status,
        amount_due=registration.amount_due,
        event=event.to_dict(g.user.id),
    ), 201


@event_bp.post("/<int:event_id>/unregister")
@login_required
def unregister_from_event(event_id: int):
    registration = (
        EventRegistration.query
        .filter_by(event_id=event_id, user_id=g.user.id)
        .filter(EventRegistration.cancelled_at.is_(None))
        .first()
    )
    if registration is None:
        return jsonify(error="Not registered for this event"), 404
    if registration.event.start_time <= datetime.now():
        return jsonify(error="Event has already started"), 400

    registration.cancelled_at = datetime.utcnow()
    log_event("EVENT_UNREGISTER", user_id=g.user.id, entity="event", entity_id=event_id, commit=False)
    db.session.commit()
    return jsonify(message="Unregistered"), 200
