from datetime import datetime

from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy.exc import IntegrityError

from models import db
from models.court import Court
from models.event import EventType
from models.user import User
from booking.availability import coach_time_slots, first_free_court, is_coach_free, is_court_free
from booking.slots import SlotSelectionError, span, validate_selection
from utils.audit import log_event
from utils.auth_context import login_required, waiver_required
from utils.emailer import send_booking_confirmation
from utils.memberships import quote
from utils.schedule import book_private_event, booking_grid, events_between, events_on, parse_day, parse_id

lesson_bp = Blueprint("lesson", __name__)


def _coaches():
    return (
        User.query
        .filter(User.is_coach.is_(True), User.first_name.isnot(None), User.last_name.isnot(None))
        .order_by(User.first_name.asc())
        .all()
    )


def _coach_or_none(coach_id: int):
    coach = db.session.get(User, coach_id)
    if coach is None or not coach.is_coach:
        return None
    return coach


@lesson_bp.get("/coaches")
def list_coaches():
    return jsonify([c.coach_dict() for c in _coaches()]), 200


@lesson_bp.get("/coaches/<int:coach_id>")
def get_coach(coach_id: int):
    coach = _coach_or_none(coach_id)
    if coach is None:
        return jsonify(error="Coach not found"), 404
    return jsonify(coach.coach_dict()), 200


@lesson_bp.get("/lessons/availability")
@login_required
def lesson_availability():
    """
    Free hours for one coach (coach_id) or for any coach.
    ?date=YYYY-MM-DD[&coach_id=7]
    """
    try:
        day = parse_day(request.args.get("date"))
    except ValueError:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    coach_id = request.args.get("coach_id", type=int)
    if coach_id:
        coach = _coach_or_none(coach_id)
        if coach is None:
            return jsonify(error="Coach not found"), 404
        coaches = [coach]
        events = events_on(day, coach_id=coach.id)
    else:
        coaches = _coaches()
        events = events_on(day, with_coach=True)

    slots = coach_time_slots(day, [c.id for c in coaches], events, booking_grid(), now=datetime.now())
    if len(coaches) == 1 and coaches[0].coaching_rate is not None:
        hour_price = quote(g.user.id, coaches[0].coaching_rate, 1, EventType.LESSON).final_price
        for slot in slots:
            slot.price = hour_price

    return jsonify(
        date=day.isoformat(),
        coach_id=coach_id,
        max_hours=current_app.config.get("MAX_LESSON_HOURS", 3),
        time_slots=[s.to_dict(key="coaches") for s in slots],
    ), 200


@lesson_bp.post("/lessons")
@waiver_required
def book_lesson():
    """
    {"coach_id": 7, "date": "2026-05-01", "hours": [15, 16], "court_id": 2}
    court_id is optional; the first court free for the block is used.
    """
    data = request.get_json(silent=True) or {}
    max_hours = current_app.config.get("MAX_LESSON_HOURS", 3)

    if data.get("coach_id") is None:
        return jsonify(error="coach_id is required"), 400
    try:
        coach = _coach_or_none(parse_id(data["coach_id"]))
    except ValueError:
        return jsonify(error="coach_id must be a positive integer"), 400
    if coach is None:
        return jsonify(error="Coach not found"), 404
    if coach.coaching_rate is None:
        return jsonify(error="Coach has no rate configured"), 400
    if coach.id == g.user.id:
        return jsonify(error="Coaches cannot book lessons with themselves"), 400

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

    events = events_between(start, end)
    if not is_coach_free(coach.id, start, end, events):
        return jsonify(error="Coach is not available for that time"), 409

    court_id = data.get("court_id")
    if court_id is not None:
        try:
            court = db.session.get(Court, parse_id(court_id))
        except ValueError:
            return jsonify(error="court_id must be a positive integer"), 400
        if not court or not court.is_active:
            return jsonify(error="Court not found"), 404
        if not is_court_free(court.id, start, end, events):
            return jsonify(error="Court already booked for that time"), 409
    else:
        courts = Court.query.filter_by(is_active=True).order_by(Court.name.asc()).all()
        free_id = first_free_court([c.id for c in courts], start, end, events)
        if free_id is None:
            return jsonify(error="No court is free for the whole selection"), 409
        court = db.session.get(Court, free_id)

    pricing = quote(g.user.id, coach.coaching_rate, len(hours), EventType.LESSON)
    total_hours = len(hours)
    try:
        event, registration = book_private_event(
            g.user,
            EventType.LESSON,
            name=f"Private Lesson ({total_hours} hours)" if total_hours > 1 else "Private Lesson",
            description=f"{total_hours}-hour lesson with {coach.display_name}",
            start=start,
            end=end,
            pricing=pricing,
            courts=[court],
            coach=coach,
        )
        log_event(
            "LESSON_CREATE", user_id=g.user.id, entity="event", entity_id=event.id,
            metadata={"coach_id": coach.id, "court_id": court.id, "hours": hours, "final_price": pricing.final_price},
            commit=False,
        )
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        log_event("LESSON_FAIL_TAKEN", user_id=g.user.id, entity="user", entity_id=coach.id)
        return jsonify(error="Coach or court already booked for that time"), 409

    send_booking_confirmation(g.user, event, pricing)
    return jsonify(
        id=event.id,
        registration_id=registration.id,
        coach=coach.coach_dict(),
        court=court.to_dict(),
        start_time=start.isoformat(),
        end_time=end.isoformat(),
        hours=hours,
        payment_status=registration.payment_status,
        pricing=pricing.to_dict(),
    ), 201
