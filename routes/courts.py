from datetime import datetime

from flask import Blueprint, request, jsonify, g, current_app

from models import db
from models.court import Court
from models.event import EventType
from booking.availability import court_time_slots, is_court_free
from booking.slots import SlotSelection, SlotSelectionError, adjacent_hours, parse_hour, validate_selection
from utils.auth_context import login_required
from utils.memberships import quote
from utils.schedule import booking_grid, events_on, parse_day

court_bp = Blueprint("court", __name__, url_prefix="/courts")


def _active_courts():
    return Court.query.filter_by(is_active=True).order_by(Court.name.asc()).all()


@court_bp.get("")
def list_courts():
    return jsonify([c.to_dict() for c in _active_courts()]), 200


@court_bp.get("/availability")
@login_required
def court_availability():
    """
    Free hours for one court (court_id) or for any court.
    ?date=YYYY-MM-DD[&court_id=3]
    """
    try:
        day = parse_day(request.args.get("date"))
    except ValueError:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    court_id = request.args.get("court_id", type=int)
    if court_id:
        court = db.session.get(Court, court_id)
        if not court or not court.is_active:
            return jsonify(error="Court not found"), 404
        courts = [court]
    else:
        courts = _active_courts()

    slots = court_time_slots(
        day, [c.id for c in courts], events_on(day), booking_grid(), now=datetime.now()
    )
    rate = courts[0].hourly_rate if len(courts) == 1 else current_app.config.get("DEFAULT_COURT_RATE")
    hour_price = quote(g.user.id, rate, 1, EventType.COURT_RESERVATION).final_price
    for slot in slots:
        slot.price = hour_price

    return jsonify(
        date=day.isoformat(),
        court_id=court_id,
        max_hours=current_app.config.get("MAX_RESERVATION_HOURS", 3),
        time_slots=[s.to_dict() for s in slots],
    ), 200


@court_bp.post("/selection")
@login_required
def toggle_selection():
    """
    Applies one tap to a selection the way the booking wizard does:
    {"hours": [9, 10], "toggle": 11, "max_hours": 3}
    """
    data = request.get_json(silent=True) or {}
    configured_max = current_app.config.get("MAX_RESERVATION_HOURS", 3)
    max_hours = data.get("max_hours") or configured_max
    if not isinstance(max_hours, int) or not 1 <= max_hours <= configured_max:
        return jsonify(error=f"max_hours must be between 1 and {configured_max}"), 400

    try:
        selection = SlotSelection(max_hours, [parse_hour(h) for h in data.get("hours") or []])
        hour = parse_hour(data.get("toggle"))
        if hour not in {s.start_hour for s in booking_grid()}:
            return jsonify(error="Hour is outside booking hours"), 400
        selection.toggle(hour)
    except SlotSelectionError as exc:
        return jsonify(error=str(exc)), 400

    return jsonify(selection.to_dict()), 200


@court_bp.post("/<int:court_id>/adjacent")
@login_required
def adjacent_availability(court_id: int):
    """
    Hours the current selection could grow into, with the single hour price.
    {"date": "2026-05-01", "hours": [10, 11]}
    """
    data = request.get_json(silent=True) or {}
    court = db.session.get(Court, court_id)
    if not court or not court.is_active:
        return jsonify(error="Court not found"), 404

    max_hours = current_app.config.get("MAX_RESERVATION_HOURS", 3)
    grid = booking_grid()
    try:
        day = parse_day(data.get("date"))
    except ValueError:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400
    try:
        hours = validate_selection(data.get("hours"), max_hours, grid)
    except SlotSelectionError as exc:
        return jsonify(error=str(exc)), 400

    events = events_on(day)
    out = {}
    for key, slot in zip(("hour_before", "hour_after"), adjacent_hours(hours, grid, max_hours)):
        if slot is not None and is_court_free(court.id, *slot.bounds(day), events):
            out[key] = {"start_time": slot.start_label, "end_time": slot.end_label, "hour": slot.start_hour}
        else:
            out[key] = None

    pricing = quote(g.user.id, court.hourly_rate, 1, EventType.COURT_RESERVATION)
    return jsonify(add_hour_pricing=pricing.to_dict(), **out), 200
