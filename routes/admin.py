from datetime import datetime, timedelta

from flask import Blueprint, jsonify, g, request
from sqlalchemy.exc import IntegrityError

from security.rbac import require_roles, ADMIN, COACH
from utils.audit import log_event
from utils.schedule import event_type, parse_day, parse_id, registration_dict, release_hours
from models import db
from models.audit_log import AuditLog
from models.user import User, Role
from models.court import Court
from models.event import Event, EventRegistration, EventType

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


def _parse_datetime(value):
    if not value or not isinstance(value, str):
        raise ValueError("datetime required")
    return datetime.fromisoformat(value.strip()).replace(tzinfo=None)


def _non_negative_int(value, default=None):
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError
    return value


# ---------- courts ----------
@admin_bp.post("/courts")
@require_roles(ADMIN)
def create_court():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    if not name or len(name) > 120:
        return jsonify(error="name is required (max 120 chars)"), 400
    try:
        rate = _non_negative_int(data.get("hourly_rate"), default=2500)
    except ValueError:
        return jsonify(error="hourly_rate must be a non-negative integer (minor units)"), 400

    court = Court(name=name, location=(data.get("location") or "").strip() or None, hourly_rate=rate)
    db.session.add(court)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="A court with that name already exists"), 409

    log_event("ADMIN_COURT_CREATE", user_id=g.user.id, entity="court", entity_id=court.id)
    return jsonify(court.to_dict()), 201


@admin_bp.patch("/courts/<int:court_id>")
@require_roles(ADMIN)
def update_court(court_id: int):
    court = db.session.get(Court, court_id)
    if not court:
        return jsonify(error="Court not found"), 404

    data = request.get_json(silent=True) or {}
    if "hourly_rate" in data:
        try:
            court.hourly_rate = _non_negative_int(data["hourly_rate"])
        except ValueError:
            return jsonify(error="hourly_rate must be a non-negative integer (minor units)"), 400
    if "is_active" in data:
        court.is_active = bool(data["is_active"])
    if "location" in data:
        court.location = (data.get("location") or "").strip() or None

    db.session.commit()
    log_event("ADMIN_COURT_UPDATE", user_id=g.user.id, entity="court", entity_id=court.id,
              metadata={k: data[k] for k in ("hourly_rate", "is_active", "location") if k in data})
    return jsonify(court.to_dict()), 200


# ---------- events (clinics, tournaments, socials) ----------
@admin_bp.post("/events")
@require_roles(ADMIN, COACH)
def create_event():
    """
    {"name": "...", "event_type": "clinic", "start_time": "2026-05-01T09:00",
     "end_time": "2026-05-01T11:00", "capacity": 16, "cost": 15000,
     "court_ids": [1, 2], "spotlight": true, "coach_id": 7}
    """
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    if not name or len(name) > 160:
        return jsonify(error="name is required (max 160 chars)"), 400

    try:
        etype = event_type(data.get("event_type") or "")
    except LookupError:
        return jsonify(error="Unknown event_type"), 400
    if etype.is_private:
        return jsonify(error="Reservations and lessons are booked through their own endpoints"), 400

    try:
        start = _parse_datetime(data.get("start_time"))
        end = _parse_datetime(data.get("end_time"))
    except ValueError:
        return jsonify(error="start_time and end_time must be ISO datetimes"), 400
    if end <= start:
        return jsonify(error="end_time must be after start_time"), 400

    try:
        capacity = _non_negative_int(data.get("capacity"))
        cost = _non_negative_int(data.get("cost"), default=0)
    except ValueError:
        return jsonify(error="capacity and cost must be non-negative integers"), 400

    raw_court_ids = data.get("court_ids") or []
    if not isinstance(raw_court_ids, list):
        return jsonify(error="court_ids must be a list of ids"), 400
    try:
        court_ids = sorted({parse_id(v) for v in raw_court_ids})
    except ValueError:
        return jsonify(error="court_ids must be a list of ids"), 400
    courts = Court.query.filter(Court.id.in_(court_ids)).all() if court_ids else []
    if len(courts) != len(court_ids):
        return jsonify(error="Unknown court in court_ids"), 400

    coach = None
    if data.get("coach_id") is not None:
        try:
            coach = db.session.get(User, parse_id(data["coach_id"]))
        except ValueError:
            return jsonify(error="coach_id must be a positive integer"), 400
        if coach is None or not coach.is_coach:
            return jsonify(error="Coach not found"), 404

    event = Event(
        name=name,
        description=(data.get("description") or "").strip() or None,
        event_type_id=etype.id,
        start_time=start,
        end_time=end,
        capacity=capacity,
        cost=cost,
        spotlight=bool(data.get("spotlight")),
        coach_id=coach.id if coach else None,
        created_by=g.user.id,
    )
    event.courts = courts
    db.session.add(event)
    db.session.flush()
    log_event("ADMIN_EVENT_CREATE", user_id=g.user.id, entity="event", entity_id=event.id,
              metadata={"event_type": etype.code, "court_ids": court_ids}, commit=False)
    db.session.commit()
    return jsonify(event.to_dict()), 201


@admin_bp.post("/events/<int:event_id>/cancel")
@require_roles(ADMIN)
def cancel_event(event_id: int):
    data = request.get_json(silent=True) or {}
    reason = (data.get("reason") or "").strip()[:120] or None

    event = db.session.get(Event, event_id)
    if not event:
        return jsonify(error="Event not found"), 404
    if event.cancelled_at is not None:
        return jsonify(error="Event already cancelled"), 400

    now = datetime.utcnow()
    event.cancelled_at = now
    event.cancel_reason = reason
    release_hours(event)
    affected = 0
    for reg in event.active_registrations:
        reg.cancelled_at = now
        affected += 1

    log_event("ADMIN_EVENT_CANCEL", user_id=g.user.id, entity="event", entity_id=event.id,
              metadata={"reason": reason, "registrations": affected}, commit=False)
    db.session.commit()
    return jsonify(message="Event cancelled", cancelled_registrations=affected), 200


@admin_bp.get("/reservations")
@require_roles(ADMIN)
def day_reservations():
    """Front desk view: every reservation and lesson on ?date=YYYY-MM-DD."""
    try:
        day = parse_day(request.args.get("date"))
    except ValueError:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    start = datetime(day.year, day.month, day.day)
    end = start + timedelta(days=1)
    rows = (
        EventRegistration.query
        .join(Event, EventRegistration.event_id == Event.id)
        .join(EventType, Event.event_type_id == EventType.id)
        .filter(
            EventType.is_private.is_(True),
            Event.start_time >= start,
            Event.start_time < end,
            Event.cancelled_at.is_(None),
            EventRegistration.cancelled_at.is_(None),
        )
        .order_by(Event.start_time.asc())
        .all()
    )
    return jsonify([
        {**registration_dict(r), "user_id": r.user_id, "user_email": r.user.email}
        for r in rows
    ]), 200


# ---------- people ----------
@admin_bp.post("/coaches/<int:user_id>")
@require_roles(ADMIN)
def promote_coach(user_id: int):
    """{"coaching_rate": 50000, "bio": "...", "specialties": ["dinking"], "dupr_rating": 4.5}"""
    data = request.get_json(silent=True) or {}
    user = db.session.get(User, user_id)
    if not user:
        return jsonify(error="User not found"), 404

    try:
        rate = _non_negative_int(data.get("coaching_rate"))
    except ValueError:
        return jsonify(error="coaching_rate must be a non-negative integer (minor units)"), 400
    if rate is None:
        return jsonify(error="coaching_rate is required"), 400

    specialties = data.get("specialties") or []
    if not isinstance(specialties, list) or not all(isinstance(s, str) for s in specialties):
        return jsonify(error="specialties must be a list of strings"), 400

    user.is_coach = True
    user.coaching_rate = rate
    user.bio = (data.get("bio") or "").strip() or user.bio
    user.specialties = specialties or user.specialties
    if data.get("dupr_rating") is not None:
        try:
            user.dupr_rating = float(data["dupr_rating"])
        except (TypeError, ValueError):
            return jsonify(error="dupr_rating must be a number"), 400

    coach_role = Role.query.filter_by(name=COACH).first()
    if coach_role and coach_role not in user.roles:
        user.roles.append(coach_role)

    db.session.commit()
    log_event("ADMIN_PROMOTE_COACH", user_id=g.user.id, entity="user", entity_id=user.id,
              metadata={"coaching_rate": rate})
    return jsonify(user.coach_dict()), 200


@admin_bp.get("/users")
@require_roles(ADMIN)
def list_users():
    role_filter = (request.args.get("role") or "").strip().upper()
    q = User.query
    if role_filter:
        q = q.join(User.roles).filter(Role.name == role_filter)

    users = q.order_by(User.created_at.desc()).limit(200).all()
    return jsonify([
        {
            "id": u.id,
            "email": u.email,
            "first_name": u.first_name,
            "last_name": u.last_name,
            "roles": u.role_names(),
            "is_coach": u.is_coach,
            "has_signed_waiver": u.has_signed_waiver,
            "created_at": u.created_at.isoformat(),
        }
        for u in users
    ]), 200


@admin_bp.get("/audit-logs")
@require_roles(ADMIN)
def list_audit_logs():
    limit = request.args.get("limit", type=int) or 200
    limit = max(1, min(limit, 500))

    q = AuditLog.query
    action = request.args.get("action")
    if action:
        q = q.filter(AuditLog.action == action)
    user_id = request.args.get("user_id", type=int)
    if user_id is not None:
        q = q.filter(AuditLog.user_id == user_id)

    rows = q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()
    return jsonify([
        {
            "id": r.id,
            "created_at": r.created_at.isoformat() if r.created_at else None,
            "user_id": r.user_id,
            "action": r.action,
            "entity": r.entity,
            "entity_id": r.entity_id,
            "ip": r.ip,
            "user_agent": r.user_agent,
            "metadata": r.metadata_json,
        }
        for r in rows
    ]), 200
