from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.court import Court
from models.event import EventType
from models.membership import MembershipType
from models.user import User
from booking.pricing import display_name
from utils.audit import log_event
from utils.auth_context import login_required
from utils.memberships import (
    activate_membership,
    get_active_membership,
    membership_history,
    membership_type_dict,
    quote,
    validate_checkout,
)
from utils.payments import start_payment_intent

membership_bp = Blueprint("membership", __name__)


def _membership_dict(membership) -> dict:
    return {
        **membership.to_dict(),
        "display_name": display_name(membership.membership_type.name),
        "membership_type_id": membership.membership_type_id,
    }


@membership_bp.get("/memberships/types")
def list_membership_types():
    rows = MembershipType.query.filter_by(is_active=True).order_by(MembershipType.cost.asc()).all()
    return jsonify([membership_type_dict(t) for t in rows]), 200


@membership_bp.get("/memberships/me")
@login_required
def my_membership():
    membership = get_active_membership(g.user.id)
    if membership is None:
        return jsonify(active_membership=None), 200
    return jsonify(
        active_membership=_membership_dict(membership),
        membership_type=membership_type_dict(membership.membership_type),
    ), 200


@membership_bp.get("/memberships/history")
@login_required
def my_membership_history():
    return jsonify([_membership_dict(m) for m in membership_history(g.user.id)]), 200


@membership_bp.post("/memberships/checkout/validate")
@login_required
def validate_membership_checkout():
    data = request.get_json(silent=True) or {}
    membership_type, errors = validate_checkout(g.user.id, data.get("membership_type_id"))
    return jsonify(
        is_valid=not errors,
        errors=errors,
        membership_type=membership_type_dict(membership_type) if membership_type else None,
    ), 200


@membership_bp.post("/memberships/checkout")
@login_required
def membership_checkout():
    """
    {"membership_type_id": 2}
    Free tiers start right away; paid tiers return a PaymentIntent and start
    when the payment succeeds.
    """
    data = request.get_json(silent=True) or {}
    membership_type, errors = validate_checkout(g.user.id, data.get("membership_type_id"))
    if errors:
        status = 404 if membership_type is None else 409
        return jsonify(error=errors[0], errors=errors), status

    if membership_type.cost == 0:
        membership = activate_membership(g.user.id, membership_type.id)
        log_event("MEMBERSHIP_ACTIVATED", user_id=g.user.id, entity="membership", entity_id=membership.id,
                  metadata={"membership_type": membership_type.name, "amount": 0}, commit=False)
        db.session.commit()
        return jsonify(message="Membership activated", membership=_membership_dict(membership)), 201

    payment, intent = start_payment_intent(
        g.user,
        membership_type.cost,
        "MEMBERSHIP",
        f"{display_name(membership_type.name)} membership",
        membership_type_id=membership_type.id,
    )
    return jsonify(
        payment_id=payment.id,
        payment_intent_id=intent["id"],
        client_secret=intent["client_secret"],
        amount=payment.amount,
        currency=payment.currency,
        membership_type=membership_type_dict(membership_type),
    ), 201


@membership_bp.get("/pricing/quote")
@login_required
def pricing_quote():
    """
    Price for the current user with their membership discount applied.
    ?kind=court&hours=2[&court_id=1]  or  ?kind=lesson&hours=1&coach_id=7
    """
    kind = request.args.get("kind", "court")
    hours = request.args.get("hours", 1, type=int)
    if hours is None or hours < 1:
        return jsonify(error="hours must be a positive integer"), 400

    if kind == "court":
        court_id = request.args.get("court_id", type=int)
        if court_id:
            court = db.session.get(Court, court_id)
            if not court or not court.is_active:
                return jsonify(error="Court not found"), 404
            rate = court.hourly_rate
        else:
            rate = current_app.config.get("DEFAULT_COURT_RATE", 2500)
        event_type_code = EventType.COURT_RESERVATION
    elif kind == "lesson":
        coach_id = request.args.get("coach_id", type=int)
        coach = db.session.get(User, coach_id) if coach_id else None
        if coach is None or not coach.is_coach:
            return jsonify(error="Coach not found"), 404
        if coach.coaching_rate is None:
            return jsonify(error="Coach has no rate configured"), 400
        rate = coach.coaching_rate
        event_type_code = EventType.LESSON
    else:
        return jsonify(error="kind must be court or lesson"), 400

    return jsonify(quote(g.user.id, rate, hours, event_type_code).to_dict()), 200
