import calendar
from datetime import datetime

from flask import current_app

from models import db
from models.event import EventType
from models.membership import Membership, MembershipType, MembershipEventDiscount
from booking.pricing import PricingCalculation, calculate_price, discount_for, display_name
from utils.schedule import parse_id

FEATURES = {
    "pay_to_play": [
        "Open Play Access",
        "League Play Access",
        "Court Reservations Access",
        "Lessons Access",
        "Clinics Access",
    ],
    "standard": [
        "Free Open Play",
        "15% off League Play",
        "15% off Court Reservations",
        "15% off Lessons",
        "15% off Clinics",
        "Two Guest Passes per Month",
        "Early Access to the Club and Pre-Launch Events",
    ],
    "ultimate": [
        "Free Open Play",
        "Free League Play",
        "33% off Court Reservations",
        "33% off Lessons",
        "33% off Clinics",
        "Four Guest Passes per Month",
        "Early Access to the Club and Pre-Launch Events",
    ],
}


def add_months(moment: datetime, months: int) -> datetime:
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def get_active_membership(user_id: int, now: datetime = None):
    now = now or datetime.utcnow()
    return (
        Membership.query
        .filter(
            Membership.user_id == user_id,
            Membership.status == "active",
            Membership.start_date <= now,
            db.or_(Membership.end_date.is_(None), Membership.end_date > now),
        )
        .order_by(Membership.start_date.desc())
        .first()
    )


def membership_history(user_id: int, now: datetime = None):
    """Every membership except the current one, newest first."""
    active = get_active_membership(user_id, now)
    q = Membership.query.filter(Membership.user_id == user_id)
    if active:
        q = q.filter(Membership.id != active.id)
    return q.order_by(Membership.start_date.desc()).all()


def discount_percentage(membership_type: MembershipType, event_type_code: str) -> float:
    """Per-event-type row first, then the static tier table."""
    row = (
        MembershipEventDiscount.query
        .join(EventType, MembershipEventDiscount.event_type_id == EventType.id)
        .filter(
            MembershipEventDiscount.membership_type_id == membership_type.id,
            EventType.code == event_type_code,
        )
        .first()
    )
    if row is not None:
        return row.discount_percentage
    return discount_for(membership_type.name)


def quote(user_id: int, hourly_rate: int, hours: int, event_type_code: str) -> PricingCalculation:
    membership = get_active_membership(user_id)
    if membership is None:
        return calculate_price(hourly_rate, hours)

    tier = membership.membership_type
    return calculate_price(
        hourly_rate,
        hours,
        discount_percentage(tier, event_type_code),
        display_name(tier.name),
    )


def membership_type_dict(membership_type: MembershipType) -> dict:
    return {
        "id": membership_type.id,
        "name": membership_type.name,
        "display_name": display_name(membership_type.name),
        "description": membership_type.description,
        "cost": membership_type.cost,
        "currency": current_app.config.get("CURRENCY", "mxn"),
        "features": FEATURES.get(membership_type.name, ["Access to facilities"]),
        "discounts": [
            {"event_type": d.event_type.name, "discount_percentage": d.discount_percentage}
            for d in membership_type.discounts
        ],
    }


def validate_checkout(user_id: int, membership_type_id):
    """Returns (membership_type or None, errors)."""
    errors = []
    membership_type = None
    if membership_type_id is not None:
        try:
            membership_type = db.session.get(MembershipType, parse_id(membership_type_id))
        except ValueError:
            membership_type = None
    if membership_type is None or not membership_type.is_active:
        membership_type = None
        errors.append("Invalid membership type selected")

    if get_active_membership(user_id) is not None:
        errors.append("You already have an active membership")
    return membership_type, errors


def activate_membership(user_id: int, membership_type_id: int, payment_intent_id: str = None) -> Membership:
    """
    Starts a membership period now. Idempotent per payment intent.

    A user holds at most one active membership: when one is already running
    (two checkouts paid before either settled) the payment extends it by
    another period instead of adding a second row.
    """
    if payment_intent_id:
        existing = Membership.query.filter_by(stripe_payment_intent_id=payment_intent_id).first()
        if existing:
            return existing

    start = datetime.utcnow()
    months = current_app.config.get("MEMBERSHIP_PERIOD_MONTHS", 1)

    active = get_active_membership(user_id, start)
    if active is not None:
        if active.end_date is not None:
            active.end_date = add_months(active.end_date, months)
        current_app.logger.warning(
            "User %s already has membership %s; extended it instead of activating type %s",
            user_id, active.id, membership_type_id,
        )
        return active

    membership = Membership(
        user_id=user_id,
        membership_type_id=membership_type_id,
        status="active",
        start_date=start,
        end_date=add_months(start, months),
        stripe_payment_intent_id=payment_intent_id,
    )
    db.session.add(membership)
    db.session.flush()
    return membership
