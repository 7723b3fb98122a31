from models import db
from models.user import Role
from models.event import EventType
from models.membership import MembershipType, MembershipEventDiscount
from booking.pricing import TIER_DISCOUNTS

DEFAULT_ROLES = ["PLAYER", "COACH", "ADMIN"]

# (code, name, is_private)
DEFAULT_EVENT_TYPES = [
    (EventType.COURT_RESERVATION, "Court Reservation", True),
    (EventType.LESSON, "Private Lesson", True),
    ("clinic", "Clinic", False),
    ("tournament", "Tournament", False),
    ("social_event", "Social Event", False),
    ("private_event", "Private Event", False),
]

# (name, description, monthly cost in minor units)
DEFAULT_MEMBERSHIP_TYPES = [
    ("pay_to_play", "Perfect for occasional players", 0),
    ("standard", "Perfect for regular players", 100000),
    ("ultimate", "Premium experience with maximum benefits", 200000),
]

DISCOUNTED_EVENT_TYPES = [EventType.COURT_RESERVATION, EventType.LESSON, "clinic"]


def seed_roles():
    existing = {r.name for r in Role.query.all()}
    for name in DEFAULT_ROLES:
        if name not in existing:
            db.session.add(Role(name=name))
    db.session.commit()


def seed_event_types():
    existing = {t.code for t in EventType.query.all()}
    for code, name, is_private in DEFAULT_EVENT_TYPES:
        if code not in existing:
            db.session.add(EventType(code=code, name=name, is_private=is_private))
    db.session.commit()


def seed_membership_types():
    """Membership tiers plus per-event-type discount rows from the tier table."""
    existing = {m.name: m for m in MembershipType.query.all()}
    for name, description, cost in DEFAULT_MEMBERSHIP_TYPES:
        if name not in existing:
            existing[name] = MembershipType(name=name, description=description, cost=cost)
            db.session.add(existing[name])
    db.session.flush()

    event_types = {t.code: t for t in EventType.query.filter(EventType.code.in_(DISCOUNTED_EVENT_TYPES)).all()}
    for name, membership_type in existing.items():
        pct = TIER_DISCOUNTS.get(name, 0)
        if not pct:
            continue
        have = {d.event_type_id for d in membership_type.discounts}
        for event_type in event_types.values():
            if event_type.id not in have:
                db.session.add(MembershipEventDiscount(
                    membership_type_id=membership_type.id,
                    event_type_id=event_type.id,
                    discount_percentage=pct,
                ))
    db.session.commit()


def seed_defaults():
    seed_roles()
    seed_event_types()
    seed_membership_types()
