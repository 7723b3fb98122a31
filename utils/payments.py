from datetime import datetime

import stripe
from flask import current_app

from models import db
from models.event import EventRegistration
from models.payment import Payment
from utils.audit import log_event
from utils.memberships import activate_membership
from utils.schedule import parse_id, registration_kind
from utils.stripe_client import configure_stripe, get_or_create_customer

PURPOSE_BY_KIND = {"reservation": "RESERVATION", "lesson": "LESSON", "event": "EVENT"}


def start_payment_intent(user, amount: int, purpose: str, description: str,
                         registration_id=None, membership_type_id=None):
    """
    Creates the local Payment row and the Stripe PaymentIntent behind it.
    Returns (payment, intent). Commits.
    """
    configure_stripe()
    customer = get_or_create_customer(user)
    currency = current_app.config.get("CURRENCY", "mxn")

    payment = Payment(
        user_id=user.id,
        purpose=purpose,
        registration_id=registration_id,
        membership_type_id=membership_type_id,
        amount=amount,
        currency=currency,
        status="INIT",
    )
    db.session.add(payment)
    db.session.flush()

    intent = stripe.PaymentIntent.create(
        amount=amount,
        currency=currency,
        customer=customer["id"],
        description=description,
        automatic_payment_methods={"enabled": True},
        metadata={
            "payment_id": str(payment.id),
            "user_id": str(user.id),
            "purpose": purpose,
            "registration_id": str(registration_id or ""),
            "membership_type_id": str(membership_type_id or ""),
        },
    )
    payment.stripe_payment_intent_id = intent["id"]
    db.session.commit()

    log_event("PAYMENT_INTENT_CREATED", user_id=user.id, entity="payment", entity_id=payment.id,
              metadata={"stripe_payment_intent_id": intent["id"], "purpose": purpose, "amount": amount})
    return payment, intent


def payment_for_registration(registration: EventRegistration):
    """Purpose and description for paying a registration's amount due."""
    event = registration.event
    purpose = PURPOSE_BY_KIND[registration_kind(event)]
    return purpose, f"{event.name} on {event.start_time:%Y-%m-%d %H:%M}"


def find_payment(payment_intent_id: str, metadata=None):
    payment = None
    payment_id = (metadata or {}).get("payment_id")
    if payment_id:
        try:
            payment = db.session.get(Payment, parse_id(payment_id))
        except ValueError:
            current_app.logger.warning("Ignoring malformed payment_id in metadata: %r", payment_id)
    if payment is None and payment_intent_id:
        payment = Payment.query.filter_by(stripe_payment_intent_id=payment_intent_id).first()
    return payment


def apply_successful_payment(payment: Payment, actor_id=None):
    """
    Marks the payment PAID and settles what it paid for: the registration
    becomes PAID or the membership starts. Repeat calls are no-ops.
    """
    if payment.status == "PAID":
        return payment

    payment.status = "PAID"
    payment.paid_at = datetime.utcnow()

    if payment.purpose == "MEMBERSHIP":
        membership = activate_membership(
            payment.user_id, payment.membership_type_id, payment.stripe_payment_intent_id
        )
        meta = {"membership_id": membership.id}
    else:
        registration = db.session.get(EventRegistration, payment.registration_id) if payment.registration_id else None
        if registration is not None:
            registration.payment_status = "PAID"
        meta = {"registration_id": payment.registration_id}

    log_event("PAYMENT_PAID", user_id=actor_id, entity="payment", entity_id=payment.id,
              metadata={"stripe_payment_intent_id": payment.stripe_payment_intent_id, **meta}, commit=False)
    db.session.commit()
    return payment


def apply_failed_payment(payment: Payment, reason=None):
    if payment.status == "PAID":
        return payment
    payment.status = "FAILED"
    log_event("PAYMENT_FAILED", user_id=None, entity="payment", entity_id=payment.id,
              metadata={"stripe_payment_intent_id": payment.stripe_payment_intent_id, "reason": reason},
              commit=False)
    db.session.commit()
    return payment
