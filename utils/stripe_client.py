import stripe
from flask import current_app

from models import db


class StripeNotConfigured(RuntimeError):
    pass


def configure_stripe():
    """Sets the API key from config; raises when it is missing."""
    key = current_app.config.get("STRIPE_SECRET_KEY")
    if not key:
        raise StripeNotConfigured("Stripe secret key missing (STRIPE_SECRET_KEY)")
    stripe.api_key = key
    return stripe


def get_or_create_customer(user):
    """Stripe customer for the user, created on first use."""
    configure_stripe()
    if user.stripe_customer_id:
        customer = stripe.Customer.retrieve(user.stripe_customer_id)
        if not customer.get("deleted"):
            return customer

    customer = stripe.Customer.create(
        email=user.email,
        name=user.display_name,
        metadata={"user_id": str(user.id)},
    )
    user.stripe_customer_id = customer["id"]
    db.session.commit()
    current_app.logger.info("Created Stripe customer %s for user %s", customer["id"], user.id)
    return customer
