import stripe
from flask import Blueprint, request, jsonify, current_app

from utils.payments import apply_failed_payment, apply_successful_payment, find_payment

webhook_bp = Blueprint("webhook", __name__, url_prefix="/webhooks")


@webhook_bp.post("/stripe")
def stripe_webhook():
    endpoint_secret = current_app.config.get("STRIPE_WEBHOOK_SECRET")
    sig_header = request.headers.get("Stripe-Signature")
    payload = request.data

    if not endpoint_secret:
        return jsonify(error="Webhook secret not configured"), 500

    try:
        event = stripe.Webhook.construct_event(payload, sig_header, endpoint_secret)
    except (ValueError, stripe.SignatureVerificationError):
        current_app.logger.warning("Rejected Stripe webhook with a bad payload or signature")
        return jsonify(error="Invalid webhook signature"), 400

    event_type = event["type"]
    if event_type in ("payment_intent.succeeded", "payment_intent.payment_failed"):
        intent = event["data"]["object"]
        payment = find_payment(intent["id"], intent.get("metadata"))
        if payment is None:
            current_app.logger.info("Stripe %s for unknown payment intent %s", event_type, intent["id"])
            return jsonify(received=True), 200

        if event_type == "payment_intent.succeeded":
            apply_successful_payment(payment)
        else:
            error = intent.get("last_payment_error") or {}
            apply_failed_payment(payment, reason=error.get("message"))

    return jsonify(received=True), 200
