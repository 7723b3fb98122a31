import stripe
from flask import Blueprint, request, jsonify, g, redirect

from models import db
from models.event import EventRegistration
from models.payment import Payment
from utils.auth_context import login_required
from utils.audit import log_event
from utils.payments import apply_successful_payment, find_payment, payment_for_registration, start_payment_intent
from utils.schedule import parse_id
from utils.stripe_client import configure_stripe, get_or_create_customer

payments_bp = Blueprint("payments", __name__, url_prefix="/payments")


def _card_dict(pm, default_id=None) -> dict:
    card = pm.get("card") or {}
    return {
        "id": pm["id"],
        "type": pm.get("type"),
        "card": {
            "brand": card.get("brand"),
            "last4": card.get("last4"),
            "exp_month": card.get("exp_month"),
            "exp_year": card.get("exp_year"),
        },
        "is_default": pm["id"] == default_id,
    }


def _owns_payment_method(payment_method_id: str) -> bool:
    pm = stripe.PaymentMethod.retrieve(payment_method_id)
    return bool(g.user.stripe_customer_id) and pm.get("customer") == g.user.stripe_customer_id


@payments_bp.post("/customer")
@login_required
def customer():
    cust = get_or_create_customer(g.user)
    return jsonify(customer_id=cust["id"], email=cust.get("email")), 200


@payments_bp.post("/setup-intent")
@login_required
def setup_intent():
    """Saves a card for later use (off-session by default)."""
    data = request.get_json(silent=True) or {}
    usage = data.get("usage") or "off_session"
    if usage not in ("off_session", "on_session"):
        return jsonify(error="usage must be off_session or on_session"), 400

    cust = get_or_create_customer(g.user)
    intent = stripe.SetupIntent.create(
        customer=cust["id"],
        payment_method_types=["card"],
        usage=usage,
        metadata={"user_id": str(g.user.id)},
    )
    log_event("SETUP_INTENT_CREATED", user_id=g.user.id, metadata={"setup_intent_id": intent["id"]})
    return jsonify(
        client_secret=intent["client_secret"],
        setup_intent_id=intent["id"],
        customer_id=cust["id"],
        status=intent.get("status"),
    ), 200


@payments_bp.get("/methods")
@login_required
def list_payment_methods():
    if not g.user.stripe_customer_id:
        return jsonify(payment_methods=[]), 200

    configure_stripe()
    cust = stripe.Customer.retrieve(g.user.stripe_customer_id)
    default_id = (cust.get("invoice_settings") or {}).get("default_payment_method")
    methods = stripe.PaymentMethod.list(customer=g.user.stripe_customer_id, type="card")
    return jsonify(payment_methods=[_card_dict(pm, default_id) for pm in methods["data"]]), 200


@payments_bp.post("/methods/default")
@login_required
def set_default_payment_method():
    data = request.get_json(silent=True) or {}
    payment_method_id = data.get("payment_method_id")
    if not payment_method_id:
        return jsonify(error="payment_method_id required"), 400
    if not g.user.stripe_customer_id:
        return jsonify(error="Customer not found"), 404

    configure_stripe()
    if not _owns_payment_method(payment_method_id):
        return jsonify(error="Payment method not found"), 404

    stripe.Customer.modify(
        g.user.stripe_customer_id,
        invoice_settings={"default_payment_method": payment_method_id},
    )
    log_event("PAYMENT_METHOD_DEFAULT", user_id=g.user.id, metadata={"payment_method_id": payment_method_id})
    return jsonify(message="Default payment method updated"), 200


@payments_bp.delete("/methods/<payment_method_id>")
@login_required
def remove_payment_method(payment_method_id: str):
    configure_stripe()
    if not _owns_payment_method(payment_method_id):
        return jsonify(error="Payment method not found"), 404

    stripe.PaymentMethod.detach(payment_method_id)
    log_event("PAYMENT_METHOD_REMOVED", user_id=g.user.id, metadata={"payment_method_id": payment_method_id})
    return jsonify(message="Payment method removed"), 200


@payments_bp.post("/intents")
@login_required
def create_registration_intent():
    """Pay what a reservation, lesson or event registration owes: {"registration_id": 12}."""
    data = request.get_json(silent=True) or {}
    try:
        registration = db.session.get(EventRegistration, parse_id(data.get("registration_id")))
    except ValueError:
        return jsonify(error="registration_id must be a positive integer"), 400
    if not registration or registration.user_id != g.user.id or registration.cancelled_at is not None:
        return jsonify(error="Registration not found"), 404
    if registration.event.cancelled_at is not None:
        return jsonify(error="Event was cancelled"), 400
    if registration.payment_status != "UNPAID":
        return jsonify(error="Nothing to pay for this registration"), 400
    if registration.amount_due <= 0:
        return jsonify(error="Nothing to pay for this registration"), 400

    purpose, description = payment_for_registration(registration)
    payment, intent = start_payment_intent(
        g.user, registration.amount_due, purpose, description, registration_id=registration.id
    )
    return jsonify(
        payment_id=payment.id,
        payment_intent_id=intent["id"],
        client_secret=intent["client_secret"],
        amount=payment.amount,
        currency=payment.currency,
    ), 201


@payments_bp.post("/confirm")
@login_required
def confirm_payment():
    """
    Called by the client after the payment sheet closes. The webhook
    settles the same payment; whichever arrives first wins.
    """
    data = request.get_json(silent=True) or {}
    payment_intent_id = (data.get("payment_intent_id") or "").strip()
    if not payment_intent_id.startswith("pi_"):
        return jsonify(error="Invalid payment intent ID"), 400

    payment = find_payment(payment_intent_id)
    if not payment or payment.user_id != g.user.id:
        return jsonify(error="Payment not found"), 404

    configure_stripe()
    intent = stripe.PaymentIntent.retrieve(payment_intent_id)
    status = intent.get("status")
    if status == "succeeded":
        apply_successful_payment(payment, actor_id=g.user.id)
        return jsonify(message="Payment confirmed", payment=payment.to_dict()), 200

    return jsonify(error="Payment not completed", stripe_status=status, payment=payment.to_dict()), 402


@payments_bp.get("/history")
@login_required
def payment_history():
    """Local payments joined with Stripe's intents and invoices for receipts."""
    limit = min(max(request.args.get("limit", 50, type=int), 1), 100)
    local = (
        Payment.query
        .filter_by(user_id=g.user.id)
        .order_by(Payment.created_at.desc())
        .limit(limit)
        .all()
    )

    intents, invoices = [], []
    if g.user.stripe_customer_id:
        configure_stripe()
        intents = stripe.PaymentIntent.list(customer=g.user.stripe_customer_id, limit=limit)["data"]
        invoices = stripe.Invoice.list(customer=g.user.stripe_customer_id, limit=limit)["data"]

    invoice_by_intent = {inv.get("payment_intent"): inv for inv in invoices if inv.get("payment_intent")}
    local_by_intent = {p.stripe_payment_intent_id: p for p in local if p.stripe_payment_intent_id}

    payments = []
    for pi in intents:
        inv = invoice_by_intent.get(pi["id"])
        row = local_by_intent.get(pi["id"])
        payments.append({
            "id": pi["id"],
            "amount": pi["amount"],
            "currency": pi["currency"],
            "status": pi["status"],
            "description": pi.get("description") or "Payment",
            "created": pi.get("created"),
            "purpose": row.purpose if row else (pi.get("metadata") or {}).get("purpose"),
            "invoice": {
                "id": inv["id"],
                "number": inv.get("number"),
                "pdf": inv.get("hosted_invoice_url"),
                "invoice_pdf": inv.get("invoice_pdf"),
            } if inv else None,
        })

    total_amount = sum(p["amount"] for p in payments if p["status"] == "succeeded")
    return jsonify(
        payments=payments,
        local_payments=[p.to_dict() for p in local],
        total_payments=len(payments),
        total_amount=total_amount,
    ), 200


@payments_bp.get("/invoices/<invoice_id>/pdf")
@login_required
def invoice_pdf(invoice_id: str):
    if not invoice_id.startswith("in_"):
        return jsonify(error="Invalid invoice ID"), 400

    configure_stripe()
    try:
        invoice = stripe.Invoice.retrieve(invoice_id)
    except stripe.InvalidRequestError:
        return jsonify(error="Invoice not found"), 404

    if not g.user.stripe_customer_id or invoice.get("customer") != g.user.stripe_customer_id:
        return jsonify(error="Invoice not found"), 404
    if not invoice.get("hosted_invoice_url") and not invoice.get("invoice_pdf"):
        return jsonify(error="PDF not available for this invoice"), 404

    if request.args.get("download") == "true" and invoice.get("invoice_pdf"):
        return redirect(invoice["invoice_pdf"])

    return jsonify(
        id=invoice["id"],
        number=invoice.get("number"),
        status=invoice.get("status"),
        amount_paid=invoice.get("amount_paid"),
        amount_due=invoice.get("amount_due"),
        currency=invoice.get("currency"),
        created=invoice.get("created"),
        pdf_url=invoice.get("hosted_invoice_url"),
        invoice_pdf=invoice.get("invoice_pdf"),
    ), 200
