from unittest import mock

import pytest
import stripe

from models import db
from models.event import EventRegistration
from models.membership import Membership, MembershipType
from models.payment import Payment
from models.user import User
from utils.memberships import add_months


@pytest.fixture()
def stripe_api():
    """Patches the Stripe SDK calls the payment routes make."""
    with mock.patch.object(stripe.Customer, "create") as customer_create, \
            mock.patch.object(stripe.Customer, "retrieve") as customer_retrieve, \
            mock.patch.object(stripe.PaymentIntent, "create") as intent_create, \
            mock.patch.object(stripe.PaymentIntent, "retrieve") as intent_retrieve:
        customer_create.return_value = {"id": "cus_123", "email": "player@example.com"}
        customer_retrieve.return_value = {"id": "cus_123", "invoice_settings": {}}
        intent_create.return_value = {"id": "pi_123", "client_secret": "pi_123_secret"}
        intent_retrieve.return_value = {"id": "pi_123", "status": "succeeded"}
        yield mock.Mock(
            customer_create=customer_create,
            intent_create=intent_create,
            intent_retrieve=intent_retrieve,
        )


def _reservation(client, headers, day):
    resp = client.post("/reservations", json={"date": day.isoformat(), "hours": [9, 10]}, headers=headers)
    assert resp.status_code == 201
    return resp.get_json()


def test_pay_for_reservation(app, client, make_player, courts, future_day, stripe_api):
    headers = make_player()
    booking = _reservation(client, headers, future_day)

    resp = client.post("/payments/intents", json={"registration_id": booking["registration_id"]}, headers=headers)
    assert resp.status_code == 201
    assert resp.get_json()["amount"] == 5000
    assert stripe_api.intent_create.call_args.kwargs["metadata"]["purpose"] == "RESERVATION"

    resp = client.post("/payments/confirm", json={"payment_intent_id": "pi_123"}, headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["payment"]["status"] == "PAID"

    with app.app_context():
        registration = db.session.get(EventRegistration, booking["registration_id"])
        assert registration.payment_status == "PAID"

    # paying twice is refused
    resp = client.post("/payments/intents", json={"registration_id": booking["registration_id"]}, headers=headers)
    assert resp.status_code == 400


def test_confirm_not_succeeded(client, make_player, courts, future_day, stripe_api):
    headers = make_player()
    booking = _reservation(client, headers, future_day)
    client.post("/payments/intents", json={"registration_id": booking["registration_id"]}, headers=headers)

    stripe_api.intent_retrieve.return_value = {"id": "pi_123", "status": "requires_payment_method"}
    resp = client.post("/payments/confirm", json={"payment_intent_id": "pi_123"}, headers=headers)
    assert resp.status_code == 402
    assert resp.get_json()["stripe_status"] == "requires_payment_method"


def test_cannot_pay_someone_elses_registration(client, make_player, courts, future_day, stripe_api):
    owner = make_player("owner@example.com")
    booking = _reservation(client, owner, future_day)
    other = make_player("other@example.com")
    resp = client.post("/payments/intents", json={"registration_id": booking["registration_id"]}, headers=other)
    assert resp.status_code == 404


def test_invalid_payment_intent_id(client, make_player):
    headers = make_player()
    resp = client.post("/payments/confirm", json={"payment_intent_id": "nope"}, headers=headers)
    assert resp.status_code == 400


def _webhook_event(event_type, intent):
    return {"type": event_type, "data": {"object": intent}}


def test_webhook_activates_membership(app, client, make_player, stripe_api):
    headers = make_player()
    with app.app_context():
        type_id = MembershipType.query.filter_by(name="ultimate").first().id
    client.post("/memberships/checkout", json={"membership_type_id": type_id}, headers=headers)

    event = _webhook_event("payment_intent.succeeded", {"id": "pi_123", "metadata": {}})
    with mock.patch.object(stripe.Webhook, "construct_event", return_value=event):
        resp = client.post("/webhooks/stripe", data=b"{}", headers={"Stripe-Signature": "t=1,v1=abc"})
        assert resp.status_code == 200
        # a retried delivery changes nothing
        client.post("/webhooks/stripe", data=b"{}", headers={"Stripe-Signature": "t=1,v1=abc"})

    with app.app_context():
        memberships = Membership.query.all()
        assert len(memberships) == 1
        assert memberships[0].stripe_payment_intent_id == "pi_123"
        assert Payment.query.first().status == "PAID"

    me = client.get("/memberships/me", headers=headers).get_json()
    assert me["active_membership"]["display_name"] == "Ultimate"


def test_webhook_payment_failed(app, client, make_player, courts, future_day, stripe_api):
    headers = make_player()
    booking = _reservation(client, headers, future_day)
    client.post("/payments/intents", json={"registration_id": booking["registration_id"]}, headers=headers)

    event = _webhook_event("payment_intent.payment_failed",
                           {"id": "pi_123", "metadata": {}, "last_payment_error": {"message": "Card declined"}})
    with mock.patch.object(stripe.Webhook, "construct_event", return_value=event):
        client.post("/webhooks/stripe", data=b"{}", headers={"Stripe-Signature": "t=1,v1=abc"})

    with app.app_context():
        assert Payment.query.first().status == "FAILED"
        assert db.session.get(EventRegistration, booking["registration_id"]).payment_status == "UNPAID"


def test_webhook_bad_signature(client):
    error = stripe.SignatureVerificationError("bad signature", "t=1,v1=abc")
    with mock.patch.object(stripe.Webhook, "construct_event", side_effect=error):
        resp = client.post("/webhooks/stripe", data=b"{}", headers={"Stripe-Signature": "t=1,v1=abc"})
    assert resp.status_code == 400


def test_stripe_errors_become_502(client, make_player, courts, future_day, stripe_api):
    headers = make_player()
    booking = _reservation(client, headers, future_day)
    stripe_api.intent_create.side_effect = stripe.APIConnectionError("network down")
    resp = client.post("/payments/intents", json={"registration_id": booking["registration_id"]}, headers=headers)
    assert resp.status_code == 502


def test_payment_methods_empty_without_customer(client, make_player):
    headers = make_player()
    assert client.get("/payments/methods", headers=headers).get_json() == {"payment_methods": []}


def test_payment_methods_listed(app, client, make_player, stripe_api):
    headers = make_player()
    with app.app_context():
        user = User.query.filter_by(email="player@example.com").first()
        user.stripe_customer_id = "cus_123"
        db.session.commit()

    stripe_api_customer = {"id": "cus_123", "invoice_settings": {"default_payment_method": "pm_1"}}
    card = {"brand": "visa", "last4": "4242", "exp_month": 12, "exp_year": 2030}
    methods = {"data": [{"id": "pm_1", "type": "card", "card": card}, {"id": "pm_2", "type": "card", "card": card}]}
    with mock.patch.object(stripe.Customer, "retrieve", return_value=stripe_api_customer), \
            mock.patch.object(stripe.PaymentMethod, "list", return_value=methods):
        rows = client.get("/payments/methods", headers=headers).get_json()["payment_methods"]

    assert [m["is_default"] for m in rows] == [True, False]
    assert rows[0]["card"]["last4"] == "4242"


def test_non_numeric_registration_id_rejected(client, make_player, stripe_api):
    headers = make_player()
    resp = client.post("/payments/intents", json={"registration_id": "abc"}, headers=headers)
    assert resp.status_code == 400
    assert client.post("/payments/intents", json={}, headers=headers).status_code == 400
    stripe_api.intent_create.assert_not_called()


def test_two_paid_checkouts_leave_one_membership(app, client, make_player, stripe_api):
    headers = make_player()
    with app.app_context():
        type_id = MembershipType.query.filter_by(name="standard").first().id

    stripe_api.intent_create.side_effect = [
        {"id": "pi_first", "client_secret": "pi_first_secret"},
        {"id": "pi_second", "client_secret": "pi_second_secret"},
    ]
    stripe_api.intent_retrieve.side_effect = lambda intent_id: {"id": intent_id, "status": "succeeded"}

    # both checkouts start before either payment settles
    for _ in range(2):
        resp = client.post("/memberships/checkout", json={"membership_type_id": type_id}, headers=headers)
        assert resp.status_code == 201
    for intent_id in ("pi_first", "pi_second"):
        resp = client.post("/payments/confirm", json={"payment_intent_id": intent_id}, headers=headers)
        assert resp.status_code == 200

    with app.app_context():
        memberships = Membership.query.all()
        assert len(memberships) == 1
        membership = memberships[0]
        assert membership.stripe_payment_intent_id == "pi_first"
        # the second payment bought another period on top of the first
        assert membership.end_date == add_months(add_months(membership.start_date, 1), 1)
        assert Payment.query.filter_by(status="PAID").count() == 2
