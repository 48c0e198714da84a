import hashlib
import hmac
import json
import time
from decimal import Decimal

import pytest
import stripe
from django.urls import reverse

from bookings.models import Booking
from payments import api as payments_api
from payments.models import Payment, Refund

pytestmark = pytest.mark.django_db

WEBHOOK_SECRET = "whsec_test"


@pytest.fixture(autouse=True)
def webhook_secret(settings):
    settings.STRIPE_WEBHOOK_SECRET = WEBHOOK_SECRET


def _sign(payload: str, secret: str = WEBHOOK_SECRET) -> str:
    timestamp = int(time.time())
    signature = hmac.new(secret.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def _post_event(client, event: dict, signature: str | None = None):
    payload = json.dumps(event)
    headers = {"HTTP_STRIPE_SIGNATURE": signature or _sign(payload)}
    return client.post(
        reverse("booking-payments-webhook"),
        data=payload,
        content_type="application/json",
        **headers,
    )


def _intent_event(booking, event_type="payment_intent.succeeded", payment_type="deposit", **intent):
    data = {
        "id": "pi_hook",
        "object": "payment_intent",
        "amount_received": int(booking.amount_for(payment_type) * 100),
        "latest_charge": "ch_hook",
        "metadata": {"booking_id": str(booking.id), "payment_type": payment_type},
    }
    data.update(intent)
    return {"id": "evt_1", "type": event_type, "data": {"object": data}}


def test_missing_signature_is_rejected(api_client):
    response = api_client.post(reverse("booking-payments-webhook"), data="{}", content_type="application/json")

    assert response.status_code == 400
    assert response.json()["code"] == "MISSING_SIGNATURE"


def test_unconfigured_secret_is_server_error(api_client, settings):
    settings.STRIPE_WEBHOOK_SECRET = ""

    response = _post_event(api_client, {"id": "evt_1", "type": "ping"}, signature="t=1,v1=abc")

    assert response.status_code == 500
    assert response.json()["code"] == "WEBHOOK_NOT_CONFIGURED"


def test_bad_signature_is_unauthorized(api_client, make_booking):
    booking = make_booking()
    event = _intent_event(booking)

    response = _post_event(api_client, event, signature=_sign(json.dumps(event), secret="whsec_wrong"))

    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_SIGNATURE"
    booking.refresh_from_db()
    assert booking.deposit_paid is False


def test_health_check(api_client):
    response = api_client.get(reverse("booking-payments-webhook"))

    assert response.status_code == 200
    assert response.json()["configured"] is True
    assert "charge.refunded" in response.json()["events"]


def test_deposit_succeeded_confirms_booking(api_client, make_booking, mailoutbox):
    booking = make_booking()

    response = _post_event(api_client, _intent_event(booking))

    assert response.status_code == 200
    assert response.json() == {"received": True, "eventType": "payment_intent.succeeded", "eventId": "evt_1"}
    booking.refresh_from_db()
    assert booking.deposit_paid is True
    assert booking.status == Booking.CONFIRMED
    assert booking.stripe_deposit_charge_id == "ch_hook"

    # Stripe redelivers; nothing changes the second time.
    _post_event(api_client, _intent_event(booking))
    assert Payment.objects.count() == 1
    assert len(mailoutbox) == 2


def test_charge_succeeded_is_a_backup_for_intent_event(api_client, make_booking):
    booking = make_booking()
    charge = {
        "id": "ch_backup",
        "object": "charge",
        "amount": int(booking.deposit_amount * 100),
        "payment_intent": "pi_backup",
        "metadata": {"booking_id": str(booking.id), "payment_type": "deposit"},
    }

    response = _post_event(api_client, {"id": "evt_2", "type": "charge.succeeded", "data": {"object": charge}})

    assert response.status_code == 200
    booking.refresh_from_db()
    assert booking.deposit_paid is True
    assert booking.stripe_deposit_payment_intent_id == "pi_backup"
    assert booking.stripe_deposit_charge_id == "ch_backup"


def test_charge_without_metadata_looks_up_intent(api_client, make_booking, monkeypatch):
    booking = make_booking()
    looked_up = []

    def fake_retrieve(intent_id):
        looked_up.append(intent_id)
        return {
            "id": intent_id,
            "amount_received": 0,
            "metadata": {"booking_id": str(booking.id), "payment_type": "deposit"},
        }

    monkeypatch.setattr(payments_api.services, "retrieve_payment_intent", fake_retrieve)
    charge = {"id": "ch_lookup", "payment_intent": "pi_lookup", "metadata": {}}

    _post_event(api_client, {"id": "evt_3", "type": "charge.succeeded", "data": {"object": charge}})

    assert looked_up == ["pi_lookup"]
    booking.refresh_from_db()
    assert booking.deposit_paid is True
    assert booking.stripe_deposit_charge_id == "ch_lookup"


@pytest.mark.parametrize("event_type", ["charge.succeeded", "charge.failed"])
def test_charge_without_metadata_in_stub_mode_is_acknowledged(api_client, event_type):
    charge = {"id": "ch_shop", "payment_intent": "pi_shop", "metadata": {}}

    response = _post_event(api_client, {"id": "evt_shop", "type": event_type, "data": {"object": charge}})

    assert response.status_code == 200
    assert not Payment.objects.exists()


def test_charge_lookup_failure_is_acknowledged(api_client, settings, monkeypatch):
    settings.STRIPE_USE_STUB = False
    settings.STRIPE_SECRET_KEY = "sk_test_123"
    original_api_key = stripe.api_key

    def fake_retrieve(intent_id):
        raise stripe.error.APIConnectionError("Stripe unreachable")

    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", staticmethod(fake_retrieve))
    charge = {"id": "ch_shop", "payment_intent": "pi_shop", "metadata": {}}

    try:
        response = _post_event(api_client, {"id": "evt_shop", "type": "charge.succeeded", "data": {"object": charge}})
    finally:
        stripe.api_key = original_api_key

    assert response.status_code == 200
    assert not Payment.objects.exists()


def test_event_without_booking_is_acknowledged(api_client):
    event = {
        "id": "evt_4",
        "type": "payment_intent.succeeded",
        "data": {"object": {"id": "pi_shop", "metadata": {}}},
    }

    response = _post_event(api_client, event)

    assert response.status_code == 200
    assert response.json()["received"] is True
    assert not Payment.objects.exists()


def test_unhandled_event_type_is_acknowledged(api_client):
    response = _post_event(api_client, {"id": "evt_5", "type": "customer.created", "data": {"object": {}}})

    assert response.status_code == 200
    assert response.json()["eventType"] == "customer.created"


def test_payment_failed_event(api_client, make_booking):
    booking = make_booking()
    event = _intent_event(
        booking,
        event_type="payment_intent.payment_failed",
        last_payment_error={"message": "Your card was declined."},
    )

    _post_event(api_client, event)

    payment = Payment.objects.get(stripe_payment_intent="pi_hook")
    assert payment.status == Payment.FAILED
    assert payment.failure_message == "Your card was declined."
    booking.refresh_from_db()
    assert booking.status == Booking.PENDING


def test_charge_refunded_event(api_client, make_booking):
    booking = make_booking(status=Booking.CONFIRMED, deposit_paid=True, stripe_deposit_charge_id="ch_dep")
    charge = {
        "id": "ch_dep",
        "object": "charge",
        "amount_refunded": 10000,
        "metadata": {"booking_id": str(booking.id)},
        "refunds": {"data": [{"id": "re_hook", "amount": 10000, "status": "succeeded"}]},
    }

    response = _post_event(api_client, {"id": "evt_6", "type": "charge.refunded", "data": {"object": charge}})

    assert response.status_code == 200
    booking.refresh_from_db()
    assert booking.refunded_amount == Decimal("100.00")
    assert booking.status == Booking.CONFIRMED
    assert Refund.objects.get().stripe_refund_id == "re_hook"


def test_invalid_json_payload(api_client):
    payload = "not json"

    response = api_client.post(
        reverse("booking-payments-webhook"),
        data=payload,
        content_type="application/json",
        HTTP_STRIPE_SIGNATURE=_sign(payload),
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_PAYLOAD"
