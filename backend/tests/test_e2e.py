import hashlib
import hmac
import json
import time
from datetime import timedelta
from decimal import Decimal

import pytest
from django.core import mail
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import User
from bookings.models import Booking
from payments.models import Payment, Refund

WEBHOOK_SECRET = "whsec_e2e"


def _post_webhook(client, event_type, data_object, event_id):
    payload = json.dumps({"id": event_id, "type": event_type, "data": {"object": data_object}})
    timestamp = int(time.time())
    signature = hmac.new(WEBHOOK_SECRET.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256).hexdigest()
    return client.post(
        "/api/webhooks/booking-payments/",
        data=payload,
        content_type="application/json",
        HTTP_STRIPE_SIGNATURE=f"t={timestamp},v1={signature}",
    )


@pytest.mark.django_db
def test_end_to_end_booking_flow(settings):
    settings.STRIPE_WEBHOOK_SECRET = WEBHOOK_SECRET
    client = APIClient()
    public = APIClient()

    # Owner registers and lists a house
    register_response = client.post(
        "/api/auth/register/",
        {"email": "host@example.com", "password": "pass12345", "first_name": "Hal", "role": "owner"},
        format="json",
    )
    assert register_response.status_code == 201
    owner_token = register_response.data["access"]
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {owner_token}")

    property_response = client.post(
        "/api/properties/",
        {
            "title": "Seaside Manor",
            "location": "Whitby",
            "sleeps_max": 14,
            "price_midweek": "600.00",
            "price_weekend": "800.00",
            "cleaning_fee": "200.00",
        },
        format="json",
    )
    assert property_response.status_code == 201
    property_id = property_response.data["id"]
    assert public.get(f"/api/properties/{property_id}/").status_code == 404

    # Admin approves it
    admin_client = APIClient()
    admin = User.objects.create_user(username="boss@example.com", email="boss@example.com", password="x" * 10, role=User.ADMIN)
    admin_client.force_authenticate(admin)
    assert admin_client.post(f"/api/admin/properties/{property_id}/approve/").status_code == 200
    assert public.get(f"/api/properties/{property_id}/").status_code == 200

    # Guest books Monday to Friday: four midweek nights
    start = timezone.localdate() + timedelta(weeks=12)
    check_in = start + timedelta(days=(0 - start.weekday()) % 7)
    booking_response = public.post(
        "/api/bookings/create/",
        {
            "property": property_id,
            "check_in": check_in.isoformat(),
            "check_out": (check_in + timedelta(days=4)).isoformat(),
            "number_of_guests": 12,
            "guest_name": "Pat Party",
            "guest_email": "pat@example.com",
            "guest_phone": "07700 900999",
        },
        format="json",
    )
    assert booking_response.status_code == 201
    booking_id = booking_response.data["booking"]["id"]
    assert booking_response.data["pricing"]["total_price"] == "2600.00"
    assert booking_response.data["payment_schedule"]["deposit_amount"] == "650.00"
    assert len(mail.outbox) == 2

    # Someone else tries the same dates
    clash = public.post(
        "/api/bookings/create/",
        {
            "property": property_id,
            "check_in": (check_in + timedelta(days=2)).isoformat(),
            "check_out": (check_in + timedelta(days=5)).isoformat(),
            "number_of_guests": 4,
            "guest_name": "Late Comer",
            "guest_email": "late@example.com",
            "guest_phone": "07700 900000",
        },
        format="json",
    )
    assert clash.status_code == 409

    # Guest signs up with the booking email and pays the deposit
    guest_register = APIClient().post(
        "/api/auth/register/",
        {"email": "pat@example.com", "password": "pass12345"},
        format="json",
    )
    guest_client = APIClient()
    guest_client.credentials(HTTP_AUTHORIZATION=f"Bearer {guest_register.data['access']}")
    assert [item["id"] for item in guest_client.get("/api/bookings/mine/").data] == [booking_id]

    intent_response = guest_client.post(
        f"/api/bookings/{booking_id}/payment/", {"payment_type": "deposit"}, format="json"
    )
    assert intent_response.status_code == 201
    deposit_intent = intent_response.data["payment_intent_id"]

    webhook = _post_webhook(
        public,
        "payment_intent.succeeded",
        {
            "id": deposit_intent,
            "amount_received": 65000,
            "latest_charge": "ch_e2e_deposit",
            "metadata": {"booking_id": str(booking_id), "payment_type": "deposit"},
        },
        "evt_deposit",
    )
    assert webhook.status_code == 200

    status_response = guest_client.get(f"/api/bookings/{booking_id}/status/")
    assert status_response.data["status"] == Booking.CONFIRMED
    assert status_response.data["deposit_paid"] is True

    # Balance
    balance_intent = guest_client.post(
        f"/api/bookings/{booking_id}/payment/", {"payment_type": "balance"}, format="json"
    ).data["payment_intent_id"]
    _post_webhook(
        public,
        "payment_intent.succeeded",
        {
            "id": balance_intent,
            "amount_received": 195000,
            "latest_charge": "ch_e2e_balance",
            "metadata": {"booking_id": str(booking_id), "payment_type": "balance"},
        },
        "evt_balance",
    )
    summary = guest_client.get(f"/api/bookings/{booking_id}/payment/").data
    assert summary["amount_paid"] == "2600.00"
    assert summary["amount_due"] == "0.00"
    assert Payment.objects.filter(booking_id=booking_id, status=Payment.SUCCEEDED).count() == 2

    # Owner cancels well ahead of arrival; the deposit is kept
    cancel = client.put(
        f"/api/bookings/{booking_id}/status/",
        {"action": "cancel", "cancel_reason": "Guest changed plans", "refund": True},
        format="json",
    )
    assert cancel.status_code == 200
    assert cancel.data["refund"]["amount"] == "1950.00"

    booking = Booking.objects.get(pk=booking_id)
    assert booking.status == Booking.CANCELLED
    assert booking.refunded_amount == Decimal("1950.00")
    refund = Refund.objects.get(booking=booking)
    assert refund.stripe_charge_id == "ch_e2e_balance"

    # Stripe later reports the same refund on the charge; nothing is double counted
    _post_webhook(
        public,
        "charge.refunded",
        {
            "id": "ch_e2e_balance",
            "amount_refunded": 195000,
            "metadata": {"booking_id": str(booking_id)},
            "refunds": {"data": [{"id": refund.stripe_refund_id, "amount": 195000}]},
        },
        "evt_refund",
    )
    booking.refresh_from_db()
    assert booking.refunded_amount == Decimal("1950.00")
    assert Refund.objects.filter(booking=booking).count() == 1

    # Late payment updates are refused once cancelled
    refused = client.patch(
        f"/api/bookings/{booking_id}/status/", {"payment_type": "balance", "is_paid": False}, format="json"
    )
    assert refused.status_code == 400
