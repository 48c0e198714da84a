import json
import logging

import stripe
from django.conf import settings
from rest_framework import generics, permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsOwnerOrAdmin
from core.exceptions import error_response

from . import services
from .models import Payment
from .serializers import PaymentSerializer

logger = logging.getLogger(__name__)


def handle_payment_intent_succeeded(payment_intent: dict):
    booking = services.confirm_booking_payment(payment_intent)
    return booking.id if booking else None


def handle_payment_intent_failed(payment_intent: dict):
    error = payment_intent.get("last_payment_error") or {}
    payment = services.handle_payment_failure(
        payment_intent["id"],
        error.get("message", ""),
        metadata=payment_intent.get("metadata"),
    )
    return payment.booking_id if payment else None


def _intent_for_charge(charge: dict):
    """Charges carry the intent id; the booking metadata lives on the intent."""

    intent_id = charge.get("payment_intent")
    if isinstance(intent_id, dict):
        return intent_id
    if not intent_id:
        return None
    if (charge.get("metadata") or {}).get("booking_id"):
        return {"id": intent_id, "metadata": charge["metadata"], "amount_received": charge.get("amount", 0)}
    # Charge events back up the intent events, so a failed lookup must not fail the webhook.
    try:
        return services.retrieve_payment_intent(intent_id)
    except (stripe.error.StripeError, RuntimeError):
        logger.exception("Could not look up payment intent %s for charge %s", intent_id, charge.get("id"))
        return None


def handle_charge_succeeded(charge: dict):
    # Backup for payment_intent.succeeded; confirm_booking_payment ignores repeats.
    intent = _intent_for_charge(charge)
    if not intent or not (intent.get("metadata") or {}).get("booking_id"):
        return None
    booking = services.confirm_booking_payment(intent, charge_id=charge.get("id"))
    return booking.id if booking else None


def handle_charge_failed(charge: dict):
    intent = _intent_for_charge(charge)
    if not intent or not (intent.get("metadata") or {}).get("booking_id"):
        return None
    payment = services.handle_payment_failure(
        intent["id"],
        charge.get("failure_message") or "",
        metadata=intent.get("metadata"),
    )
    return payment.booking_id if payment else None


def handle_charge_refunded(charge: dict):
    booking = services.record_charge_refund(charge)
    return booking.id if booking else None


EVENT_HANDLERS = {
    "payment_intent.succeeded": handle_payment_intent_succeeded,
    "payment_intent.payment_failed": handle_payment_intent_failed,
    "charge.succeeded": handle_charge_succeeded,
    "charge.failed": handle_charge_failed,
    "charge.refunded": handle_charge_refunded,
}


class BookingPaymentWebhookView(APIView):
    """Receive Stripe events for booking deposits, balances and refunds."""

    permission_classes: list = []
    authentication_classes: list = []

    def get(self, request, *args, **kwargs):
        return Response(
            {
                "status": "ok",
                "endpoint": "booking-payments",
                "configured": bool(settings.STRIPE_WEBHOOK_SECRET),
                "events": sorted(EVENT_HANDLERS),
            }
        )

    def post(self, request, *args, **kwargs):
        payload = request.body
        sig_header = request.META.get("HTTP_STRIPE_SIGNATURE")
        if not sig_header:
            logger.warning("Booking payment webhook called without a Stripe signature.")
            return error_response("Missing Stripe signature", "MISSING_SIGNATURE", status.HTTP_400_BAD_REQUEST)
        if not settings.STRIPE_WEBHOOK_SECRET:
            logger.error("Stripe webhook secret not configured.")
            return error_response(
                "Webhook secret not configured",
                "WEBHOOK_NOT_CONFIGURED",
                status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        try:
            stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"),
                sig_header,
                settings.STRIPE_WEBHOOK_SECRET,
                stripe.Webhook.DEFAULT_TOLERANCE,
            )
            event = json.loads(payload)
        except stripe.error.SignatureVerificationError:
            logger.warning("Invalid Stripe signature on booking payment webhook.")
            return error_response("Invalid signature", "INVALID_SIGNATURE", status.HTTP_401_UNAUTHORIZED)
        except (ValueError, UnicodeDecodeError):
            logger.warning("Invalid payload received on booking payment webhook.")
            return error_response("Invalid payload", "INVALID_PAYLOAD", status.HTTP_400_BAD_REQUEST)

        event_type = event.get("type", "")
        event_id = event.get("id", "")
        data_object = (event.get("data") or {}).get("object") or {}
        handler = EVENT_HANDLERS.get(event_type)
        if handler is None:
            logger.info("Ignoring unhandled Stripe event %s (%s)", event_type, event_id)
        else:
            try:
                booking_id = handler(data_object)
            except stripe.error.StripeError:
                logger.exception("Stripe error handling %s (%s)", event_type, event_id)
                return error_response("Failed to process webhook", "WEBHOOK_PROCESSING_FAILED", status.HTTP_500_INTERNAL_SERVER_ERROR)
            if booking_id is None:
                logger.info("Stripe event %s (%s) did not match a booking", event_type, event_id)
            else:
                logger.info("Processed Stripe event %s (%s) for booking %s", event_type, event_id, booking_id)

        return Response({"received": True, "eventType": event_type, "eventId": event_id})


class PaymentHistoryView(generics.ListAPIView):
    serializer_class = PaymentSerializer
    permission_classes = [permissions.IsAuthenticated, IsOwnerOrAdmin]
    filterset_fields = ["status", "payment_type", "booking"]
    ordering_fields = ["created_at", "amount"]

    def get_queryset(self):
        user = self.request.user
        queryset = Payment.objects.select_related("booking").order_by("-created_at")
        if user.is_admin:
            return queryset
        return queryset.filter(booking__property__owner=user)
