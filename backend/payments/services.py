from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional
from uuid import uuid4

import stripe
from django.conf import settings
from django.db import transaction
from django.db.models import Q, Sum
from django.utils import timezone

from bookings.models import Booking
from bookings.services.emails import notify_booking_cancelled, notify_booking_confirmed, notify_payment_received
from bookings.services.pricing import from_minor_units, quantize, to_minor_units
from bookings.services.refunds import amount_paid, refundable_amount
from bookings.services.status import update_payment_status
from core.exceptions import PaymentError, RefundError
from crm.sync import sync_booking

from .models import Payment, Refund

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


@dataclass
class PaymentIntentStub:
    """
    Stand-in for stripe.PaymentIntent when running in stub mode.

    Local development and tests never reach Stripe; predictable identifiers
    keep the rest of the payment flow (ledger rows, webhooks, emails) working.
    """

    id: str
    client_secret: str
    amount: int
    currency: str
    status: str = "requires_payment_method"
    metadata: dict = field(default_factory=dict)


@dataclass
class RefundStub:
    id: str
    amount: int
    charge: str
    status: str = "succeeded"


def _get_stripe_api_key() -> Optional[str]:
    key = getattr(settings, "STRIPE_SECRET_KEY", "")
    return key or None


def _should_use_stub() -> bool:
    if getattr(settings, "STRIPE_USE_STUB", False):
        return True
    return _get_stripe_api_key() is None


def configure_stripe():
    api_key = _get_stripe_api_key()
    if not api_key:
        raise RuntimeError("STRIPE_SECRET_KEY is not configured.")
    stripe.api_key = api_key


def _intent_field(payment_type: str) -> str:
    return f"stripe_{payment_type}_payment_intent_id"


def _charge_field(payment_type: str) -> str:
    return f"stripe_{payment_type}_charge_id"


def build_payment_metadata(booking: Booking, payment_type: str) -> dict:
    return {
        "booking_id": str(booking.id),
        "payment_type": payment_type,
        "property_id": str(booking.property_id or ""),
        "guest_email": booking.guest_email,
    }


def validate_payable(booking: Booking, payment_type: str) -> None:
    if payment_type not in {Booking.DEPOSIT, Booking.BALANCE}:
        raise PaymentError('paymentType must be "deposit" or "balance"', code="INVALID_PAYMENT_TYPE")
    if booking.status == Booking.CANCELLED:
        raise PaymentError("Cannot pay for a cancelled booking", code="BOOKING_CANCELLED")
    if booking.status == Booking.COMPLETED:
        raise PaymentError("Cannot pay for a completed booking", code="BOOKING_COMPLETED")
    if booking.is_paid(payment_type):
        raise PaymentError(f"The {payment_type} has already been paid", code="ALREADY_PAID")
    if payment_type == Booking.BALANCE and not booking.deposit_paid:
        raise PaymentError("The deposit must be paid before the balance", code="DEPOSIT_REQUIRED")


def create_booking_payment_intent(booking: Booking, payment_type: str):
    """
    Create a Stripe PaymentIntent (or stub) for the booking's deposit or balance.

    The intent carries ``booking_id`` and ``payment_type`` metadata so the
    webhook can match the eventual charge back to the booking.
    """

    validate_payable(booking, payment_type)
    amount = booking.amount_for(payment_type)
    currency = settings.BOOKING_CURRENCY
    metadata = build_payment_metadata(booking, payment_type)

    if _should_use_stub():
        intent_id = f"pi_test_{uuid4().hex}"
        intent = PaymentIntentStub(
            id=intent_id,
            client_secret=f"{intent_id}_secret_{uuid4().hex[:12]}",
            amount=to_minor_units(amount),
            currency=currency,
            metadata=metadata,
        )
    else:
        configure_stripe()
        intent = stripe.PaymentIntent.create(
            amount=to_minor_units(amount),
            currency=currency,
            metadata=metadata,
            receipt_email=booking.guest_email,
            description=f"{booking.property_name} {payment_type} (booking #{booking.id})",
            automatic_payment_methods={"enabled": True},
        )

    with transaction.atomic():
        setattr(booking, _intent_field(payment_type), intent.id)
        booking.save(update_fields=[_intent_field(payment_type), "updated_at"])
        Payment.objects.update_or_create(
            stripe_payment_intent=intent.id,
            defaults={
                "booking": booking,
                "payment_type": payment_type,
                "amount": amount,
                "currency": currency,
                "status": Payment.PENDING,
            },
        )
    logger.info("Created %s payment intent %s for booking %s", payment_type, intent.id, booking.id)
    return intent


def retrieve_payment_intent(payment_intent_id: str) -> Optional[dict]:
    """
    Fetch a PaymentIntent from Stripe and return the fields the webhook needs.

    Returns None in stub mode, where there is no Stripe account to ask.
    """

    if _should_use_stub():
        return None
    configure_stripe()
    intent = stripe.PaymentIntent.retrieve(payment_intent_id)
    metadata = getattr(intent, "metadata", None)
    return {
        "id": intent.id,
        "amount_received": getattr(intent, "amount_received", 0) or 0,
        "latest_charge": getattr(intent, "latest_charge", None),
        "metadata": {
            key: getattr(metadata, key, None)
            for key in ("booking_id", "payment_type")
            if metadata is not None and getattr(metadata, key, None)
        },
    }


def get_booking_from_metadata(metadata: Optional[dict]) -> Optional[Booking]:
    booking_id = (metadata or {}).get("booking_id")
    if not booking_id:
        return None
    try:
        return Booking.objects.select_related("property__owner").get(pk=int(booking_id))
    except (Booking.DoesNotExist, TypeError, ValueError):
        logger.warning("Payment metadata references unknown booking %s", booking_id)
        return None


def confirm_booking_payment(payment_intent: dict, charge_id: Optional[str] = None) -> Optional[Booking]:
    """
    Mark the deposit or balance described by a succeeded PaymentIntent as paid.

    Returns the booking, or None when the intent carries no booking id. Repeat
    deliveries for a payment already recorded are ignored.
    """

    metadata = payment_intent.get("metadata") or {}
    booking = get_booking_from_metadata(metadata)
    if booking is None:
        return None

    payment_type = metadata.get("payment_type") or Booking.DEPOSIT
    if payment_type not in {Booking.DEPOSIT, Booking.BALANCE}:
        logger.warning("Ignoring payment intent %s with payment type %s", payment_intent.get("id"), payment_type)
        return None

    latest_charge = payment_intent.get("latest_charge")
    if isinstance(latest_charge, dict):
        latest_charge = latest_charge.get("id")
    charge_id = charge_id or latest_charge or ""

    existing_charge = getattr(booking, _charge_field(payment_type))
    if booking.is_paid(payment_type):
        logger.info("Booking %s %s already recorded as paid; skipping", booking.id, payment_type)
        if charge_id and existing_charge and existing_charge != charge_id:
            logger.warning(
                "Booking %s %s paid by charge %s but event reports charge %s",
                booking.id,
                payment_type,
                existing_charge,
                charge_id,
            )
        elif charge_id and not existing_charge:
            setattr(booking, _charge_field(payment_type), charge_id)
            booking.save(update_fields=[_charge_field(payment_type), "updated_at"])
        return booking

    amount = booking.amount_for(payment_type)
    if payment_intent.get("amount_received"):
        amount = from_minor_units(payment_intent["amount_received"])

    was_pending = booking.status == Booking.PENDING
    with transaction.atomic():
        Payment.objects.update_or_create(
            stripe_payment_intent=payment_intent["id"],
            defaults={
                "booking": booking,
                "payment_type": payment_type,
                "amount": amount,
                "currency": settings.BOOKING_CURRENCY,
                "stripe_charge_id": charge_id,
                "status": Payment.SUCCEEDED,
                "failure_message": "",
                "paid_at": timezone.now(),
            },
        )
        setattr(booking, _intent_field(payment_type), payment_intent["id"])
        setattr(booking, _charge_field(payment_type), charge_id)
        booking.save(update_fields=[_intent_field(payment_type), _charge_field(payment_type), "updated_at"])
        if booking.status == Booking.CANCELLED:
            logger.warning("Payment %s received for cancelled booking %s", payment_intent["id"], booking.id)
            return booking
        update_payment_status(booking, payment_type, True)

    logger.info("Booking %s %s payment confirmed (%s)", booking.id, payment_type, payment_intent["id"])
    notify_payment_received(booking, payment_type, amount)
    if was_pending and booking.status == Booking.CONFIRMED:
        notify_booking_confirmed(booking)
    sync_booking(booking, action="payment")
    return booking


def handle_payment_failure(payment_intent_id: str, message: str = "", metadata: Optional[dict] = None) -> Optional[Payment]:
    payment = Payment.objects.filter(stripe_payment_intent=payment_intent_id).first()
    if payment is None:
        booking = get_booking_from_metadata(metadata)
        if booking is None:
            logger.warning("Payment failure for unknown intent %s", payment_intent_id)
            return None
        payment_type = (metadata or {}).get("payment_type") or Booking.DEPOSIT
        payment = Payment.objects.create(
            booking=booking,
            payment_type=payment_type,
            amount=booking.amount_for(payment_type),
            currency=settings.BOOKING_CURRENCY,
            stripe_payment_intent=payment_intent_id,
            status=Payment.PENDING,
        )
    if payment.status == Payment.SUCCEEDED:
        logger.info("Ignoring failure for already succeeded payment %s", payment_intent_id)
        return payment

    payment.status = Payment.FAILED
    payment.failure_message = message or "Payment failed"
    payment.save(update_fields=["status", "failure_message", "updated_at"])
    logger.warning("Payment %s for booking %s failed: %s", payment_intent_id, payment.booking_id, payment.failure_message)
    return payment


def _refunded_on_charge(charge_id: str) -> Decimal:
    total = Refund.objects.filter(stripe_charge_id=charge_id).aggregate(total=Sum("amount"))["total"]
    return quantize(total or ZERO)


def _refundable_charges(booking: Booking) -> list[tuple[str, str, Decimal]]:
    """(payment_type, charge_id, remaining) for paid charges, balance first."""

    charges = []
    for payment_type in (Booking.BALANCE, Booking.DEPOSIT):
        charge_id = getattr(booking, _charge_field(payment_type))
        if not booking.is_paid(payment_type) or not charge_id:
            continue
        remaining = booking.amount_for(payment_type) - _refunded_on_charge(charge_id)
        if remaining > ZERO:
            charges.append((payment_type, charge_id, remaining))
    return charges


def _sync_refund_totals(booking: Booking) -> bool:
    """Recompute refunded_amount from the ledger; returns True when fully refunded."""

    total = Refund.objects.filter(booking=booking).aggregate(total=Sum("amount"))["total"] or ZERO
    booking.refunded_amount = quantize(total)
    update_fields = ["refunded_amount", "updated_at"]
    first_refund = Refund.objects.filter(booking=booking).order_by("created_at", "id").first()
    if first_refund and not booking.stripe_refund_id:
        booking.stripe_refund_id = first_refund.stripe_refund_id
        update_fields.append("stripe_refund_id")

    paid = amount_paid(booking)
    fully_refunded = paid > ZERO and booking.refunded_amount >= paid
    if fully_refunded and booking.status != Booking.CANCELLED:
        booking.status = Booking.CANCELLED
        booking.cancelled_at = timezone.now()
        update_fields += ["status", "cancelled_at"]
        logger.info("Booking %s cancelled after full refund", booking.id)
    booking.save(update_fields=update_fields)

    for payment in booking.payments.filter(status__in=[Payment.SUCCEEDED, Payment.PARTIALLY_REFUNDED]):
        if not payment.stripe_charge_id:
            continue
        refunded = _refunded_on_charge(payment.stripe_charge_id)
        if refunded <= ZERO:
            continue
        payment.status = Payment.REFUNDED if refunded >= payment.amount else Payment.PARTIALLY_REFUNDED
        payment.save(update_fields=["status", "updated_at"])
    return fully_refunded


def validate_refund(booking: Booking, amount: Optional[Decimal]) -> Decimal:
    paid = amount_paid(booking)
    if paid <= ZERO:
        raise RefundError("No payments have been made for this booking", code="NO_PAYMENTS")
    refundable = refundable_amount(booking)
    if refundable <= ZERO:
        raise RefundError("This booking has already been fully refunded", code="ALREADY_REFUNDED")
    if not booking.stripe_deposit_charge_id and not booking.stripe_balance_charge_id:
        raise RefundError("No Stripe charge found for this booking", code="NO_CHARGE_ID")
    if amount is None:
        return refundable
    amount = quantize(amount)
    if amount <= ZERO:
        raise RefundError("Refund amount must be greater than zero", code="INVALID_AMOUNT")
    if amount > refundable:
        raise RefundError(
            f"Refund amount exceeds the refundable amount of {refundable}",
            code="AMOUNT_EXCEEDS_PAYMENT",
            extra={"max_refundable": str(refundable)},
        )
    return amount


def create_booking_refund(booking: Booking, amount: Optional[Decimal] = None, reason: str = "", user=None) -> list[Refund]:
    """
    Refund up to ``amount`` (default: everything paid and not yet refunded).

    The balance charge is refunded before the deposit charge. A refund that
    returns everything paid cancels the booking.
    """

    amount = validate_refund(booking, amount)
    charges = _refundable_charges(booking)
    if not charges:
        raise RefundError("No refundable Stripe charge found for this booking", code="NO_CHARGE_ID")

    use_stub = _should_use_stub()
    if not use_stub:
        configure_stripe()

    refunds: list[Refund] = []
    remaining = amount
    was_cancelled = booking.status == Booking.CANCELLED
    try:
        for payment_type, charge_id, available in charges:
            if remaining <= ZERO:
                break
            portion = min(remaining, available)
            if use_stub:
                stripe_refund = RefundStub(id=f"re_test_{uuid4().hex}", amount=to_minor_units(portion), charge=charge_id)
            else:
                stripe_refund = stripe.Refund.create(
                    charge=charge_id,
                    amount=to_minor_units(portion),
                    metadata={"booking_id": str(booking.id), "payment_type": payment_type},
                )
            refunds.append(
                Refund.objects.create(
                    booking=booking,
                    payment=booking.payments.filter(stripe_charge_id=charge_id).first(),
                    amount=portion,
                    currency=settings.BOOKING_CURRENCY,
                    stripe_refund_id=stripe_refund.id,
                    stripe_charge_id=charge_id,
                    status=getattr(stripe_refund, "status", None) or "pending",
                    reason=reason,
                    created_by=user if user is not None and user.is_authenticated else None,
                )
            )
            remaining -= portion
            logger.info("Refunded %s on %s charge %s for booking %s", portion, payment_type, charge_id, booking.id)
    finally:
        # Refunds already issued must reach the booking even when a later charge fails.
        if refunds:
            if _sync_refund_totals(booking) and not was_cancelled:
                notify_booking_cancelled(booking, booking.refunded_amount)
            sync_booking(booking, action="refund")

    if remaining > ZERO:
        logger.warning("Booking %s refund short by %s; no charge left to refund", booking.id, remaining)
    return refunds


def find_booking_for_charge(charge: dict) -> Optional[Booking]:
    booking = get_booking_from_metadata(charge.get("metadata"))
    if booking is not None:
        return booking
    charge_id = charge.get("id")
    if not charge_id:
        return None
    return (
        Booking.objects.filter(Q(stripe_deposit_charge_id=charge_id) | Q(stripe_balance_charge_id=charge_id))
        .select_related("property__owner")
        .first()
    )


def record_charge_refund(charge: dict) -> Optional[Booking]:
    """
    Record refunds reported by a ``charge.refunded`` event.

    Refunds issued through this application are already in the ledger and are
    skipped by id; refunds made from the Stripe dashboard are added.
    """

    booking = find_booking_for_charge(charge)
    if booking is None:
        return None

    charge_id = charge["id"]
    refund_items = (charge.get("refunds") or {}).get("data") or []
    created = 0
    for item in refund_items:
        if Refund.objects.filter(stripe_refund_id=item["id"]).exists():
            continue
        Refund.objects.create(
            booking=booking,
            payment=booking.payments.filter(stripe_charge_id=charge_id).first(),
            amount=from_minor_units(item.get("amount") or 0),
            currency=item.get("currency") or settings.BOOKING_CURRENCY,
            stripe_refund_id=item["id"],
            stripe_charge_id=charge_id,
            status=item.get("status") or "succeeded",
            reason=item.get("reason") or "",
        )
        created += 1

    if not refund_items:
        # Events without expanded refunds only report the running total for the charge.
        delta = from_minor_units(charge.get("amount_refunded") or 0) - _refunded_on_charge(charge_id)
        if delta > ZERO:
            Refund.objects.create(
                booking=booking,
                payment=booking.payments.filter(stripe_charge_id=charge_id).first(),
                amount=delta,
                currency=settings.BOOKING_CURRENCY,
                stripe_refund_id=f"{charge_id}:{charge.get('amount_refunded')}",
                stripe_charge_id=charge_id,
                status="succeeded",
            )
            created += 1

    if not created:
        logger.info("Charge %s refunds already recorded for booking %s", charge_id, booking.id)
        return booking

    was_cancelled = booking.status == Booking.CANCELLED
    if _sync_refund_totals(booking) and not was_cancelled:
        notify_booking_cancelled(booking, booking.refunded_amount)
    logger.info("Recorded %s refund(s) on charge %s for booking %s", created, charge_id, booking.id)
    return booking
