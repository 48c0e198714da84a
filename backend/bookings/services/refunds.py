from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.utils import timezone

from bookings.models import Booking
from .pricing import quantize

ZERO = Decimal("0.00")

POLICY_FULL = "balance_refund"
POLICY_PARTIAL = "half_refund"
POLICY_NONE = "no_refund"


@dataclass
class CancellationRefund:
    amount: Decimal
    forfeited: Decimal
    policy: str
    days_before_arrival: int

    def as_dict(self) -> dict:
        return {
            "amount": str(self.amount),
            "forfeited": str(self.forfeited),
            "policy": self.policy,
            "days_before_arrival": self.days_before_arrival,
        }


def amount_paid(booking: Booking) -> Decimal:
    paid = ZERO
    if booking.deposit_paid:
        paid += booking.deposit_amount
    if booking.balance_paid:
        paid += booking.balance_amount
    return quantize(paid)


def refundable_amount(booking: Booking) -> Decimal:
    return max(amount_paid(booking) - quantize(booking.refunded_amount or ZERO), ZERO)


def calculate_cancellation_refund(booking: Booking, today: Optional[date] = None) -> CancellationRefund:
    """
    Apply the cancellation policy to a booking.

    More than ``BOOKING_FULL_REFUND_WEEKS`` before arrival the deposit is
    forfeited and the balance returned; from ``BOOKING_PARTIAL_REFUND_WEEKS``
    up to that point half the total is forfeited; closer than that nothing is
    returned. The result never exceeds what has been paid and not yet refunded.
    """

    today = today or timezone.localdate()
    days = (booking.check_in - today).days
    total = quantize(booking.total_price)

    if days > settings.BOOKING_FULL_REFUND_WEEKS * 7:
        policy = POLICY_FULL
        forfeit = quantize(booking.deposit_amount)
    elif days >= settings.BOOKING_PARTIAL_REFUND_WEEKS * 7:
        policy = POLICY_PARTIAL
        forfeit = quantize(total / 2)
    else:
        policy = POLICY_NONE
        forfeit = total

    paid = amount_paid(booking)
    amount = min(max(paid - forfeit, ZERO), refundable_amount(booking))
    return CancellationRefund(
        amount=amount,
        forfeited=min(forfeit, paid),
        policy=policy,
        days_before_arrival=days,
    )
