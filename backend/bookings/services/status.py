from __future__ import annotations

import logging
from typing import Optional

from django.utils import timezone

from bookings.models import Booking
from core.exceptions import InvalidTransition, PaymentError

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    Booking.PENDING: {Booking.CONFIRMED, Booking.CANCELLED},
    Booking.CONFIRMED: {Booking.COMPLETED, Booking.CANCELLED},
    Booking.COMPLETED: set(),
    Booking.CANCELLED: set(),
}

ACTIONS = {
    "confirm": Booking.CONFIRMED,
    "complete": Booking.COMPLETED,
    "cancel": Booking.CANCELLED,
}

STATUS_INFO = {
    Booking.PENDING: {
        "label": "Pending",
        "description": "Awaiting deposit payment or owner confirmation.",
        "color": "amber",
    },
    Booking.CONFIRMED: {
        "label": "Confirmed",
        "description": "Booking confirmed. Balance due before arrival.",
        "color": "green",
    },
    Booking.COMPLETED: {
        "label": "Completed",
        "description": "Stay completed.",
        "color": "blue",
    },
    Booking.CANCELLED: {
        "label": "Cancelled",
        "description": "Booking cancelled.",
        "color": "red",
    },
}


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


def get_available_actions(status: str) -> list[str]:
    allowed = ALLOWED_TRANSITIONS.get(status, set())
    return [action for action, target in ACTIONS.items() if target in allowed]


def get_status_info(status: str) -> dict:
    info = STATUS_INFO.get(status)
    if info is None:
        return {"label": status, "description": "", "color": "gray", "is_terminal": False}
    return {**info, "is_terminal": not ALLOWED_TRANSITIONS[status]}


def _append_notes(booking: Booking, admin_notes: Optional[str], update_fields: list[str]) -> None:
    if admin_notes:
        booking.admin_notes = f"{booking.admin_notes}\n{admin_notes}".strip() if booking.admin_notes else admin_notes
        update_fields.append("admin_notes")


def _transition(booking: Booking, target: str, *, admin_notes: Optional[str] = None, extra_fields: Optional[dict] = None) -> Booking:
    current = booking.status
    if current == target:
        raise InvalidTransition(f"Booking is already {target}")
    if not can_transition(current, target):
        raise InvalidTransition(f"Cannot change booking from {current} to {target}")

    update_fields = ["status", "updated_at"]
    booking.status = target
    for name, value in (extra_fields or {}).items():
        setattr(booking, name, value)
        update_fields.append(name)
    _append_notes(booking, admin_notes, update_fields)
    booking.save(update_fields=update_fields)
    logger.info("Booking %s moved from %s to %s", booking.pk, current, target)
    return booking


def confirm_booking(booking: Booking, admin_notes: Optional[str] = None) -> Booking:
    return _transition(booking, Booking.CONFIRMED, admin_notes=admin_notes, extra_fields={"confirmed_at": timezone.now()})


def complete_booking(booking: Booking, admin_notes: Optional[str] = None) -> Booking:
    return _transition(booking, Booking.COMPLETED, admin_notes=admin_notes, extra_fields={"completed_at": timezone.now()})


def cancel_booking(booking: Booking, reason: str = "", admin_notes: Optional[str] = None) -> Booking:
    return _transition(
        booking,
        Booking.CANCELLED,
        admin_notes=admin_notes,
        extra_fields={"cancelled_at": timezone.now(), "cancellation_reason": reason or ""},
    )


def update_payment_status(booking: Booking, payment_type: str, is_paid: bool) -> Booking:
    """
    Set the deposit or balance paid flag.

    Marking the deposit paid on a pending booking confirms it. Cancelled
    bookings cannot have their payment flags changed.
    """

    if payment_type not in {Booking.DEPOSIT, Booking.BALANCE}:
        raise PaymentError('paymentType must be "deposit" or "balance"', code="INVALID_PAYMENT_TYPE")
    if booking.status == Booking.CANCELLED:
        raise PaymentError("Cannot update payment status of a cancelled booking")

    now = timezone.now()
    flag = f"{payment_type}_paid"
    stamp = f"{payment_type}_paid_at"
    setattr(booking, flag, is_paid)
    setattr(booking, stamp, now if is_paid else None)
    update_fields = [flag, stamp, "updated_at"]

    if payment_type == Booking.DEPOSIT and is_paid and booking.status == Booking.PENDING:
        booking.status = Booking.CONFIRMED
        booking.confirmed_at = now
        update_fields += ["status", "confirmed_at"]
        logger.info("Booking %s confirmed automatically after deposit payment", booking.pk)

    booking.save(update_fields=update_fields)
    logger.info("Booking %s %s marked %s", booking.pk, payment_type, "paid" if is_paid else "unpaid")
    return booking
