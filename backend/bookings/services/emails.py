from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, Optional

from django.conf import settings
from django.core.mail import send_mail

from bookings.models import Booking
from .pricing import PaymentDueDates, format_price

logger = logging.getLogger(__name__)

SIGN_OFF = ["", "Best wishes,", "The Group Escape Houses Team"]


def _date(value) -> str:
    return f"{value:%A %d %B %Y}"


def _booking_url(booking: Booking) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/guest/bookings?booking={booking.id}"


def _send(subject: str, body_lines: list[str], recipients: Iterable[str]) -> int:
    recipients = [email for email in recipients if email]
    if not recipients:
        return 0
    return send_mail(
        subject,
        "\n".join(body_lines),
        settings.DEFAULT_FROM_EMAIL,
        recipients,
        fail_silently=False,
    )


def _stay_lines(booking: Booking) -> list[str]:
    return [
        f"Property: {booking.property_name}" + (f", {booking.property_location}" if booking.property_location else ""),
        f"Check-in: {_date(booking.check_in)}",
        f"Check-out: {_date(booking.check_out)} ({booking.nights} night{'s' if booking.nights != 1 else ''})",
        f"Guests: {booking.number_of_guests}",
        f"Booking reference: #{booking.id}",
    ]


def send_booking_received_email(booking: Booking, due_dates: Optional[PaymentDueDates] = None) -> int:
    body_lines = [
        f"Hi {booking.guest_name},",
        "",
        f"Thank you for your booking request at {booking.property_name}.",
        "",
        *_stay_lines(booking),
        "",
        f"Total price: {format_price(booking.total_price)}",
        f"Deposit (due now): {format_price(booking.deposit_amount)}",
        f"Balance: {format_price(booking.balance_amount)}"
        + (f" due by {_date(due_dates.balance_due_date)}" if due_dates else ""),
        "",
        f"Please pay your deposit to secure your dates: {_booking_url(booking)}",
        *SIGN_OFF,
    ]
    return _send(f"Booking received: {booking.property_name}", body_lines, [booking.guest_email])


def send_owner_booking_notification(booking: Booking) -> int:
    recipients = []
    owner = booking.property.owner if booking.property_id else None
    if owner is not None and owner.email:
        recipients.append(owner.email)
    admin_email = getattr(settings, "ADMIN_NOTIFICATION_EMAIL", "")
    if admin_email and admin_email not in recipients:
        recipients.append(admin_email)

    body_lines = [
        f"A new booking has been made for {booking.property_name}.",
        "",
        *_stay_lines(booking),
        "",
        f"Guest: {booking.guest_name} <{booking.guest_email}>, {booking.guest_phone}",
    ]
    if booking.occasion:
        body_lines.append(f"Occasion: {booking.occasion}")
    if booking.special_requests:
        body_lines.append(f"Special requests: {booking.special_requests}")
    body_lines += [
        "",
        f"Total price: {format_price(booking.total_price)}",
        f"Deposit: {format_price(booking.deposit_amount)} ({'paid' if booking.deposit_paid else 'awaiting payment'})",
        f"Dashboard: {settings.FRONTEND_URL.rstrip('/')}/owner/bookings",
    ]
    return _send(f"New booking: {booking.property_name} #{booking.id}", body_lines, recipients)


def send_payment_received_email(booking: Booking, payment_type: str, amount: Decimal) -> int:
    body_lines = [
        f"Hi {booking.guest_name},",
        "",
        f"We have received your {payment_type} payment of {format_price(amount)} for {booking.property_name}.",
        "",
        *_stay_lines(booking),
        "",
    ]
    if booking.balance_paid:
        body_lines.append("Your booking is now paid in full.")
    else:
        body_lines.append(f"Outstanding balance: {format_price(booking.balance_amount)}")
    body_lines += SIGN_OFF
    return _send(f"Payment received: {booking.property_name}", body_lines, [booking.guest_email])


def send_booking_confirmed_email(booking: Booking) -> int:
    body_lines = [
        f"Hi {booking.guest_name},",
        "",
        f"Great news! Your stay at {booking.property_name} is confirmed.",
        "",
        *_stay_lines(booking),
        "",
        f"View your booking: {_booking_url(booking)}",
        *SIGN_OFF,
    ]
    return _send(f"Booking confirmed: {booking.property_name}", body_lines, [booking.guest_email])


def send_booking_cancelled_email(booking: Booking, refund_amount: Optional[Decimal] = None) -> int:
    body_lines = [
        f"Hi {booking.guest_name},",
        "",
        f"Your booking at {booking.property_name} has been cancelled.",
        "",
        *_stay_lines(booking),
    ]
    if booking.cancellation_reason:
        body_lines += ["", f"Reason: {booking.cancellation_reason}"]
    body_lines.append("")
    if refund_amount:
        body_lines.append(
            f"A refund of {format_price(refund_amount)} is being processed and should reach your account within 5-10 working days."
        )
    else:
        body_lines.append("No refund is due under our cancellation policy.")
    body_lines += SIGN_OFF
    return _send(f"Booking cancelled: {booking.property_name}", body_lines, [booking.guest_email])


def _notify(sender, booking: Booking, *args, **kwargs) -> bool:
    try:
        sender(booking, *args, **kwargs)
    except Exception:
        logger.exception("Failed to send %s for booking %s", sender.__name__, booking.pk)
        return False
    return True


def notify_booking_created(booking: Booking, due_dates: Optional[PaymentDueDates] = None) -> bool:
    guest_sent = _notify(send_booking_received_email, booking, due_dates)
    owner_sent = _notify(send_owner_booking_notification, booking)
    return guest_sent and owner_sent


def notify_payment_received(booking: Booking, payment_type: str, amount: Decimal) -> bool:
    return _notify(send_payment_received_email, booking, payment_type, amount)


def notify_booking_confirmed(booking: Booking) -> bool:
    return _notify(send_booking_confirmed_email, booking)


def notify_booking_cancelled(booking: Booking, refund_amount: Optional[Decimal] = None) -> bool:
    return _notify(send_booking_cancelled_email, booking, refund_amount)
