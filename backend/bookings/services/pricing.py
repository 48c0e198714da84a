from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from django.conf import settings
from django.utils import timezone

from core.exceptions import PricingError

PENNY = Decimal("0.01")
WEEKEND_NIGHTS = {4, 5}  # Friday and Saturday nights

CURRENCY_SYMBOLS = {"gbp": "£", "eur": "€", "usd": "$"}


def quantize(amount) -> Decimal:
    return Decimal(amount).quantize(PENNY, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal) -> int:
    """Convert a pounds amount to the integer pence Stripe expects."""
    return int((quantize(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def from_minor_units(amount: int) -> Decimal:
    return quantize(Decimal(amount) / 100)


@dataclass
class PriceBreakdown:
    nights: int
    midweek_nights: int
    weekend_nights: int
    price_per_night: Decimal
    subtotal: Decimal
    cleaning_fee: Decimal
    security_deposit: Decimal
    total_price: Decimal
    deposit_amount: Decimal
    balance_amount: Decimal
    currency: str

    def as_dict(self) -> dict:
        return {
            "nights": self.nights,
            "midweek_nights": self.midweek_nights,
            "weekend_nights": self.weekend_nights,
            "price_per_night": str(self.price_per_night),
            "subtotal": str(self.subtotal),
            "cleaning_fee": str(self.cleaning_fee),
            "security_deposit": str(self.security_deposit),
            "total_price": str(self.total_price),
            "deposit_amount": str(self.deposit_amount),
            "balance_amount": str(self.balance_amount),
            "currency": self.currency,
        }


@dataclass
class PaymentDueDates:
    deposit_due_date: date
    balance_due_date: date

    def as_dict(self) -> dict:
        return {
            "deposit_due_date": self.deposit_due_date.isoformat(),
            "balance_due_date": self.balance_due_date.isoformat(),
        }


def _today() -> date:
    return timezone.localdate()


def validate_booking_window(check_in: date, today: Optional[date] = None) -> None:
    """Raise PricingError when check-in is in the past or too far ahead."""

    today = today or _today()
    if check_in < today:
        raise PricingError("Check-in date cannot be in the past", code="INVALID_BOOKING_WINDOW")
    max_days = settings.BOOKING_MAX_ADVANCE_DAYS
    if check_in > today + timedelta(days=max_days):
        raise PricingError(
            f"Bookings can only be made up to {max_days} days in advance",
            code="INVALID_BOOKING_WINDOW",
        )


def split_deposit(total: Decimal) -> tuple[Decimal, Decimal]:
    """Return (deposit, balance); the balance absorbs any rounding so both sum to total."""

    total = quantize(total)
    deposit = quantize(total * Decimal(settings.BOOKING_DEPOSIT_PERCENT) / Decimal(100))
    return deposit, total - deposit


def count_nights(check_in: date, check_out: date) -> tuple[int, int]:
    """Return (midweek_nights, weekend_nights) for the stay."""

    weekend = 0
    midweek = 0
    night = check_in
    while night < check_out:
        if night.weekday() in WEEKEND_NIGHTS:
            weekend += 1
        else:
            midweek += 1
        night += timedelta(days=1)
    return midweek, weekend


def calculate_booking_price(property_obj, check_in: date, check_out: date, guests: int) -> PriceBreakdown:
    """
    Price a stay against the property's rate card.

    Friday and Saturday nights use the weekend rate, every other night the
    midweek rate. The cleaning fee is added once; the refundable security
    deposit is reported but held separately and never part of the total.
    """

    if not property_obj.is_bookable:
        raise PricingError("Property is not available for booking", code="PROPERTY_NOT_BOOKABLE")
    if check_out <= check_in:
        raise PricingError("Check-out date must be after check-in date", code="INVALID_DATES")

    nights = (check_out - check_in).days
    min_nights = settings.BOOKING_MIN_NIGHTS
    max_nights = settings.BOOKING_MAX_NIGHTS
    if nights < min_nights:
        raise PricingError(f"Minimum stay is {min_nights} night(s)", code="STAY_TOO_SHORT")
    if nights > max_nights:
        raise PricingError(f"Maximum stay is {max_nights} nights", code="STAY_TOO_LONG")

    if guests < 1:
        raise PricingError("numberOfGuests must be greater than 0", code="INVALID_GUEST_COUNT")
    if guests > property_obj.sleeps_max:
        raise PricingError(
            f"This property sleeps a maximum of {property_obj.sleeps_max} guests",
            code="TOO_MANY_GUESTS",
        )

    midweek, weekend = count_nights(check_in, check_out)
    subtotal = quantize(property_obj.price_midweek * midweek + property_obj.price_weekend * weekend)
    cleaning_fee = quantize(property_obj.cleaning_fee or 0)
    total = subtotal + cleaning_fee
    deposit, balance = split_deposit(total)

    return PriceBreakdown(
        nights=nights,
        midweek_nights=midweek,
        weekend_nights=weekend,
        price_per_night=quantize(subtotal / nights),
        subtotal=subtotal,
        cleaning_fee=cleaning_fee,
        security_deposit=quantize(property_obj.security_deposit or 0),
        total_price=total,
        deposit_amount=deposit,
        balance_amount=balance,
        currency=settings.BOOKING_CURRENCY,
    )


def calculate_payment_due_dates(check_in: date, today: Optional[date] = None) -> PaymentDueDates:
    today = today or _today()
    balance_due = check_in - timedelta(weeks=settings.BOOKING_BALANCE_DUE_WEEKS)
    if balance_due < today:
        balance_due = today
    return PaymentDueDates(deposit_due_date=today, balance_due_date=balance_due)


def format_price(amount, currency: str | None = None) -> str:
    currency = (currency or settings.BOOKING_CURRENCY).lower()
    symbol = CURRENCY_SYMBOLS.get(currency)
    value = f"{quantize(amount):,.2f}"
    if symbol:
        return f"{symbol}{value}"
    return f"{value} {currency.upper()}"
