from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional

from django.conf import settings
from django.utils import timezone

from bookings.models import Booking


@dataclass
class AvailabilityResult:
    available: bool
    conflicts: list[dict] = field(default_factory=list)
    reason: str = ""

    def as_dict(self) -> dict:
        payload = {"available": self.available, "conflicting_bookings": self.conflicts}
        if self.reason:
            payload["reason"] = self.reason
        return payload


def _active_bookings(property_obj):
    return Booking.objects.filter(property=property_obj).exclude(status=Booking.CANCELLED)


def find_conflicts(property_obj, check_in: date, check_out: date, exclude: Optional[Booking] = None):
    # Half-open stays: a check-out on the day of another check-in does not overlap.
    queryset = _active_bookings(property_obj).filter(check_in__lt=check_out, check_out__gt=check_in)
    if exclude is not None and exclude.pk:
        queryset = queryset.exclude(pk=exclude.pk)
    return queryset.order_by("check_in")


def check_availability(property_obj, check_in: date, check_out: date, exclude: Optional[Booking] = None) -> AvailabilityResult:
    if check_out <= check_in:
        return AvailabilityResult(available=False, reason="Check-out date must be after check-in date")

    conflicts = [
        {
            "id": booking.id,
            "check_in": booking.check_in.isoformat(),
            "check_out": booking.check_out.isoformat(),
            "status": booking.status,
        }
        for booking in find_conflicts(property_obj, check_in, check_out, exclude=exclude)
    ]
    if conflicts:
        return AvailabilityResult(
            available=False,
            conflicts=conflicts,
            reason="Property is not available for the selected dates",
        )
    return AvailabilityResult(available=True)


def get_blocked_dates(property_obj, from_date: Optional[date] = None, until: Optional[date] = None) -> list[date]:
    """Every occupied night from ``from_date`` onwards, sorted and de-duplicated."""

    from_date = from_date or timezone.localdate()
    queryset = _active_bookings(property_obj).filter(check_out__gt=from_date)
    if until is not None:
        queryset = queryset.filter(check_in__lt=until)

    blocked: set[date] = set()
    for check_in, check_out in queryset.values_list("check_in", "check_out"):
        night = max(check_in, from_date)
        while night < check_out:
            if until is None or night < until:
                blocked.add(night)
            night += timedelta(days=1)
    return sorted(blocked)


def get_next_available_date(property_obj, from_date: Optional[date] = None, nights: int = 1) -> Optional[date]:
    """
    First date on or after ``from_date`` with ``nights`` consecutive free nights.

    Returns None when nothing is free inside the advance booking window.
    """

    from_date = from_date or timezone.localdate()
    horizon = timezone.localdate() + timedelta(days=settings.BOOKING_MAX_ADVANCE_DAYS)
    blocked = set(get_blocked_dates(property_obj, from_date, until=horizon + timedelta(days=nights)))

    candidate = from_date
    while candidate <= horizon:
        stay = [candidate + timedelta(days=offset) for offset in range(nights)]
        clash = next((night for night in stay if night in blocked), None)
        if clash is None:
            return candidate
        candidate = clash + timedelta(days=1)
    return None
