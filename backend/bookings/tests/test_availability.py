from datetime import timedelta

from bookings.models import Booking
from bookings.services.availability import (
    check_availability,
    get_blocked_dates,
    get_next_available_date,
)
from conftest import next_weekday

MONDAY = 0


def test_overlapping_stay_is_unavailable(house, make_booking):
    check_in = next_weekday(MONDAY)
    existing = make_booking(check_in=check_in, nights=2)

    result = check_availability(house, check_in + timedelta(days=1), check_in + timedelta(days=3))

    assert result.available is False
    assert [conflict["id"] for conflict in result.conflicts] == [existing.id]
    assert result.as_dict()["conflicting_bookings"][0]["status"] == Booking.PENDING


def test_back_to_back_stays_do_not_conflict(house, make_booking):
    check_in = next_weekday(MONDAY)
    make_booking(check_in=check_in, nights=2)

    after = check_availability(house, check_in + timedelta(days=2), check_in + timedelta(days=4))
    before = check_availability(house, check_in - timedelta(days=2), check_in)

    assert after.available
    assert before.available


def test_cancelled_bookings_free_their_dates(house, make_booking):
    check_in = next_weekday(MONDAY)
    make_booking(check_in=check_in, nights=2, status=Booking.CANCELLED)

    assert check_availability(house, check_in, check_in + timedelta(days=2)).available


def test_booking_can_be_excluded_from_its_own_check(house, make_booking):
    check_in = next_weekday(MONDAY)
    booking = make_booking(check_in=check_in, nights=2)

    assert check_availability(house, check_in, check_in + timedelta(days=2), exclude=booking).available


def test_reversed_dates_are_unavailable(house):
    check_in = next_weekday(MONDAY)

    result = check_availability(house, check_in, check_in)

    assert result.available is False
    assert result.reason


def test_blocked_dates_list_occupied_nights(house, make_booking):
    check_in = next_weekday(MONDAY)
    make_booking(check_in=check_in, nights=2)
    make_booking(check_in=check_in + timedelta(days=2), nights=1, status=Booking.CONFIRMED)
    make_booking(check_in=check_in + timedelta(days=5), nights=1, status=Booking.CANCELLED)

    blocked = get_blocked_dates(house, from_date=check_in)

    assert blocked == [check_in, check_in + timedelta(days=1), check_in + timedelta(days=2)]
    assert get_blocked_dates(house, from_date=check_in, until=check_in + timedelta(days=1)) == [check_in]


def test_next_available_date_skips_occupied_nights(house, make_booking):
    check_in = next_weekday(MONDAY)
    make_booking(check_in=check_in, nights=2)
    make_booking(check_in=check_in + timedelta(days=3), nights=1)

    assert get_next_available_date(house, from_date=check_in) == check_in + timedelta(days=2)
    assert get_next_available_date(house, from_date=check_in, nights=2) == check_in + timedelta(days=4)
