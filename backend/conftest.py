from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import User
from bookings.models import Booking
from bookings.services.pricing import calculate_booking_price
from properties.models import Property


def next_weekday(weekday: int, weeks_ahead: int = 10):
    """The first given weekday (Monday=0) at least ``weeks_ahead`` weeks from today."""
    start = timezone.localdate() + timedelta(weeks=weeks_ahead)
    return start + timedelta(days=(weekday - start.weekday()) % 7)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def owner(db):
    return User.objects.create_user(
        username="owner@example.com",
        email="owner@example.com",
        password="password123",
        first_name="Olivia",
        last_name="Owner",
        role=User.OWNER,
    )


@pytest.fixture
def other_owner(db):
    return User.objects.create_user(
        username="other-owner@example.com",
        email="other-owner@example.com",
        password="password123",
        role=User.OWNER,
    )


@pytest.fixture
def guest(db):
    return User.objects.create_user(
        username="guest@example.com",
        email="guest@example.com",
        password="password123",
        first_name="Greta",
        last_name="Guest",
    )


@pytest.fixture
def site_admin(db):
    return User.objects.create_user(
        username="admin@example.com",
        email="admin@example.com",
        password="password123",
        role=User.ADMIN,
    )


@pytest.fixture
def house(owner):
    house = Property.objects.create(
        title="The Old Rectory",
        location="Bath",
        region="Somerset",
        sleeps_min=4,
        sleeps_max=16,
        bedrooms=8,
        bathrooms=5,
        price_midweek=Decimal("500.00"),
        price_weekend=Decimal("700.00"),
        cleaning_fee=Decimal("150.00"),
        security_deposit=Decimal("500.00"),
        owner=owner,
    )
    house.approve(owner)
    return house


@pytest.fixture
def make_booking(house):
    def _make_booking(check_in=None, nights=2, status=Booking.PENDING, **overrides):
        check_in = check_in or next_weekday(0)
        check_out = check_in + timedelta(days=nights)
        price = calculate_booking_price(house, check_in, check_out, overrides.pop("number_of_guests", 8))
        values = {
            "property": house,
            "property_name": house.title,
            "property_location": house.location,
            "guest_name": "Greta Guest",
            "guest_email": "guest@example.com",
            "guest_phone": "07700 900123",
            "check_in": check_in,
            "check_out": check_out,
            "number_of_guests": 8,
            "total_price": price.total_price,
            "deposit_amount": price.deposit_amount,
            "balance_amount": price.balance_amount,
            "status": status,
        }
        values.update(overrides)
        return Booking.objects.create(**values)

    return _make_booking
