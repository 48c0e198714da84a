from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone

from accounts.models import User
from bookings.models import Booking
from bookings.services.pricing import calculate_booking_price
from bookings.services.status import update_payment_status
from properties.models import Property


SEED_PASSWORD = "EscapeHouses123!"
SUPERUSER_EMAIL = "admin@escapehouses.test"
SUPERUSER_PASSWORD = "AdminEscapeHouses123!"

SAMPLE_PROPERTIES = [
    {
        "title": "The Old Rectory",
        "location": "Bath",
        "region": "Somerset",
        "sleeps_min": 8,
        "sleeps_max": 16,
        "bedrooms": 8,
        "bathrooms": 6,
        "price_midweek": Decimal("850.00"),
        "price_weekend": Decimal("1200.00"),
        "cleaning_fee": Decimal("250.00"),
        "security_deposit": Decimal("500.00"),
        "featured": True,
    },
    {
        "title": "Harbour View Lodge",
        "location": "Padstow",
        "region": "Cornwall",
        "sleeps_min": 6,
        "sleeps_max": 12,
        "bedrooms": 6,
        "bathrooms": 4,
        "price_midweek": Decimal("650.00"),
        "price_weekend": Decimal("900.00"),
        "cleaning_fee": Decimal("180.00"),
        "security_deposit": Decimal("400.00"),
    },
]


class Command(BaseCommand):
    help = "Populate the local development database with sample data."

    def handle(self, *args, **options):
        if not settings.DEBUG:
            raise CommandError("Refusing to seed data while DEBUG is False.")

        with transaction.atomic():
            self.stdout.write(self.style.MIGRATE_HEADING("Creating users"))
            owner = self._ensure_user("owner@escapehouses.test", "Olivia", "Owner", User.OWNER)
            guest = self._ensure_user("guest@example.test", "Greta", "Guest", User.GUEST)

            self.stdout.write(self.style.MIGRATE_HEADING("Ensuring admin superuser"))
            admin = self._ensure_superuser()

            self.stdout.write(self.style.MIGRATE_HEADING("Creating properties"))
            properties = [self._ensure_property(owner, admin, **values) for values in SAMPLE_PROPERTIES]
            pending, _ = Property.objects.get_or_create(
                title="Moorland Barn",
                defaults={
                    "location": "Dartmoor",
                    "region": "Devon",
                    "sleeps_max": 10,
                    "price_midweek": Decimal("420.00"),
                    "price_weekend": Decimal("600.00"),
                    "owner": owner,
                },
            )
            self.stdout.write(self.style.NOTICE(f"{pending.title} is awaiting approval"))

            self.stdout.write(self.style.MIGRATE_HEADING("Creating bookings"))
            Booking.objects.filter(property__in=properties).delete()
            today = timezone.localdate()
            friday = today + timedelta(days=(4 - today.weekday()) % 7)

            self._create_booking(properties[0], guest, friday + timedelta(weeks=12), nights=2)
            deposit_paid = self._create_booking(properties[0], guest, friday + timedelta(weeks=20), nights=3)
            update_payment_status(deposit_paid, Booking.DEPOSIT, True)
            paid_in_full = self._create_booking(properties[1], guest, friday + timedelta(weeks=4), nights=7)
            update_payment_status(paid_in_full, Booking.DEPOSIT, True)
            update_payment_status(paid_in_full, Booking.BALANCE, True)

        self.stdout.write(self.style.SUCCESS("Development seed data created."))
        self.stdout.write(self.style.NOTICE(f"Sample login accounts use password: {SEED_PASSWORD}"))
        self.stdout.write(self.style.NOTICE(f"Admin superuser {SUPERUSER_EMAIL} password: {SUPERUSER_PASSWORD}"))

    def _ensure_user(self, email: str, first_name: str, last_name: str, role: str) -> User:
        user, created = User.objects.get_or_create(
            email=email,
            defaults={
                "username": email,
                "first_name": first_name,
                "last_name": last_name,
                "display_name": f"{first_name} {last_name}",
                "role": role,
            },
        )
        if created or not user.has_usable_password():
            user.set_password(SEED_PASSWORD)
            user.save(update_fields=["password"])
        if user.role != role:
            user.role = role
            user.save(update_fields=["role"])
        return user

    def _ensure_superuser(self) -> User:
        user, created = User.objects.get_or_create(
            email=SUPERUSER_EMAIL,
            defaults={
                "username": SUPERUSER_EMAIL,
                "first_name": "Admin",
                "last_name": "User",
                "display_name": "Admin User",
                "role": User.ADMIN,
                "is_staff": True,
                "is_superuser": True,
            },
        )
        flag_updates = {}
        if not user.is_staff:
            flag_updates["is_staff"] = True
        if not user.is_superuser:
            flag_updates["is_superuser"] = True
        if flag_updates:
            for attr, value in flag_updates.items():
                setattr(user, attr, value)
            user.save(update_fields=list(flag_updates.keys()))
        if created or not user.has_usable_password():
            user.set_password(SUPERUSER_PASSWORD)
            user.save(update_fields=["password"])
        return user

    def _ensure_property(self, owner: User, admin: User, **values) -> Property:
        property_obj, created = Property.objects.get_or_create(
            title=values["title"],
            defaults={**values, "owner": owner},
        )
        if not property_obj.is_bookable:
            property_obj.approve(admin)
        if created:
            self.stdout.write(self.style.NOTICE(f"Added {property_obj.title} for {owner.email}"))
        return property_obj

    def _create_booking(self, property_obj: Property, guest: User, check_in, nights: int) -> Booking:
        check_out = check_in + timedelta(days=nights)
        price = calculate_booking_price(property_obj, check_in, check_out, property_obj.sleeps_min)
        return Booking.objects.create(
            property=property_obj,
            property_name=property_obj.title,
            property_location=property_obj.location,
            guest_user=guest,
            guest_name=guest.full_name,
            guest_email=guest.email,
            guest_phone="07700 900123",
            check_in=check_in,
            check_out=check_out,
            number_of_guests=property_obj.sleeps_min,
            occasion="Birthday weekend",
            total_price=price.total_price,
            deposit_amount=price.deposit_amount,
            balance_amount=price.balance_amount,
        )
