from decimal import Decimal

from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("properties", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("property_name", models.CharField(max_length=200)),
                ("property_location", models.CharField(blank=True, max_length=200)),
                ("guest_name", models.CharField(max_length=200)),
                ("guest_email", models.EmailField(max_length=254)),
                ("guest_phone", models.CharField(max_length=30)),
                ("check_in", models.DateField()),
                ("check_out", models.DateField()),
                ("number_of_guests", models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ("occasion", models.CharField(blank=True, max_length=120)),
                ("special_requests", models.TextField(blank=True)),
                ("experiences_selected", models.JSONField(blank=True, default=list)),
                ("total_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("deposit_amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("balance_amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("deposit_paid", models.BooleanField(default=False)),
                ("deposit_paid_at", models.DateTimeField(blank=True, null=True)),
                ("balance_paid", models.BooleanField(default=False)),
                ("balance_paid_at", models.DateTimeField(blank=True, null=True)),
                ("refunded_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("confirmed", "Confirmed"), ("completed", "Completed"), ("cancelled", "Cancelled")], default="pending", max_length=12)),
                ("stripe_customer_id", models.CharField(blank=True, max_length=120)),
                ("stripe_deposit_payment_intent_id", models.CharField(blank=True, max_length=120)),
                ("stripe_deposit_charge_id", models.CharField(blank=True, max_length=120)),
                ("stripe_balance_payment_intent_id", models.CharField(blank=True, max_length=120)),
                ("stripe_balance_charge_id", models.CharField(blank=True, max_length=120)),
                ("stripe_refund_id", models.CharField(blank=True, max_length=120)),
                ("admin_notes", models.TextField(blank=True)),
                ("cancellation_reason", models.TextField(blank=True)),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("crm_id", models.CharField(blank=True, max_length=120)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("guest_user", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="bookings", to=settings.AUTH_USER_MODEL)),
                ("property", models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="bookings", to="properties.property")),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["property", "check_in", "check_out"], name="booking_property_dates_idx"),
                    models.Index(fields=["guest_email"], name="booking_guest_email_idx"),
                    models.Index(fields=["status"], name="booking_status_idx"),
                ],
            },
        ),
    ]
