import builtins
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class Booking(models.Model):
    """A guest's stay at a property, with its deposit/balance payment schedule."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    STATUSES = [
        (PENDING, "Pending"),
        (CONFIRMED, "Confirmed"),
        (COMPLETED, "Completed"),
        (CANCELLED, "Cancelled"),
    ]

    DEPOSIT = "deposit"
    BALANCE = "balance"
    PAYMENT_TYPES = [
        (DEPOSIT, "Deposit"),
        (BALANCE, "Balance"),
    ]

    property = models.ForeignKey(
        "properties.Property",
        on_delete=models.SET_NULL,
        null=True,
        related_name="bookings",
    )
    # Snapshot of the listing at booking time; survives property edits/deletes.
    property_name = models.CharField(max_length=200)
    property_location = models.CharField(max_length=200, blank=True)

    guest_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bookings",
    )
    guest_name = models.CharField(max_length=200)
    guest_email = models.EmailField()
    guest_phone = models.CharField(max_length=30)

    check_in = models.DateField()
    check_out = models.DateField()
    number_of_guests = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    occasion = models.CharField(max_length=120, blank=True)
    special_requests = models.TextField(blank=True)
    experiences_selected = models.JSONField(default=list, blank=True)

    total_price = models.DecimalField(max_digits=10, decimal_places=2)
    deposit_amount = models.DecimalField(max_digits=10, decimal_places=2)
    balance_amount = models.DecimalField(max_digits=10, decimal_places=2)
    deposit_paid = models.BooleanField(default=False)
    deposit_paid_at = models.DateTimeField(null=True, blank=True)
    balance_paid = models.BooleanField(default=False)
    balance_paid_at = models.DateTimeField(null=True, blank=True)
    refunded_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))

    status = models.CharField(max_length=12, choices=STATUSES, default=PENDING)

    stripe_customer_id = models.CharField(max_length=120, blank=True)
    stripe_deposit_payment_intent_id = models.CharField(max_length=120, blank=True)
    stripe_deposit_charge_id = models.CharField(max_length=120, blank=True)
    stripe_balance_payment_intent_id = models.CharField(max_length=120, blank=True)
    stripe_balance_charge_id = models.CharField(max_length=120, blank=True)
    stripe_refund_id = models.CharField(max_length=120, blank=True)

    admin_notes = models.TextField(blank=True)
    cancellation_reason = models.TextField(blank=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    crm_id = models.CharField(max_length=120, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["property", "check_in", "check_out"], name="booking_property_dates_idx"),
            models.Index(fields=["guest_email"], name="booking_guest_email_idx"),
            models.Index(fields=["status"], name="booking_status_idx"),
        ]

    def __str__(self):
        return f"{self.property_name} booking for {self.guest_name} ({self.check_in} to {self.check_out})"

    # The property FK shadows the builtin inside this class body.
    @builtins.property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    @builtins.property
    def is_terminal(self) -> bool:
        return self.status in {self.COMPLETED, self.CANCELLED}

    @builtins.property
    def is_fully_paid(self) -> bool:
        return self.deposit_paid and self.balance_paid

    def amount_for(self, payment_type: str) -> Decimal:
        return self.deposit_amount if payment_type == self.DEPOSIT else self.balance_amount

    def is_paid(self, payment_type: str) -> bool:
        return self.deposit_paid if payment_type == self.DEPOSIT else self.balance_paid
