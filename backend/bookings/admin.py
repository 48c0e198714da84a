from django.contrib import admin

from payments.models import Payment, Refund

from .models import Booking


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    readonly_fields = ("payment_type", "amount", "currency", "status", "stripe_payment_intent", "stripe_charge_id", "paid_at")
    can_delete = False


class RefundInline(admin.TabularInline):
    model = Refund
    extra = 0
    readonly_fields = ("amount", "currency", "status", "stripe_refund_id", "stripe_charge_id", "reason", "created_by")
    can_delete = False


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("id", "property_name", "guest_name", "check_in", "check_out", "status", "deposit_paid", "balance_paid", "total_price")
    list_filter = ("status", "deposit_paid", "balance_paid")
    search_fields = ("guest_name", "guest_email", "property_name")
    date_hierarchy = "check_in"
    readonly_fields = (
        "stripe_deposit_payment_intent_id",
        "stripe_deposit_charge_id",
        "stripe_balance_payment_intent_id",
        "stripe_balance_charge_id",
        "stripe_refund_id",
        "refunded_amount",
        "crm_id",
        "created_at",
        "updated_at",
    )
    inlines = [PaymentInline, RefundInline]

    def has_delete_permission(self, request, obj=None):
        return False
