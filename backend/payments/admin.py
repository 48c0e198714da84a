from django.contrib import admin

from .models import Payment, Refund


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("booking", "payment_type", "amount", "currency", "status", "paid_at", "created_at")
    list_filter = ("status", "payment_type")
    search_fields = ("stripe_payment_intent", "stripe_charge_id", "booking__guest_email")
    readonly_fields = ("created_at", "updated_at")


@admin.register(Refund)
class RefundAdmin(admin.ModelAdmin):
    list_display = ("booking", "amount", "currency", "status", "stripe_refund_id", "created_at")
    list_filter = ("status",)
    search_fields = ("stripe_refund_id", "stripe_charge_id", "booking__guest_email")
    readonly_fields = ("created_at",)
