from rest_framework import serializers

from .models import Payment, Refund


class PaymentSerializer(serializers.ModelSerializer):
    property_name = serializers.CharField(source="booking.property_name", read_only=True)
    guest_name = serializers.CharField(source="booking.guest_name", read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id",
            "booking",
            "property_name",
            "guest_name",
            "payment_type",
            "amount",
            "currency",
            "status",
            "stripe_payment_intent",
            "stripe_charge_id",
            "failure_message",
            "paid_at",
            "created_at",
        ]
        read_only_fields = fields


class RefundSerializer(serializers.ModelSerializer):
    class Meta:
        model = Refund
        fields = [
            "id",
            "booking",
            "payment",
            "amount",
            "currency",
            "status",
            "stripe_refund_id",
            "stripe_charge_id",
            "reason",
            "created_at",
        ]
        read_only_fields = fields
