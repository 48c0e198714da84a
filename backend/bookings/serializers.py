from rest_framework import serializers

from bookings.models import Booking
from bookings.services.status import get_available_actions, get_status_info


class BookingSerializer(serializers.ModelSerializer):
    nights = serializers.IntegerField(read_only=True)
    property_id = serializers.IntegerField(read_only=True)
    status_info = serializers.SerializerMethodField()
    available_actions = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = [
            "id",
            "property_id",
            "property_name",
            "property_location",
            "guest_user",
            "guest_name",
            "guest_email",
            "guest_phone",
            "check_in",
            "check_out",
            "nights",
            "number_of_guests",
            "occasion",
            "special_requests",
            "experiences_selected",
            "total_price",
            "deposit_amount",
            "balance_amount",
            "deposit_paid",
            "deposit_paid_at",
            "balance_paid",
            "balance_paid_at",
            "refunded_amount",
            "status",
            "status_info",
            "available_actions",
            "admin_notes",
            "cancellation_reason",
            "confirmed_at",
            "completed_at",
            "cancelled_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_status_info(self, obj):
        return get_status_info(obj.status)

    def get_available_actions(self, obj):
        return get_available_actions(obj.status)


class GuestBookingSerializer(BookingSerializer):
    """Booking as shown to the guest: no admin notes or management actions."""

    class Meta(BookingSerializer.Meta):
        fields = [field for field in BookingSerializer.Meta.fields if field not in {"admin_notes", "guest_user", "available_actions"}]
        read_only_fields = fields


class BookingCreateSerializer(serializers.Serializer):
    property = serializers.IntegerField(min_value=1)
    check_in = serializers.DateField()
    check_out = serializers.DateField()
    number_of_guests = serializers.IntegerField(min_value=1)
    guest_name = serializers.CharField(max_length=200)
    guest_email = serializers.EmailField()
    guest_phone = serializers.CharField(max_length=30)
    occasion = serializers.CharField(max_length=120, required=False, allow_blank=True, default="")
    special_requests = serializers.CharField(required=False, allow_blank=True, default="")
    experiences_selected = serializers.ListField(
        child=serializers.CharField(max_length=120),
        required=False,
        default=list,
    )

    def validate_guest_email(self, value):
        return value.strip().lower()

    def validate_guest_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("This field may not be blank.")
        return value


class StayQuerySerializer(serializers.Serializer):
    property = serializers.IntegerField(min_value=1)
    check_in = serializers.DateField()
    check_out = serializers.DateField()
    guests = serializers.IntegerField(min_value=1, required=False, default=1)


class AvailabilityQuerySerializer(serializers.Serializer):
    CHECK = "check"
    BLOCKED_DATES = "blocked-dates"
    NEXT_AVAILABLE = "next-available"

    action = serializers.ChoiceField(choices=[CHECK, BLOCKED_DATES, NEXT_AVAILABLE], default=CHECK)
    property = serializers.IntegerField(min_value=1)
    check_in = serializers.DateField(required=False)
    check_out = serializers.DateField(required=False)
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    nights = serializers.IntegerField(min_value=1, required=False, default=1)

    def validate(self, attrs):
        if attrs["action"] == self.CHECK and not (attrs.get("check_in") and attrs.get("check_out")):
            raise serializers.ValidationError("check_in and check_out are required to check availability.")
        return attrs


class StatusActionSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=["confirm", "complete", "cancel"])
    admin_notes = serializers.CharField(required=False, allow_blank=True, default="")
    cancel_reason = serializers.CharField(required=False, allow_blank=True, default="")
    refund = serializers.BooleanField(required=False, default=False)


class PaymentFlagSerializer(serializers.Serializer):
    payment_type = serializers.ChoiceField(choices=Booking.PAYMENT_TYPES)
    is_paid = serializers.BooleanField()


class PaymentIntentRequestSerializer(serializers.Serializer):
    payment_type = serializers.ChoiceField(choices=Booking.PAYMENT_TYPES)


class RefundRequestSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    reason = serializers.CharField(required=False, allow_blank=True, default="")
