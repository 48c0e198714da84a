import logging

import stripe
from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import generics, permissions, status
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsOwnerOrAdmin, can_manage_booking
from bookings.models import Booking
from bookings.serializers import (
    AvailabilityQuerySerializer,
    BookingCreateSerializer,
    BookingSerializer,
    GuestBookingSerializer,
    PaymentFlagSerializer,
    PaymentIntentRequestSerializer,
    RefundRequestSerializer,
    StatusActionSerializer,
    StayQuerySerializer,
)
from bookings.services.availability import check_availability, get_blocked_dates, get_next_available_date
from bookings.services.emails import notify_booking_cancelled, notify_booking_confirmed, notify_booking_created
from bookings.services.pricing import (
    calculate_booking_price,
    calculate_payment_due_dates,
    format_price,
    validate_booking_window,
)
from bookings.services.refunds import amount_paid, calculate_cancellation_refund, refundable_amount
from bookings.services.status import (
    cancel_booking,
    complete_booking,
    confirm_booking,
    get_available_actions,
    get_status_info,
    update_payment_status,
)
from core.exceptions import RefundError, error_response
from crm.sync import sync_booking
from payments.serializers import PaymentSerializer, RefundSerializer
from payments.services import create_booking_payment_intent, create_booking_refund
from properties.models import Property

logger = logging.getLogger(__name__)


def _get_property_or_404(property_id, *, for_update: bool = False):
    queryset = Property.objects.select_related("owner")
    if for_update:
        queryset = queryset.select_for_update()
    property_obj = queryset.filter(pk=property_id).first()
    if property_obj is None:
        return None, error_response("Property not found", "PROPERTY_NOT_FOUND", status.HTTP_404_NOT_FOUND)
    return property_obj, None


def _is_booking_guest(user, booking: Booking) -> bool:
    if not user or not user.is_authenticated:
        return False
    if booking.guest_user_id == user.id:
        return True
    return bool(user.email) and user.email.lower() == booking.guest_email.lower()


def _serialize_booking(user, booking: Booking) -> dict:
    if can_manage_booking(user, booking):
        return BookingSerializer(booking).data
    return GuestBookingSerializer(booking).data


class BookingCreateView(APIView):
    """
    Public booking checkout.

    Validates the stay, checks availability and prices it against the rate
    card, then stores a pending booking awaiting its deposit. Signed-in guests
    have the booking linked to their account.
    """

    permission_classes = [permissions.AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        validate_booking_window(data["check_in"])

        with transaction.atomic():
            # Lock the property row so concurrent checkouts for it run one at a time.
            property_obj, error = _get_property_or_404(data["property"], for_update=True)
            if error:
                return error
            if not property_obj.is_bookable:
                return error_response("Property is not available for booking", "PROPERTY_NOT_PUBLISHED")

            price = calculate_booking_price(property_obj, data["check_in"], data["check_out"], data["number_of_guests"])
            availability = check_availability(property_obj, data["check_in"], data["check_out"])
            if not availability.available:
                return error_response(
                    availability.reason or "Property is not available for selected dates",
                    "NOT_AVAILABLE",
                    status.HTTP_409_CONFLICT,
                    conflicting_bookings=availability.conflicts,
                )

            booking = Booking.objects.create(
                property=property_obj,
                property_name=property_obj.title,
                property_location=property_obj.location,
                guest_user=request.user if request.user.is_authenticated else None,
                guest_name=data["guest_name"],
                guest_email=data["guest_email"],
                guest_phone=data["guest_phone"].strip(),
                check_in=data["check_in"],
                check_out=data["check_out"],
                number_of_guests=data["number_of_guests"],
                occasion=data["occasion"].strip(),
                special_requests=data["special_requests"].strip(),
                experiences_selected=data["experiences_selected"],
                total_price=price.total_price,
                deposit_amount=price.deposit_amount,
                balance_amount=price.balance_amount,
                status=Booking.PENDING,
            )

        logger.info("Booking %s created for property %s (%s)", booking.id, property_obj.id, booking.guest_email)
        due_dates = calculate_payment_due_dates(booking.check_in)
        notify_booking_created(booking, due_dates)
        sync_booking(booking, action="create")

        return Response(
            {
                "success": True,
                "booking": GuestBookingSerializer(booking).data,
                "pricing": price.as_dict(),
                "payment_schedule": {
                    "deposit_due_date": due_dates.deposit_due_date.isoformat(),
                    "deposit_amount": str(price.deposit_amount),
                    "balance_due_date": due_dates.balance_due_date.isoformat(),
                    "balance_amount": str(price.balance_amount),
                },
                "property": {"id": property_obj.id, "title": property_obj.title, "location": property_obj.location},
                "next_steps": {
                    "message": "Booking created successfully",
                    "action": "PAYMENT_REQUIRED",
                    "description": (
                        f"Please complete your deposit payment of {format_price(price.deposit_amount)} "
                        "to confirm your booking."
                    ),
                },
            },
            status=status.HTTP_201_CREATED,
        )


class BookingQuoteView(APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request, *args, **kwargs):
        serializer = StayQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        property_obj, error = _get_property_or_404(data["property"])
        if error:
            return error
        validate_booking_window(data["check_in"])
        price = calculate_booking_price(property_obj, data["check_in"], data["check_out"], data["guests"])
        availability = check_availability(property_obj, data["check_in"], data["check_out"])
        due_dates = calculate_payment_due_dates(data["check_in"])
        return Response(
            {
                "property": {"id": property_obj.id, "title": property_obj.title},
                "check_in": data["check_in"].isoformat(),
                "check_out": data["check_out"].isoformat(),
                "guests": data["guests"],
                "available": availability.available,
                "pricing": price.as_dict(),
                "payment_schedule": due_dates.as_dict(),
            }
        )


class BookingAvailabilityView(APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request, *args, **kwargs):
        serializer = AvailabilityQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        property_obj, error = _get_property_or_404(data["property"])
        if error:
            return error

        action = data["action"]
        if action == AvailabilityQuerySerializer.CHECK:
            result = check_availability(property_obj, data["check_in"], data["check_out"])
            return Response({"property_id": property_obj.id, **result.as_dict()})

        if action == AvailabilityQuerySerializer.BLOCKED_DATES:
            blocked = get_blocked_dates(property_obj, data.get("start_date"), until=data.get("end_date"))
            return Response({"property_id": property_obj.id, "blocked_dates": [day.isoformat() for day in blocked]})

        next_date = get_next_available_date(property_obj, data.get("start_date"), nights=data["nights"])
        return Response(
            {
                "property_id": property_obj.id,
                "nights": data["nights"],
                "next_available_date": next_date.isoformat() if next_date else None,
            }
        )


class BookingBaseView(APIView):
    permission_classes = [permissions.IsAuthenticated]
    booking: Booking | None = None

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        self.booking = get_object_or_404(
            Booking.objects.select_related("property__owner"),
            pk=kwargs.get("booking_id"),
        )

    def lock_booking(self) -> Booking:
        """Re-read the booking under a row lock; call inside transaction.atomic()."""

        self.booking = Booking.objects.select_for_update().select_related("property__owner").get(pk=self.booking.pk)
        return self.booking

    def require_guest_or_manager(self):
        if not (can_manage_booking(self.request.user, self.booking) or _is_booking_guest(self.request.user, self.booking)):
            raise PermissionDenied("You do not have access to this booking.")

    def require_manager(self):
        if not can_manage_booking(self.request.user, self.booking):
            raise PermissionDenied("Only the property owner or an admin can manage this booking.")


class BookingDetailView(BookingBaseView):
    def get(self, request, booking_id, *args, **kwargs):
        self.require_guest_or_manager()
        return Response(_serialize_booking(request.user, self.booking))


class BookingStatusView(BookingBaseView):
    def get(self, request, booking_id, *args, **kwargs):
        self.require_guest_or_manager()
        booking = self.booking
        return Response(
            {
                "booking_id": booking.id,
                "status": booking.status,
                "status_info": get_status_info(booking.status),
                "available_actions": get_available_actions(booking.status) if can_manage_booking(request.user, booking) else [],
                "deposit_paid": booking.deposit_paid,
                "balance_paid": booking.balance_paid,
            }
        )

    def put(self, request, booking_id, *args, **kwargs):
        self.require_manager()
        serializer = StatusActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        action = data["action"]
        admin_notes = data["admin_notes"] or None
        payload = {}
        refunded = None

        with transaction.atomic():
            booking = self.lock_booking()
            if action == "confirm":
                confirm_booking(booking, admin_notes=admin_notes)
            elif action == "complete":
                complete_booking(booking, admin_notes=admin_notes)
            else:
                refund = calculate_cancellation_refund(booking)
                cancel_booking(booking, reason=data["cancel_reason"], admin_notes=admin_notes)
                payload["cancellation_policy"] = refund.as_dict()
                if data["refund"] and refund.amount > 0:
                    try:
                        create_booking_refund(booking, refund.amount, reason=data["cancel_reason"], user=request.user)
                        refunded = refund.amount
                        payload["refund"] = {"amount": str(refund.amount), "status": "processing"}
                    except (RefundError, stripe.error.StripeError) as exc:
                        logger.exception("Refund on cancellation of booking %s failed", booking.id)
                        payload["refund"] = {"amount": str(refund.amount), "status": "failed", "error": str(exc)}

        if action == "confirm":
            notify_booking_confirmed(booking)
        elif action == "cancel":
            notify_booking_cancelled(booking, refunded)

        sync_booking(booking, action=action)
        booking.refresh_from_db()
        return Response(
            {
                "success": True,
                "message": f"Booking {booking.status}",
                "booking": BookingSerializer(booking).data,
                **payload,
            }
        )

    def patch(self, request, booking_id, *args, **kwargs):
        self.require_manager()
        serializer = PaymentFlagSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        with transaction.atomic():
            booking = self.lock_booking()
            was_pending = booking.status == Booking.PENDING
            update_payment_status(booking, serializer.validated_data["payment_type"], serializer.validated_data["is_paid"])
        if was_pending and booking.status == Booking.CONFIRMED:
            notify_booking_confirmed(booking)
        sync_booking(booking, action="payment")
        return Response(
            {
                "success": True,
                "message": "Payment status updated",
                "booking": BookingSerializer(booking).data,
            }
        )


class BookingPaymentView(BookingBaseView):
    def get(self, request, booking_id, *args, **kwargs):
        self.require_guest_or_manager()
        booking = self.booking
        paid = amount_paid(booking)
        due_dates = calculate_payment_due_dates(booking.check_in)
        return Response(
            {
                "booking_id": booking.id,
                "status": booking.status,
                "currency": settings.BOOKING_CURRENCY,
                "total_price": str(booking.total_price),
                "amount_paid": str(paid),
                "amount_due": str(booking.total_price - paid),
                "refunded_amount": str(booking.refunded_amount),
                "deposit": {
                    "amount": str(booking.deposit_amount),
                    "paid": booking.deposit_paid,
                    "paid_at": booking.deposit_paid_at,
                    "due_date": due_dates.deposit_due_date.isoformat(),
                },
                "balance": {
                    "amount": str(booking.balance_amount),
                    "paid": booking.balance_paid,
                    "paid_at": booking.balance_paid_at,
                    "due_date": due_dates.balance_due_date.isoformat(),
                },
                "payments": PaymentSerializer(booking.payments.all(), many=True).data,
            }
        )

    def post(self, request, booking_id, *args, **kwargs):
        self.require_guest_or_manager()
        serializer = PaymentIntentRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment_type = serializer.validated_data["payment_type"]
        intent = create_booking_payment_intent(self.booking, payment_type)
        return Response(
            {
                "success": True,
                "booking_id": self.booking.id,
                "payment_type": payment_type,
                "payment_intent_id": intent.id,
                "client_secret": intent.client_secret,
                "amount": str(self.booking.amount_for(payment_type)),
                "currency": intent.currency,
            },
            status=status.HTTP_201_CREATED,
        )


class BookingRefundView(BookingBaseView):
    def get(self, request, booking_id, *args, **kwargs):
        self.require_manager()
        booking = self.booking
        return Response(
            {
                "booking_id": booking.id,
                "status": booking.status,
                "amount_paid": str(amount_paid(booking)),
                "refunded_amount": str(booking.refunded_amount),
                "refundable_amount": str(refundable_amount(booking)),
                "stripe_refund_id": booking.stripe_refund_id or None,
                "cancellation_policy": calculate_cancellation_refund(booking).as_dict(),
                "refunds": RefundSerializer(booking.refunds.all(), many=True).data,
            }
        )

    def post(self, request, booking_id, *args, **kwargs):
        self.require_manager()
        serializer = RefundRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        provider_error = None
        with transaction.atomic():
            booking = self.lock_booking()
            try:
                refunds = create_booking_refund(
                    booking,
                    serializer.validated_data.get("amount"),
                    reason=serializer.validated_data["reason"],
                    user=request.user,
                )
            except stripe.error.StripeError as exc:
                # Commit the refunds Stripe already accepted before reporting the failure.
                provider_error = exc
        if provider_error is not None:
            raise provider_error
        booking.refresh_from_db()
        return Response(
            {
                "success": True,
                "message": "Refund processed",
                "refund_amount": str(sum(refund.amount for refund in refunds)),
                "refunded_amount": str(booking.refunded_amount),
                "refunds": RefundSerializer(refunds, many=True).data,
                "booking": BookingSerializer(booking).data,
            }
        )


class MyBookingsView(generics.ListAPIView):
    serializer_class = GuestBookingSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["status"]
    ordering_fields = ["check_in", "created_at"]

    def get_queryset(self):
        user = self.request.user
        return Booking.objects.filter(Q(guest_user=user) | Q(guest_email__iexact=user.email)).order_by("-check_in")


class BookingDashboardView(generics.ListAPIView):
    """Owner (own properties) and admin (all properties) booking list."""

    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated, IsOwnerOrAdmin]
    filterset_fields = ["status", "property", "deposit_paid", "balance_paid"]
    search_fields = ["guest_name", "guest_email", "property_name"]
    ordering_fields = ["check_in", "created_at", "total_price"]

    def get_queryset(self):
        user = self.request.user
        queryset = Booking.objects.select_related("property").order_by("check_in")
        if user.is_admin:
            return queryset
        return queryset.filter(property__owner=user)
