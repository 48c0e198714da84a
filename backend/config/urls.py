from django.contrib import admin
from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from accounts.api import LoginView, MeView, RegisterView
from bookings.api import (
    BookingAvailabilityView,
    BookingCreateView,
    BookingDashboardView,
    BookingDetailView,
    BookingPaymentView,
    BookingQuoteView,
    BookingRefundView,
    BookingStatusView,
    MyBookingsView,
)
from crm.api import CRMSyncView
from payments.api import BookingPaymentWebhookView, PaymentHistoryView
from properties.api import (
    PendingPropertyListView,
    PropertyApproveView,
    PropertyRejectView,
    PropertyUnpublishView,
    PropertyViewSet,
)

router = DefaultRouter()
router.register(r"properties", PropertyViewSet, basename="property")

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/auth/register/", RegisterView.as_view(), name="auth-register"),
    path("api/auth/login/", LoginView.as_view(), name="auth-login"),
    path("api/auth/refresh/", TokenRefreshView.as_view(), name="auth-refresh"),
    path("api/auth/me/", MeView.as_view(), name="auth-me"),
    path("api/bookings/", BookingDashboardView.as_view(), name="booking-dashboard"),
    path("api/bookings/create/", BookingCreateView.as_view(), name="booking-create"),
    path("api/bookings/quote/", BookingQuoteView.as_view(), name="booking-quote"),
    path("api/bookings/availability/", BookingAvailabilityView.as_view(), name="booking-availability"),
    path("api/bookings/mine/", MyBookingsView.as_view(), name="booking-mine"),
    path("api/bookings/<int:booking_id>/", BookingDetailView.as_view(), name="booking-detail"),
    path("api/bookings/<int:booking_id>/status/", BookingStatusView.as_view(), name="booking-status"),
    path("api/bookings/<int:booking_id>/payment/", BookingPaymentView.as_view(), name="booking-payment"),
    path("api/bookings/<int:booking_id>/refund/", BookingRefundView.as_view(), name="booking-refund"),
    path("api/payments/history/", PaymentHistoryView.as_view(), name="payment-history"),
    path(
        "api/admin/properties/pending/",
        PendingPropertyListView.as_view(),
        name="admin-properties-pending",
    ),
    path(
        "api/admin/properties/<int:property_id>/approve/",
        PropertyApproveView.as_view(),
        name="admin-property-approve",
    ),
    path(
        "api/admin/properties/<int:property_id>/reject/",
        PropertyRejectView.as_view(),
        name="admin-property-reject",
    ),
    path(
        "api/admin/properties/<int:property_id>/unpublish/",
        PropertyUnpublishView.as_view(),
        name="admin-property-unpublish",
    ),
    path("api/crm/sync/", CRMSyncView.as_view(), name="crm-sync"),
    path(
        "api/webhooks/booking-payments/",
        BookingPaymentWebhookView.as_view(),
        name="booking-payments-webhook",
    ),
    path("api/", include(router.urls)),
]
