import logging

import stripe
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class BookingError(ValueError):
    """Domain error raised by booking services; carries an API error code."""

    code = "BOOKING_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, *, code: str | None = None, status_code: int | None = None, extra=None):
        super().__init__(message)
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.extra = extra or {}

    def as_payload(self) -> dict:
        payload = {"error": str(self), "code": self.code}
        payload.update(self.extra)
        return payload


class InvalidTransition(BookingError):
    code = "STATUS_UPDATE_FAILED"


class PaymentError(BookingError):
    code = "PAYMENT_UPDATE_FAILED"


class RefundError(BookingError):
    code = "REFUND_FAILED"


class PricingError(BookingError):
    code = "PRICING_FAILED"


def error_response(message: str, code: str, status_code: int = status.HTTP_400_BAD_REQUEST, **extra) -> Response:
    payload = {"error": message, "code": code}
    payload.update(extra)
    return Response(payload, status=status_code)


_CODES_BY_EXCEPTION = (
    (exceptions.NotAuthenticated, "UNAUTHENTICATED"),
    (exceptions.AuthenticationFailed, "UNAUTHENTICATED"),
    (exceptions.PermissionDenied, "FORBIDDEN"),
    (exceptions.NotFound, "NOT_FOUND"),
    (exceptions.MethodNotAllowed, "METHOD_NOT_ALLOWED"),
    (exceptions.ParseError, "INVALID_JSON"),
    (exceptions.Throttled, "RATE_LIMITED"),
)


def _first_message(detail) -> str:
    if isinstance(detail, list) and detail:
        return _first_message(detail[0])
    if isinstance(detail, dict) and detail:
        key, value = next(iter(detail.items()))
        message = _first_message(value)
        if key == "non_field_errors":
            return message
        return f"{key}: {message}"
    return str(detail)


def api_exception_handler(exc, context):
    """Render every API error as ``{"error": ..., "code": ...}``."""

    if isinstance(exc, BookingError):
        return Response(exc.as_payload(), status=exc.status_code)

    if isinstance(exc, stripe.error.StripeError):
        logger.exception("Stripe request failed: %s", exc)
        message = getattr(exc, "user_message", None) or "Payment provider error"
        return Response({"error": message, "code": "PAYMENT_PROVIDER_ERROR"}, status=status.HTTP_502_BAD_GATEWAY)

    response = exception_handler(exc, context)
    if response is None:
        view = context.get("view")
        logger.exception("Unhandled error in %s", view.__class__.__name__ if view else "API view", exc_info=exc)
        return Response(
            {"error": "Internal server error", "code": "INTERNAL_ERROR"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, exceptions.ValidationError):
        response.data = {
            "error": _first_message(exc.detail),
            "code": "VALIDATION_ERROR",
            "fields": exc.detail,
        }
        return response

    code = "API_ERROR"
    for exc_class, exc_code in _CODES_BY_EXCEPTION:
        if isinstance(exc, exc_class):
            code = exc_code
            break
    detail = getattr(exc, "detail", str(exc))
    response.data = {"error": _first_message(detail), "code": code}
    return response
