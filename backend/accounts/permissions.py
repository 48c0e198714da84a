from rest_framework.permissions import BasePermission


class IsAdmin(BasePermission):
    """Site administrators only. Superusers automatically pass."""

    message = "Admin access required."

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_admin)


class IsOwnerOrAdmin(BasePermission):
    """
    Allow property owners and administrators.

    Object-level checks ensure an owner only touches properties (or bookings on
    properties) they own.
    """

    message = "Owner or admin access required."

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return user.is_admin or user.is_owner

    def has_object_permission(self, request, view, obj):
        user = request.user
        if user.is_admin:
            return True
        property_obj = getattr(obj, "property", obj)
        return property_obj is not None and property_obj.owner_id == user.id


def can_manage_property(user, property_obj) -> bool:
    if not user or not user.is_authenticated:
        return False
    if user.is_admin:
        return True
    return user.is_owner and property_obj.owner_id == user.id


def can_manage_booking(user, booking) -> bool:
    if booking.property_id is None:
        return bool(user and user.is_authenticated and user.is_admin)
    return can_manage_property(user, booking.property)
