from __future__ import annotations

import logging
from typing import Optional

from django.utils import timezone

from .clients import MockCRMClient, get_crm_client
from .models import CRMSyncLog

logger = logging.getLogger(__name__)


def _record(entity_type: str, entity_id, action: str, *, crm_id: str = "", payload=None, error: str = "") -> CRMSyncLog:
    return CRMSyncLog.objects.create(
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        status=CRMSyncLog.FAILED if error else CRMSyncLog.SUCCESS,
        crm_id=crm_id,
        request_data=payload,
        error_message=error,
    )


def _push(entity_type: str, instance, push, payload: dict, existing_id: str, action: str) -> Optional[str]:
    """Run one push, recording the outcome. Never raises."""

    try:
        crm_id = push(payload, existing_id)
    except Exception as exc:
        logger.exception("CRM sync failed for %s %s", entity_type, instance.pk)
        _record(entity_type, instance.pk, action, payload=payload, error=str(exc) or exc.__class__.__name__)
        return None
    _record(entity_type, instance.pk, action, crm_id=crm_id, payload=payload)
    logger.info("Synced %s %s to CRM as %s", entity_type, instance.pk, crm_id)
    return crm_id


def user_payload(user) -> dict:
    return {
        "id": user.pk,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "phone": user.phone,
        "company_name": user.company_name,
        "role": user.role,
    }


def property_payload(property_obj) -> dict:
    return {
        "external_id": property_obj.pk,
        "title": property_obj.title,
        "location": property_obj.location,
        "region": property_obj.region,
        "sleeps": property_obj.sleeps_max,
        "bedrooms": property_obj.bedrooms,
        "price_midweek": str(property_obj.price_midweek),
        "price_weekend": str(property_obj.price_weekend),
        "status": property_obj.status,
        "is_published": property_obj.is_published,
        "owner_email": property_obj.owner.email if property_obj.owner_id else None,
    }


def booking_payload(booking) -> dict:
    return {
        "external_id": booking.pk,
        "property_id": booking.property.crm_id if booking.property_id and booking.property.crm_id else None,
        "property_name": booking.property_name,
        "guest_name": booking.guest_name,
        "guest_email": booking.guest_email,
        "guest_phone": booking.guest_phone,
        "check_in": booking.check_in.isoformat(),
        "check_out": booking.check_out.isoformat(),
        "guests": booking.number_of_guests,
        "total_price": str(booking.total_price),
        "deposit_paid": booking.deposit_paid,
        "balance_paid": booking.balance_paid,
        "status": booking.status,
    }


def sync_user_contact(user, client=None) -> Optional[str]:
    client = client or get_crm_client()
    if isinstance(client, MockCRMClient):
        return None
    action = "update" if user.crm_contact_id else "create"
    crm_id = _push(CRMSyncLog.USER, user, client.push_contact, user_payload(user), user.crm_contact_id, action)
    if crm_id:
        # queryset update keeps post_save signals from firing again
        now = timezone.now()
        type(user).objects.filter(pk=user.pk).update(crm_contact_id=crm_id, crm_synced_at=now)
        user.crm_contact_id = crm_id
        user.crm_synced_at = now
    return crm_id


def sync_property(property_obj, client=None) -> Optional[str]:
    client = client or get_crm_client()
    if isinstance(client, MockCRMClient):
        return None
    action = "update" if property_obj.crm_id else "create"
    crm_id = _push(CRMSyncLog.PROPERTY, property_obj, client.push_property, property_payload(property_obj), property_obj.crm_id, action)
    if crm_id and crm_id != property_obj.crm_id:
        type(property_obj).objects.filter(pk=property_obj.pk).update(crm_id=crm_id)
        property_obj.crm_id = crm_id
    return crm_id


def sync_booking(booking, action: str = "update", client=None) -> Optional[str]:
    client = client or get_crm_client()
    if isinstance(client, MockCRMClient):
        return None
    crm_id = _push(CRMSyncLog.BOOKING, booking, client.push_booking, booking_payload(booking), booking.crm_id, action)
    if crm_id and crm_id != booking.crm_id:
        type(booking).objects.filter(pk=booking.pk).update(crm_id=crm_id)
        booking.crm_id = crm_id
    return crm_id
