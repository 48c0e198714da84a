from django.conf import settings
from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import receiver

from accounts.models import User
from properties.models import Property

from .sync import sync_property, sync_user_contact


def _crm_enabled() -> bool:
    return bool(getattr(settings, "CRM_ENABLED", False))


@receiver(post_save, sender=User)
def push_user_to_crm(sender, instance, raw=False, **kwargs):
    if raw or not _crm_enabled():
        return
    transaction.on_commit(lambda: sync_user_contact(instance))


@receiver(post_save, sender=Property)
def push_property_to_crm(sender, instance, raw=False, **kwargs):
    if raw or not _crm_enabled():
        return
    transaction.on_commit(lambda: sync_property(instance))
