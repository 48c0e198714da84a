from django.db import models


class CRMSyncLog(models.Model):
    """One attempt to push a local record to the CRM."""

    USER = "user"
    PROPERTY = "property"
    BOOKING = "booking"
    ENTITY_TYPES = [
        (USER, "User"),
        (PROPERTY, "Property"),
        (BOOKING, "Booking"),
    ]

    SUCCESS = "success"
    FAILED = "failed"
    STATUSES = [
        (SUCCESS, "Success"),
        (FAILED, "Failed"),
    ]

    entity_type = models.CharField(max_length=20, choices=ENTITY_TYPES)
    entity_id = models.CharField(max_length=64)
    action = models.CharField(max_length=30)
    status = models.CharField(max_length=10, choices=STATUSES)
    crm_id = models.CharField(max_length=120, blank=True)
    request_data = models.JSONField(null=True, blank=True)
    error_message = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [models.Index(fields=["entity_type", "entity_id"], name="crm_sync_entity_idx")]

    def __str__(self):
        return f"{self.entity_type}:{self.entity_id} {self.action} ({self.status})"
