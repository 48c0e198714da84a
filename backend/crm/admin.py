from django.contrib import admin

from .models import CRMSyncLog


@admin.register(CRMSyncLog)
class CRMSyncLogAdmin(admin.ModelAdmin):
    list_display = ("entity_type", "entity_id", "action", "status", "crm_id", "created_at")
    list_filter = ("entity_type", "status", "action")
    search_fields = ("entity_id", "crm_id", "error_message")
    readonly_fields = ("request_data", "created_at")
