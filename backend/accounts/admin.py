from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("email", "first_name", "last_name", "role", "is_staff", "crm_synced_at")
    list_filter = ("role", "is_staff", "is_superuser")
    search_fields = ("email", "first_name", "last_name", "company_name")
    ordering = ("email",)
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Escape Houses", {"fields": ("display_name", "role", "phone", "company_name")}),
        ("CRM", {"fields": ("crm_contact_id", "crm_synced_at")}),
    )
