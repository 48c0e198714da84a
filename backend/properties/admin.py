from django.contrib import admin

from .models import Property


@admin.register(Property)
class PropertyAdmin(admin.ModelAdmin):
    list_display = ("title", "location", "owner", "status", "is_published", "featured", "price_midweek", "price_weekend")
    list_filter = ("status", "is_published", "featured", "region")
    search_fields = ("title", "location", "owner__email")
    prepopulated_fields = {"slug": ("title",)}
    readonly_fields = ("approved_by", "approved_at", "crm_id", "created_at", "updated_at")
