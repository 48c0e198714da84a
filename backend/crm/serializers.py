from rest_framework import serializers

from .models import CRMSyncLog


class CRMSyncLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = CRMSyncLog
        fields = ["id", "entity_type", "entity_id", "action", "status", "crm_id", "error_message", "created_at"]


class CRMBulkSyncSerializer(serializers.Serializer):
    entity = serializers.ChoiceField(choices=["users", "properties", "bookings"])
    ids = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False, allow_empty=False)
