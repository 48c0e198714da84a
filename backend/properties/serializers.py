from rest_framework import serializers

from .models import Property


class PropertySerializer(serializers.ModelSerializer):
    owner_email = serializers.EmailField(source="owner.email", read_only=True, default=None)
    is_bookable = serializers.BooleanField(read_only=True)

    class Meta:
        model = Property
        fields = [
            "id",
            "title",
            "slug",
            "location",
            "region",
            "sleeps_min",
            "sleeps_max",
            "bedrooms",
            "bathrooms",
            "price_midweek",
            "price_weekend",
            "cleaning_fee",
            "security_deposit",
            "description",
            "house_rules",
            "check_in_out",
            "hero_image",
            "owner",
            "owner_email",
            "status",
            "is_published",
            "is_bookable",
            "featured",
            "approved_at",
            "rejection_reason",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "slug",
            "owner",
            "owner_email",
            "status",
            "approved_at",
            "rejection_reason",
            "created_at",
            "updated_at",
        ]

    def validate(self, attrs):
        sleeps_min = attrs.get("sleeps_min", getattr(self.instance, "sleeps_min", 1))
        sleeps_max = attrs.get("sleeps_max", getattr(self.instance, "sleeps_max", None))
        if sleeps_max is not None and sleeps_max < sleeps_min:
            raise serializers.ValidationError({"sleeps_max": "Maximum guests must be at least the minimum."})
        return attrs


class PublicPropertySerializer(serializers.ModelSerializer):
    """Listing fields safe to expose to anonymous visitors."""

    class Meta:
        model = Property
        fields = [
            "id",
            "title",
            "slug",
            "location",
            "region",
            "sleeps_min",
            "sleeps_max",
            "bedrooms",
            "bathrooms",
            "price_midweek",
            "price_weekend",
            "cleaning_fee",
            "security_deposit",
            "description",
            "house_rules",
            "check_in_out",
            "hero_image",
            "featured",
        ]


class PropertyRejectSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")
