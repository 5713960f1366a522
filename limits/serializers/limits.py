from rest_framework import serializers

from limits.models import UsageLimit


class UsageLimitOutSerializer(serializers.ModelSerializer):
    plan_slug = serializers.CharField(source="plan.slug", read_only=True)

    class Meta:
        model = UsageLimit
        fields = ("id", "plan", "plan_slug", "event_type", "limit_quantity", "unit_price",
                  "overage_price", "is_active", "created_at", "updated_at")
        read_only_fields = fields


class UsageLimitUpsertSerializer(serializers.ModelSerializer):
    class Meta:
        model = UsageLimit
        fields = ("plan", "event_type", "limit_quantity", "unit_price", "overage_price", "is_active")

    def validate(self, attrs):
        for name in ("unit_price", "overage_price"):
            value = attrs.get(name)
            if value is not None and value < 0:
                raise serializers.ValidationError({name: "Must be >= 0"})
        return attrs
