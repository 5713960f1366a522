from rest_framework import serializers
from ..models import Plan


class PlanOutSerializer(serializers.ModelSerializer):
    class Meta:
        model = Plan
        fields = (
            "id", "name", "slug", "description", "active",
            "price", "billing_cycle", "max_users", "storage_limit_mb",
            "features", "created_at",
        )
        read_only_fields = ("id", "created_at")


class PlanCreateUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Plan
        fields = (
            "name", "slug", "description", "active",
            "price", "billing_cycle", "max_users", "storage_limit_mb",
            "features",
        )

    def validate_price(self, value):
        if value < 0:
            raise serializers.ValidationError("price must be >= 0")
        return value
