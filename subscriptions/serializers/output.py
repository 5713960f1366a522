from rest_framework import serializers

from tenants.models import Plan
from ..models import Subscription, PlanChange


class PlanPublicSerializer(serializers.ModelSerializer):
    billingCycle = serializers.CharField(source="billing_cycle")
    maxUsers = serializers.IntegerField(source="max_users")
    storageLimit = serializers.IntegerField(source="storage_limit_mb")
    isActive = serializers.BooleanField(source="active")
    createdAt = serializers.DateTimeField(source="created_at")

    class Meta:
        model = Plan
        fields = ("id", "name", "slug", "description", "price", "billingCycle", "features",
                  "maxUsers", "storageLimit", "isActive", "createdAt")
        read_only_fields = fields


class SubscriptionPublicSerializer(serializers.ModelSerializer):
    tenantId = serializers.IntegerField(source="tenant_id")
    planId = serializers.IntegerField(source="plan_id")
    currentPeriodStart = serializers.DateTimeField(source="current_period_start")
    currentPeriodEnd = serializers.DateTimeField(source="current_period_end")
    createdAt = serializers.DateTimeField(source="created_at")
    updatedAt = serializers.DateTimeField(source="updated_at")
    plan = PlanPublicSerializer()

    class Meta:
        model = Subscription
        fields = ("id", "tenantId", "planId", "status", "currentPeriodStart", "currentPeriodEnd",
                  "createdAt", "updatedAt", "plan")
        read_only_fields = fields


class SubscriptionAdminSerializer(serializers.ModelSerializer):
    class Meta:
        model = Subscription
        fields = ("id", "tenant", "plan", "status", "current_period_start", "current_period_end",
                  "created_at", "updated_at")
        read_only_fields = ("id", "created_at", "updated_at")
        extra_kwargs = {
            "current_period_start": {"required": False},
            "current_period_end": {"required": False},
        }

    def validate(self, attrs):
        start = attrs.get("current_period_start", getattr(self.instance, "current_period_start", None))
        end = attrs.get("current_period_end", getattr(self.instance, "current_period_end", None))
        if start and end and end <= start:
            raise serializers.ValidationError({"current_period_end": "Must be after current_period_start"})
        return attrs


class PlanChangeAdminSerializer(serializers.ModelSerializer):
    class Meta:
        model = PlanChange
        fields = ("id", "tenant", "subscription", "from_plan", "to_plan", "amount", "currency", "status",
                  "payment_intent_id", "failure_reason", "created_at", "updated_at", "applied_at")
        read_only_fields = fields
