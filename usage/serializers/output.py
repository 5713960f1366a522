from rest_framework import serializers

from usage.models import UsageEvent, UsageSummary


class UsageEventPublicSerializer(serializers.ModelSerializer):
    eventType = serializers.CharField(source="event_type")
    resourceId = serializers.CharField(source="resource_id", allow_null=True)
    userId = serializers.IntegerField(source="user_id", allow_null=True)
    billingPeriodStart = serializers.DateTimeField(source="billing_period_start")
    billingPeriodEnd = serializers.DateTimeField(source="billing_period_end")
    createdAt = serializers.DateTimeField(source="created_at")

    class Meta:
        model = UsageEvent
        fields = ("id", "eventType", "resourceId", "quantity", "metadata", "userId",
                  "billingPeriodStart", "billingPeriodEnd", "createdAt")
        read_only_fields = fields


class UsageSummaryPublicSerializer(serializers.ModelSerializer):
    eventType = serializers.CharField(source="event_type")
    billingPeriodStart = serializers.DateTimeField(source="billing_period_start")
    billingPeriodEnd = serializers.DateTimeField(source="billing_period_end")
    totalQuantity = serializers.IntegerField(source="total_quantity")
    unitPrice = serializers.DecimalField(source="unit_price", max_digits=10, decimal_places=4)
    totalAmount = serializers.DecimalField(source="total_amount", max_digits=12, decimal_places=2)
    billedAt = serializers.DateTimeField(source="billed_at", allow_null=True)

    class Meta:
        model = UsageSummary
        fields = ("id", "eventType", "billingPeriodStart", "billingPeriodEnd", "totalQuantity",
                  "unitPrice", "totalAmount", "status", "billedAt")
        read_only_fields = fields


class UsageEventOutSerializer(serializers.ModelSerializer):
    class Meta:
        model = UsageEvent
        fields = ("id", "tenant", "user", "event_type", "resource_id", "quantity", "metadata",
                  "billing_period_start", "billing_period_end", "created_at")
        read_only_fields = fields
