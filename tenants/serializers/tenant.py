from rest_framework import serializers
from ..models import Tenant, TenantUser


class TenantOutSerializer(serializers.ModelSerializer):
    subscription = serializers.SerializerMethodField()
    user_count = serializers.SerializerMethodField()

    class Meta:
        model = Tenant
        fields = (
            "id", "name", "status", "support_email", "stripe_customer_id",
            "metadata", "subscription", "user_count",
            "created_at", "updated_at", "last_usage_at",
        )
        read_only_fields = fields

    def get_subscription(self, obj: Tenant):
        from subscriptions.models import Subscription
        sub = Subscription.objects.active_for(obj)
        if sub is None:
            return None
        return {
            "id": sub.id,
            "plan": {"id": sub.plan_id, "slug": sub.plan.slug, "price": str(sub.plan.price)},
            "status": sub.status,
            "current_period_start": sub.current_period_start,
            "current_period_end": sub.current_period_end,
        }

    def get_user_count(self, obj: Tenant) -> int:
        return obj.users.count()


class TenantCreateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Tenant
        fields = ("name", "support_email", "metadata")


class TenantUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Tenant
        fields = ("support_email", "metadata", "status")


class TenantUserSerializer(serializers.ModelSerializer):
    class Meta:
        model = TenantUser
        fields = ("id", "tenant", "email", "name", "role", "is_active", "created_at")
        read_only_fields = ("id", "tenant", "created_at")
