from rest_framework import serializers

from tenants.models import Tenant, TenantUser
from ..models import ApiKey


class ApiKeyCreateSerializer(serializers.Serializer):
    """
    tenant_id: tenant actif ; user_id: utilisateur du même tenant auquel
    seront attribués les usage events de la clé.
    """
    tenant_id = serializers.IntegerField()
    user_id = serializers.IntegerField(required=False, allow_null=True)
    name = serializers.CharField(required=False, allow_blank=True, default="", max_length=128)
    allowed_ips = serializers.ListField(
        child=serializers.IPAddressField(), required=False, allow_empty=True
    )
    expires_at = serializers.DateTimeField(required=False, allow_null=True)

    def validate(self, attrs):
        tenant = Tenant.objects.filter(pk=attrs["tenant_id"]).first()
        if tenant is None:
            raise serializers.ValidationError({"tenant_id": "Unknown tenant"})
        if not tenant.is_active:
            raise serializers.ValidationError({"tenant_id": "Tenant is suspended"})
        attrs["tenant"] = tenant

        attrs["user"] = None
        if attrs.get("user_id"):
            attrs["user"] = TenantUser.objects.filter(pk=attrs["user_id"], tenant=tenant).first()
            if attrs["user"] is None:
                raise serializers.ValidationError({"user_id": "User does not belong to this tenant"})
        return attrs


class ApiKeyOutSerializer(serializers.ModelSerializer):
    tenant_name = serializers.CharField(source="tenant.name", read_only=True)
    is_expired = serializers.BooleanField(read_only=True)

    class Meta:
        model = ApiKey
        fields = ("id", "tenant", "tenant_name", "user", "key_id", "name", "active", "is_expired",
                  "allowed_ips", "created_at", "last_used_at", "expires_at")
        read_only_fields = fields


class ApiKeyRevealSerializer(serializers.Serializer):
    """Seule occurrence du secret en clair (création / rotation)."""
    key_id = serializers.CharField()
    key_secret = serializers.CharField()
