from django.db import transaction
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response

from core.exceptions import BusinessRuleError
from ..models import ApiKey
from ..serializers.apikey import ApiKeyCreateSerializer, ApiKeyOutSerializer, ApiKeyRevealSerializer


def _reveal(key: ApiKey, raw_secret: str, http_status=status.HTTP_200_OK) -> Response:
    return Response(ApiKeyRevealSerializer({"key_id": key.key_id, "key_secret": raw_secret}).data,
                    status=http_status)


@extend_schema(tags=["Admin / API keys"])
class ApiKeyAdminViewSet(mixins.ListModelMixin,
                         mixins.RetrieveModelMixin,
                         viewsets.GenericViewSet):
    """
    Opérateurs: clés HMAC des tenants, liées ou non à un TenantUser
    (les usage events de la clé lui sont attribués).
    Filtres: ?tenant=&user=&active= ; adressage par key_id.
    """
    permission_classes = [IsAdminUser]
    serializer_class = ApiKeyOutSerializer
    queryset = ApiKey.objects.select_related("tenant", "user").order_by("-created_at")
    lookup_field = "key_id"
    filterset_fields = ("tenant", "user", "active")

    def _for_active_tenant(self) -> ApiKey:
        key = self.get_object()
        if not key.tenant.is_active:
            raise BusinessRuleError("Tenant is suspended", code="TENANT_SUSPENDED",
                                    details={"tenantId": key.tenant_id})
        return key

    @extend_schema(request=ApiKeyCreateSerializer, responses={201: ApiKeyRevealSerializer})
    @transaction.atomic
    def create(self, request):
        ser = ApiKeyCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        key, raw = ApiKey.issue(
            data["tenant"], data["user"],
            name=data["name"],
            allowed_ips=data.get("allowed_ips"),
            expires_at=data.get("expires_at"),
        )
        return _reveal(key, raw, status.HTTP_201_CREATED)

    @extend_schema(request=None, responses={200: ApiKeyRevealSerializer})
    @action(detail=True, methods=["post"])
    @transaction.atomic
    def rotate(self, request, key_id=None):
        key = self._for_active_tenant()
        if not key.active:
            raise BusinessRuleError("Cannot rotate a suspended key", code="API_KEY_INACTIVE")
        return _reveal(key, key.rotate_secret())

    @action(detail=True, methods=["post"])
    def suspend(self, request, key_id=None):
        key = self.get_object()
        key.active = False
        key.save(update_fields=["active"])
        return Response(ApiKeyOutSerializer(key).data)

    @action(detail=True, methods=["post"])
    def resume(self, request, key_id=None):
        key = self._for_active_tenant()
        if key.is_expired:
            raise BusinessRuleError("Key has expired", code="API_KEY_EXPIRED")
        key.active = True
        key.save(update_fields=["active"])
        return Response(ApiKeyOutSerializer(key).data)
