from django.db.models import Count, Q
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response

from core.exceptions import BusinessRuleError
from .models import WebhookConfig, WebhookDelivery
from .serializers.webhooks import WebhookConfigOutSerializer, WebhookConfigUpsertSerializer, \
    WebhookDeliveryOutSerializer
from .tasks import deliver_webhook_task

PING_EVENT = "test.ping"


def _queued(event: str) -> Response:
    return Response({"detail": "queued", "event": event}, status=status.HTTP_202_ACCEPTED)


def _require_active(config) -> WebhookConfig:
    if config is None or not config.active:
        raise BusinessRuleError("Webhook config is missing or inactive", code="WEBHOOK_INACTIVE")
    return config


@extend_schema(tags=["Admin / Webhooks"])
class WebhookConfigAdminViewSet(mixins.ListModelMixin,
                                mixins.RetrieveModelMixin,
                                mixins.CreateModelMixin,
                                mixins.UpdateModelMixin,
                                viewsets.GenericViewSet):
    """
    Opérateurs: abonnement d'un tenant aux events de facturation
    (quota.*, invoice.created, subscription.*). Secret écrit, jamais relu.
    """
    permission_classes = [IsAdminUser]
    queryset = WebhookConfig.objects.select_related("tenant").order_by("tenant_id")
    filterset_fields = ("tenant", "active")

    def get_serializer_class(self):
        if self.action in ("create", "update", "partial_update"):
            return WebhookConfigUpsertSerializer
        return WebhookConfigOutSerializer

    @extend_schema(request=None)
    @action(detail=True, methods=["post"])
    def ping(self, request, pk=None):
        """Livraison de test, signée comme les autres. Body: {"data": {...}} optionnel."""
        config = _require_active(self.get_object())
        data = request.data.get("data") or {"tenantId": config.tenant_id, "message": "ping"}
        deliver_webhook_task.delay(config.id, PING_EVENT, data)
        return _queued(PING_EVENT)


@extend_schema(tags=["Admin / Webhooks"])
class WebhookDeliveryAdminViewSet(mixins.ListModelMixin,
                                  mixins.RetrieveModelMixin,
                                  viewsets.GenericViewSet):
    """
    Journal des livraisons. Filtres: ?tenant=&config=&event=&ok=true|false
    """
    permission_classes = [IsAdminUser]
    serializer_class = WebhookDeliveryOutSerializer
    queryset = WebhookDelivery.objects.select_related("config").order_by("-created_at")
    filterset_fields = ("tenant", "config", "event", "ok")

    @action(detail=False, methods=["get"])
    def summary(self, request):
        """Tentatives et échecs par event, sur la sélection filtrée."""
        rows = (self.filter_queryset(self.get_queryset())
                .values("event")
                .annotate(attempts=Count("id"), failed=Count("id", filter=Q(ok=False)))
                .order_by("event"))
        return Response(list(rows))

    @extend_schema(request=None)
    @action(detail=True, methods=["post"])
    def redeliver(self, request, pk=None):
        """Relance un event en échec (nouvelle série de tentatives, même data)."""
        delivery = self.get_object()
        if delivery.ok:
            raise BusinessRuleError("Delivery already succeeded", code="WEBHOOK_DELIVERED")
        config = _require_active(delivery.config)
        deliver_webhook_task.delay(config.id, delivery.event, (delivery.payload or {}).get("data", {}))
        return _queued(delivery.event)
