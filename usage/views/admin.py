from django.db.models import Sum
from rest_framework import viewsets, mixins
from rest_framework.permissions import IsAdminUser

from ..models import UsageEvent
from ..serializers.output import UsageEventOutSerializer


class UsageEventAdminViewSet(viewsets.GenericViewSet, mixins.ListModelMixin):
    """
    Super-admin: lecture des events de consommation (filtrable via query params).
    """
    permission_classes = [IsAdminUser]
    serializer_class = UsageEventOutSerializer

    def get_queryset(self):
        qs = UsageEvent.objects.order_by("-created_at", "-id")
        tenant_id = self.request.query_params.get("tenant_id")
        event_type = self.request.query_params.get("event_type")
        date_from = self.request.query_params.get("from")
        date_to = self.request.query_params.get("to")
        if tenant_id:
            qs = qs.filter(tenant_id=tenant_id)
        if event_type:
            qs = qs.filter(event_type=event_type)
        if date_from:
            qs = qs.filter(created_at__gte=date_from)
        if date_to:
            qs = qs.filter(created_at__lt=date_to)
        return qs

    # Petit résumé agrégé par type d'event
    def list(self, request, *args, **kwargs):
        response = super().list(request, *args, **kwargs)
        agg = (self.get_queryset().order_by().values("event_type")
               .annotate(total_quantity=Sum("quantity")).order_by("event_type"))
        response.data["summary"] = list(agg)
        return response
