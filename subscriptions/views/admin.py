from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import viewsets, mixins, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response

from usage.services.periods import current_billing_period
from ..models import Subscription, PlanChange
from ..serializers.output import SubscriptionAdminSerializer, PlanChangeAdminSerializer


class SubscriptionAdminViewSet(viewsets.GenericViewSet,
                               mixins.ListModelMixin,
                               mixins.RetrieveModelMixin):
    """
    Super-admin: abonnements des tenants.
    Création: période par défaut = mois courant ; l'abonnement actif précédent est annulé.
    """
    permission_classes = [IsAdminUser]
    serializer_class = SubscriptionAdminSerializer

    def get_queryset(self):
        qs = Subscription.objects.select_related("plan").order_by("-created_at")
        tenant_id = self.request.query_params.get("tenant_id")
        st = self.request.query_params.get("status")
        if tenant_id:
            qs = qs.filter(tenant_id=tenant_id)
        if st:
            qs = qs.filter(status=st)
        return qs

    @transaction.atomic
    def create(self, request):
        ser = SubscriptionAdminSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        period = current_billing_period()
        data = ser.validated_data
        if data.get("status", Subscription.STATUS_ACTIVE) == Subscription.STATUS_ACTIVE:
            Subscription.objects.active().filter(tenant=data["tenant"]).update(status=Subscription.STATUS_CANCELLED)
        sub = ser.save(
            current_period_start=data.get("current_period_start", period.start),
            current_period_end=data.get("current_period_end", period.end),
        )
        return Response(SubscriptionAdminSerializer(sub).data, status=status.HTTP_201_CREATED)

    @transaction.atomic
    def partial_update(self, request, pk=None):
        sub = get_object_or_404(Subscription, pk=pk)
        ser = SubscriptionAdminSerializer(instance=sub, data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        ser.save()
        return Response(SubscriptionAdminSerializer(sub).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["get"], url_path="plan-changes")
    def plan_changes(self, request, pk=None):
        sub = get_object_or_404(Subscription, pk=pk)
        qs = PlanChange.objects.filter(subscription=sub).order_by("-created_at")
        return Response(PlanChangeAdminSerializer(qs, many=True).data)
