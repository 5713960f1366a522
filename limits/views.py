from django.shortcuts import get_object_or_404
from django.db import transaction
from rest_framework import viewsets, status, mixins
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response

from .models import UsageLimit
from .serializers.limits import UsageLimitOutSerializer, UsageLimitUpsertSerializer


class UsageLimitAdminViewSet(viewsets.GenericViewSet,
                             mixins.ListModelMixin,
                             mixins.RetrieveModelMixin):
    """
    Super-admin: quotas et prix unitaires par plan et type d'event.
    Filtres: ?plan_id=&event_type=
    """
    permission_classes = [IsAdminUser]
    serializer_class = UsageLimitOutSerializer
    pagination_class = None

    def get_queryset(self):
        qs = UsageLimit.objects.select_related("plan").order_by("plan_id", "event_type")
        plan_id = self.request.query_params.get("plan_id")
        event_type = self.request.query_params.get("event_type")
        if plan_id:
            qs = qs.filter(plan_id=plan_id)
        if event_type:
            qs = qs.filter(event_type=event_type)
        return qs

    @transaction.atomic
    def create(self, request):
        ser = UsageLimitUpsertSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        obj = ser.save()
        return Response(UsageLimitOutSerializer(obj).data, status=status.HTTP_201_CREATED)

    @transaction.atomic
    def partial_update(self, request, pk=None):
        obj = get_object_or_404(UsageLimit, pk=pk)
        ser = UsageLimitUpsertSerializer(instance=obj, data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        obj = ser.save()
        return Response(UsageLimitOutSerializer(obj).data, status=status.HTTP_200_OK)
