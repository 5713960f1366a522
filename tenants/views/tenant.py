from django.shortcuts import get_object_or_404
from django.db import transaction
from rest_framework import viewsets, status, mixins
from rest_framework.permissions import IsAdminUser
from rest_framework.decorators import action
from rest_framework.response import Response

from core.exceptions import BusinessRuleError
from usage.hooks import track_after_commit
from usage.models import UsageEventType
from ..models import Tenant, Plan, TenantUser
from ..serializers.tenant import (
    TenantOutSerializer, TenantCreateSerializer, TenantUpdateSerializer, TenantUserSerializer
)
from ..serializers.plan import PlanOutSerializer, PlanCreateUpdateSerializer


class TenantAdminViewSet(viewsets.GenericViewSet,
                         mixins.ListModelMixin,
                         mixins.RetrieveModelMixin):
    """
    Super-admin: CRUD Tenants + actions (suspend/resume/users).
    """
    permission_classes = [IsAdminUser]
    serializer_class = TenantOutSerializer
    queryset = Tenant.objects.all().order_by("-created_at")
    filterset_fields = ("status",)
    search_fields = ("name", "support_email")

    @transaction.atomic
    def create(self, request):
        ser = TenantCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        tenant = ser.save()
        return Response(TenantOutSerializer(tenant).data, status=status.HTTP_201_CREATED)

    @transaction.atomic
    def partial_update(self, request, pk=None):
        tenant = get_object_or_404(Tenant, pk=pk)
        ser = TenantUpdateSerializer(instance=tenant, data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        ser.save()
        return Response(TenantOutSerializer(tenant).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"])
    def suspend(self, request, pk=None):
        tenant = get_object_or_404(Tenant, pk=pk)
        tenant.status = Tenant.STATUS_SUSPENDED
        tenant.save(update_fields=["status", "updated_at"])
        return Response({"detail": "tenant suspended"}, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"])
    def resume(self, request, pk=None):
        tenant = get_object_or_404(Tenant, pk=pk)
        tenant.status = Tenant.STATUS_ACTIVE
        tenant.save(update_fields=["status", "updated_at"])
        return Response({"detail": "tenant resumed"}, status=status.HTTP_200_OK)

    @action(detail=True, methods=["get", "post"])
    def users(self, request, pk=None):
        """
        GET: utilisateurs du tenant. POST: création (comptée en "user_creation").
        """
        tenant = get_object_or_404(Tenant, pk=pk)
        if request.method == "GET":
            return Response(TenantUserSerializer(tenant.users.order_by("id"), many=True).data)

        ser = TenantUserSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        email = ser.validated_data["email"]
        if TenantUser.objects.filter(tenant=tenant, email__iexact=email).exists():
            raise BusinessRuleError(f"User {email} already exists for this tenant", code="DUPLICATE_USER")

        with transaction.atomic():
            user = ser.save(tenant=tenant)
            track_after_commit(
                tenant_id=tenant.id,
                event_type=UsageEventType.USER_CREATION,
                resource_id=str(user.id),
                metadata={"newUserEmail": user.email, "newUserRole": user.role},
            )
        return Response(TenantUserSerializer(user).data, status=status.HTTP_201_CREATED)


class PlanAdminViewSet(viewsets.GenericViewSet,
                       mixins.ListModelMixin,
                       mixins.RetrieveModelMixin):
    """
    Super-admin: gestion des Plans.
    """
    permission_classes = [IsAdminUser]
    serializer_class = PlanOutSerializer
    queryset = Plan.objects.all().order_by("price", "id")
    pagination_class = None

    @transaction.atomic
    def create(self, request):
        ser = PlanCreateUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        p = ser.save()
        return Response(PlanOutSerializer(p).data, status=status.HTTP_201_CREATED)

    @transaction.atomic
    def partial_update(self, request, pk=None):
        p = get_object_or_404(Plan, pk=pk)
        ser = PlanCreateUpdateSerializer(instance=p, data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        ser.save()
        return Response(PlanOutSerializer(p).data, status=status.HTTP_200_OK)
