from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import viewsets, mixins, status
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response

from ..models import Invoice
from ..serializers.billing import InvoiceAdminSerializer


class InvoiceAdminViewSet(viewsets.GenericViewSet,
                          mixins.ListModelMixin,
                          mixins.RetrieveModelMixin):
    """
    Super-admin: factures (lecture) ; seul le statut est modifiable (paid / void).
    """
    permission_classes = [IsAdminUser]
    serializer_class = InvoiceAdminSerializer

    def get_queryset(self):
        qs = Invoice.objects.order_by("-issue_date", "-id")
        tenant_id = self.request.query_params.get("tenant_id")
        st = self.request.query_params.get("status")
        if tenant_id:
            qs = qs.filter(tenant_id=tenant_id)
        if st:
            qs = qs.filter(status=st)
        return qs

    @transaction.atomic
    def partial_update(self, request, pk=None):
        invoice = get_object_or_404(Invoice, pk=pk)
        ser = InvoiceAdminSerializer(instance=invoice, data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        ser.save()
        return Response(InvoiceAdminSerializer(invoice).data, status=status.HTTP_200_OK)
