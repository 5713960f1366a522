from drf_spectacular.utils import extend_schema, OpenApiResponse
from rest_framework import generics
from rest_framework.response import Response
from rest_framework.views import APIView

from ..models import Invoice
from ..serializers.billing import (
    CalculateUsageInputSerializer, BillingSummaryQuerySerializer, InvoicePublicSerializer,
)
from ..services.aggregator import calculate_usage_billing, billing_summary


@extend_schema(
    tags=["Billing"],
    request=CalculateUsageInputSerializer,
    responses={200: OpenApiResponse(description="Détail de facturation (+ facture si demandée)"),
               404: OpenApiResponse(description="NOT_FOUND (pas d'abonnement actif)")},
)
class CalculateUsageBillingView(APIView):
    """
    POST /billing/calculate-usage
    Body: {billingPeriodStart, billingPeriodEnd, generateInvoice?}
    Sans generateInvoice: simple aperçu.
    """

    def post(self, request):
        ser = CalculateUsageInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        breakdown = calculate_usage_billing(
            request.tenant, data["billingPeriodStart"], data["billingPeriodEnd"],
            generate_invoice=data["generateInvoice"],
        )
        return Response(breakdown.as_dict())


@extend_schema(tags=["Billing"], parameters=[BillingSummaryQuerySerializer])
class BillingSummaryView(APIView):
    """GET /billing/summary (mois courant par défaut)"""

    def get(self, request):
        ser = BillingSummaryQuerySerializer(data=request.query_params)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        return Response(billing_summary(request.tenant, data.get("billingPeriodStart"),
                                        data.get("billingPeriodEnd")))


@extend_schema(tags=["Billing"])
class TenantInvoiceListView(generics.ListAPIView):
    serializer_class = InvoicePublicSerializer

    def get_queryset(self):
        return Invoice.objects.filter(tenant=self.request.tenant).order_by("-issue_date", "-id")
