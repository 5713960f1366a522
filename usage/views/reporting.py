from django.db.models import Count, Sum
from django.http import HttpResponse
from drf_spectacular.utils import extend_schema
from rest_framework import generics
from rest_framework.response import Response
from rest_framework.views import APIView

from ..models import UsageEvent, UsageSummary
from ..serializers.input import DateRangeQuerySerializer, ExportQuerySerializer
from ..serializers.output import UsageEventPublicSerializer, UsageSummaryPublicSerializer
from ..services.export import export_usage, usage_analytics, usage_analytics_file
from ..services.periods import current_billing_period


def _file_response(export) -> HttpResponse:
    response = HttpResponse(export.content, content_type=export.content_type)
    response["Content-Disposition"] = f'attachment; filename="{export.filename}"'
    response["Cache-Control"] = "no-cache"
    return response


@extend_schema(tags=["Usage"], parameters=[DateRangeQuerySerializer])
class UsageEventsView(generics.GenericAPIView):
    """
    GET /usage/events
    Events d'une période de facturation (mois courant par défaut), paginés,
    + agrégats de la période.
    """
    serializer_class = UsageEventPublicSerializer

    def get(self, request):
        q = DateRangeQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        params = q.validated_data
        start, end = params.get("startDate"), params.get("endDate")
        if start is None:
            start, end = current_billing_period()

        qs = UsageEvent.objects.filter(tenant=request.tenant, billing_period_start__gte=start,
                                       billing_period_end__lte=end)
        if params.get("eventType"):
            qs = qs.filter(event_type=params["eventType"])
        page = self.paginate_queryset(qs.order_by("-created_at", "-id"))
        response = self.get_paginated_response(self.get_serializer(page, many=True).data)

        summaries = UsageSummary.objects.filter(tenant=request.tenant, billing_period_start__gte=start,
                                                billing_period_end__lte=end).order_by("event_type")
        response.data["summaries"] = UsageSummaryPublicSerializer(summaries, many=True).data
        response.data["billingPeriod"] = {"start": start, "end": end}
        return response


@extend_schema(tags=["Usage"], parameters=[DateRangeQuerySerializer])
class UsageAnalyticsView(APIView):
    """
    GET /usage/analytics
    Totaux par type d'event sur la fenêtre (created_at), + rapport mensuel.
    """

    def get(self, request):
        q = DateRangeQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        params = q.validated_data

        report = usage_analytics(request.tenant, params.get("startDate"), params.get("endDate"))
        start, end = report["dateRange"]["start"], report["dateRange"]["end"]
        qs = UsageEvent.objects.filter(tenant=request.tenant, created_at__gte=start, created_at__lte=end)
        if params.get("eventType"):
            qs = qs.filter(event_type=params["eventType"])
        summary = [
            {"eventType": r["event_type"], "totalEvents": r["total_events"], "totalQuantity": r["total_quantity"]}
            for r in qs.values("event_type").annotate(total_events=Count("id"), total_quantity=Sum("quantity"))
                       .order_by("event_type")
        ]
        return Response({**report, "summary": summary})


@extend_schema(tags=["Usage"], parameters=[ExportQuerySerializer])
class UsageExportView(APIView):
    """
    GET /usage/export?format=csv|json&includeDetails=true|false&startDate=&endDate=&eventType=
    """

    def get(self, request):
        q = ExportQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        p = q.validated_data
        export = export_usage(request.tenant, p["format"], p.get("startDate"), p.get("endDate"),
                              event_type=p.get("eventType"), include_details=p["includeDetails"])
        return _file_response(export)


@extend_schema(tags=["Usage"], parameters=[ExportQuerySerializer])
class UsageAnalyticsExportView(APIView):
    """GET /usage/export/analytics?format=csv|json (3 derniers mois par défaut)"""

    def get(self, request):
        q = ExportQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        p = q.validated_data
        return _file_response(usage_analytics_file(request.tenant, p["format"], p.get("startDate"), p.get("endDate")))
