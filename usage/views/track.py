import logging

from django.db import DatabaseError
from drf_spectacular.utils import extend_schema, OpenApiExample, OpenApiResponse
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import QuotaExceeded
from limits.services.quota import check_all_limits, enforce_quota, notify_quota_state
from ..serializers.input import TrackUsageInputSerializer, AuthorizeUsageInputSerializer
from ..services.metering import record_usage

logger = logging.getLogger("ledgerline.usage")


@extend_schema(
    tags=["Usage"],
    request=TrackUsageInputSerializer,
    responses={
        201: OpenApiResponse(description="Event enregistré"),
        400: OpenApiResponse(description="VALIDATION_ERROR"),
    },
    examples=[
        OpenApiExample(
            "Exemple requête",
            value={"eventType": "document_upload", "resourceId": "doc_42", "quantity": 3,
                   "metadata": {"size": 1024}},
            request_only=True,
        ),
        OpenApiExample(
            "Exemple réponse",
            value={"eventId": 981, "eventType": "document_upload", "quantity": 3,
                   "billingPeriod": {"start": "2024-05-01T00:00:00Z", "end": "2024-05-31T23:59:59.999000Z"}},
            response_only=True,
        ),
    ],
)
class UsageTrackView(APIView):
    """
    POST /usage/track
    Auth: HMAC (clé tenant)
    Enregistre l'event puis notifie (webhook) le passage des seuils de quota.
    """

    def post(self, request):
        ser = TrackUsageInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        tenant = request.tenant

        event = record_usage(
            tenant, data["eventType"], data["quantity"],
            user_id=getattr(request.auth, "user_id", None),
            resource_id=data.get("resourceId") or None,
            metadata=data.get("metadata"),
        )

        # notification secondaire: ne fait jamais échouer l'enregistrement
        try:
            notify_quota_state(tenant, event.event_type)
        except DatabaseError:
            logger.exception("quota notification failed tenant=%s type=%s", tenant.id, event.event_type)

        return Response({
            "eventId": event.id,
            "eventType": event.event_type,
            "quantity": event.quantity,
            "billingPeriod": {"start": event.billing_period_start, "end": event.billing_period_end},
        }, status=status.HTTP_201_CREATED)


@extend_schema(
    tags=["Usage"],
    responses={200: OpenApiResponse(description="limitChecks par type d'event"),
               400: OpenApiResponse(description="USAGE_LIMIT_EXCEEDED (au moins un type au-delà du quota)")},
)
class UsageLimitsView(APIView):
    """
    GET /usage/limits
    """

    def get(self, request):
        results = check_all_limits(request.tenant)
        checks = [r.as_dict() for r in results]
        over = [c for c in checks if c["isOverLimit"]]
        if over:
            raise QuotaExceeded(
                "Usage limits exceeded for: " + ", ".join(c["eventType"] for c in over),
                details={"limitChecks": checks, "overLimits": over},
            )
        return Response({
            "limitChecks": checks,
            "hasOverLimits": False,
            "hasNearLimits": any(c["isNearLimit"] for c in checks),
        })


@extend_schema(
    tags=["Usage"],
    request=AuthorizeUsageInputSerializer,
    responses={200: OpenApiResponse(description="Action autorisée"),
               400: OpenApiResponse(description="USAGE_LIMIT_EXCEEDED")},
)
class UsageAuthorizeView(APIView):
    """
    POST /usage/authorize  {eventType, quantity?}
    Garde avant action: refuse si l'action ferait dépasser le quota du plan.
    """

    def post(self, request):
        ser = AuthorizeUsageInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        result = enforce_quota(request.tenant, data["eventType"], data["quantity"])
        return Response({"allowed": True, **result.as_dict()})
