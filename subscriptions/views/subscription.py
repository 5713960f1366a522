import math

from django.utils import timezone
from drf_spectacular.utils import extend_schema, OpenApiResponse
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from billing.services.gateway import configured_gateway
from core.exceptions import NotFound
from tenants.models import Plan
from ..models import Subscription
from ..serializers.input import CreatePaymentIntentInputSerializer, VerifyPaymentInputSerializer
from ..serializers.output import PlanPublicSerializer, SubscriptionPublicSerializer
from ..services.plan_change import PlanChangeService

EXPIRING_SOON_DAYS = 30


def _subscription_payload(tenant, sub) -> dict:
    data = SubscriptionPublicSerializer(sub).data
    data["currentUsers"] = tenant.users.count()
    data["storageUsed"] = 0
    return data


def _active_subscription(tenant):
    sub = Subscription.objects.active_for(tenant)
    if sub is None:
        raise NotFound("No active subscription found for this tenant")
    return sub


@extend_schema(tags=["Subscription"], responses={200: SubscriptionPublicSerializer, 404: OpenApiResponse(description="NOT_FOUND")})
class CurrentSubscriptionView(APIView):
    """
    GET /admin-subscription/
    Abonnement actif du tenant + nombre d'utilisateurs.
    """

    def get(self, request):
        sub = _active_subscription(request.tenant)
        return Response(_subscription_payload(request.tenant, sub))


@extend_schema(tags=["Subscription"], responses={200: PlanPublicSerializer(many=True)})
class AvailablePlansView(APIView):
    def get(self, request):
        plans = Plan.objects.filter(active=True).order_by("price", "id")
        return Response(PlanPublicSerializer(plans, many=True).data)


@extend_schema(tags=["Subscription"])
class SubscriptionAnalyticsView(APIView):
    """
    GET /admin-subscription/analytics
    Utilisateurs vs plafond du plan, jours restants sur la période.
    """

    def get(self, request):
        tenant = request.tenant
        sub = _active_subscription(tenant)
        total = tenant.users.count()
        active = tenant.users.filter(is_active=True).count()
        limit = sub.plan.max_users

        remaining_s = (sub.current_period_end - timezone.now()).total_seconds()
        days_remaining = max(0, math.ceil(remaining_s / 86400))

        return Response({
            "users": {
                "total": total,
                "active": active,
                "inactive": total - active,
                "limit": limit,
                "usagePercentage": round(total / limit * 100) if limit else 0,
            },
            "storage": {"used": 0, "limit": sub.plan.storage_limit_mb, "usagePercentage": 0},
            "billing": {
                "startedAt": sub.current_period_start,
                "endsAt": sub.current_period_end,
                "daysRemaining": days_remaining,
                "isExpiringSoon": days_remaining <= EXPIRING_SOON_DAYS,
            },
        })


@extend_schema(
    tags=["Subscription"],
    request=CreatePaymentIntentInputSerializer,
    responses={
        200: OpenApiResponse(description="requiresPayment=false: plan appliqué ; sinon clientSecret"),
        400: OpenApiResponse(description="VALIDATION_ERROR / PLAN_USER_LIMIT / PLAN_UNCHANGED"),
        404: OpenApiResponse(description="NOT_FOUND"),
        502: OpenApiResponse(description="PAYMENT_ERROR"),
        504: OpenApiResponse(description="PAYMENT_PENDING"),
    },
)
class CreatePaymentIntentView(APIView):
    """
    POST /admin-subscription/create-payment-intent  {planId}
    Proration nulle: changement immédiat. Sinon: intent de paiement, plan inchangé
    jusqu'à confirmation.
    """

    def post(self, request):
        ser = CreatePaymentIntentInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        tenant = request.tenant

        outcome = PlanChangeService(configured_gateway()).initiate(tenant, ser.validated_data["planId"])
        if not outcome.requires_payment:
            return Response({
                "requiresPayment": False,
                "planChangeId": outcome.change.id,
                "subscription": _subscription_payload(tenant, outcome.subscription),
            })

        change = outcome.change
        return Response({
            "requiresPayment": True,
            "planChangeId": change.id,
            "clientSecret": outcome.client_secret,
            "paymentIntentId": outcome.payment_intent_id,
            "amount": change.amount,
            "currency": change.currency,
            "currentPlan": PlanPublicSerializer(change.from_plan).data,
            "newPlan": PlanPublicSerializer(change.to_plan).data,
        }, status=status.HTTP_200_OK)


@extend_schema(tags=["Subscription"], request=VerifyPaymentInputSerializer)
class VerifyPaymentView(APIView):
    """
    POST /admin-subscription/verify-payment  {paymentIntentId, planId}
    """

    def post(self, request):
        ser = VerifyPaymentInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        sub = PlanChangeService(configured_gateway()).verify_payment(
            request.tenant, data["paymentIntentId"], data["planId"])
        return Response({
            "detail": "Subscription plan updated successfully",
            "subscription": _subscription_payload(request.tenant, sub),
        })
