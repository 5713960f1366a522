import logging

from drf_spectacular.utils import extend_schema, OpenApiResponse
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from billing.services.gateway import InvalidSignature, configured_gateway
from core.exceptions import BusinessRuleError
from ..services.plan_change import PlanChangeService

logger = logging.getLogger("ledgerline.subscriptions")


@extend_schema(
    tags=["Payments"],
    request=None,
    responses={200: OpenApiResponse(description="{received: true, result}"),
               400: OpenApiResponse(description="INVALID_SIGNATURE")},
)
class StripeWebhookView(APIView):
    """
    POST /payments/stripe/webhook
    Callback Stripe (signature Stripe-Signature vérifiée, pas d'auth tenant).
    Répond 2xx dès que l'event est traité ; Stripe relivre sinon.
    """
    authentication_classes = []
    permission_classes = [AllowAny]

    def post(self, request):
        gateway = configured_gateway()
        payload = request.body
        signature = request.META.get("HTTP_STRIPE_SIGNATURE", "")
        try:
            event = gateway.construct_event(payload, signature)
        except InvalidSignature as e:
            logger.warning("stripe webhook rejected: %s", e)
            raise BusinessRuleError("Invalid webhook signature", code="INVALID_SIGNATURE")

        result = PlanChangeService(gateway).handle_gateway_event(event)
        return Response({"received": True, "result": result}, status=status.HTTP_200_OK)
