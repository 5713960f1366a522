from django.conf import settings

from .hooks import track_after_commit
from .models import UsageEventType


class ApiCallUsageMiddleware:
    """
    Compte un event "api_call" par requête tenant réussie (2xx).
    Le tenant est posé sur la HttpRequest par l'authentification HMAC.
    Chemins exclus: USAGE_TRACKING_SKIP_PREFIXES (health, docs, track, webhooks).
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        response = self.get_response(request)
        if not getattr(settings, "USAGE_TRACK_API_CALLS", False):
            return response

        tenant = getattr(request, "tenant", None)
        if tenant is None or not 200 <= response.status_code < 300:
            return response
        if any(request.path.startswith(p) for p in getattr(settings, "USAGE_TRACKING_SKIP_PREFIXES", ())):
            return response

        track_after_commit(
            tenant_id=tenant.id,
            event_type=UsageEventType.API_CALL,
            user_id=getattr(request, "tenant_user_id", None),
            resource_id=request.path,
            metadata={"method": request.method, "statusCode": response.status_code},
        )
        return response
