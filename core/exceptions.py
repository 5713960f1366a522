"""
Taxonomie d'erreurs de l'API + handler DRF.

Toutes les erreurs sont rendues sous la forme:
    {"error": {"code": "...", "message": "...", "details": {...}}}
"""
import logging

from django.db import DatabaseError
from rest_framework import exceptions, status
from rest_framework.views import exception_handler

logger = logging.getLogger("ledgerline.core")


class LedgerlineError(exceptions.APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Unexpected error"
    default_code = "ERROR"

    def __init__(self, detail=None, code=None, details=None):
        super().__init__(detail=detail, code=code)
        self.details = details or {}


class BusinessRuleError(LedgerlineError):
    """Entrée bien formée mais refusée par une règle métier (400)."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request rejected by a business rule"
    default_code = "VALIDATION_ERROR"


class NotFound(LedgerlineError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found"
    default_code = "NOT_FOUND"


class QuotaExceeded(LedgerlineError):
    """
    Quota du plan dépassé. Distinct des erreurs de validation:
    le client peut déclencher un parcours d'upgrade.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Limit exceeded; upgrade required"
    default_code = "USAGE_LIMIT_EXCEEDED"
    upgrade_path = "/api/v1/admin-subscription/plans"

    def __init__(self, detail=None, code=None, details=None):
        details = {**(details or {}), "upgradePath": self.upgrade_path}
        super().__init__(detail=detail, code=code, details=details)


class PaymentError(LedgerlineError):
    """Passerelle injoignable ou refus; message brut destiné aux opérateurs."""
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Payment gateway error"
    default_code = "PAYMENT_ERROR"


class PaymentPending(LedgerlineError):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    default_detail = "Payment gateway did not answer in time; the plan change awaits confirmation"
    default_code = "PAYMENT_PENDING"


class PersistenceError(LedgerlineError):
    default_detail = "Storage unavailable"
    default_code = "PERSISTENCE_ERROR"


def _describe(context) -> dict:
    request = context.get("request")
    view = context.get("view")
    tenant = getattr(request, "tenant", None) if request is not None else None
    return {
        "view": type(view).__name__ if view is not None else None,
        "path": getattr(request, "path", None),
        "tenant_id": getattr(tenant, "id", None),
    }


def api_exception_handler(exc, context):
    if isinstance(exc, DatabaseError):
        logger.exception("Persistence failure: %s", _describe(context))
        exc = PersistenceError()

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, LedgerlineError):
        body = {"code": str(exc.detail.code), "message": str(exc.detail), "details": exc.details}
    elif isinstance(exc, exceptions.ValidationError):
        body = {"code": "VALIDATION_ERROR", "message": "Invalid input", "details": response.data}
    else:
        detail = response.data.get("detail") if isinstance(response.data, dict) else None
        code = getattr(detail, "code", None) or "error"
        body = {"code": str(code).upper(), "message": str(detail or ""), "details": {}}

    if response.status_code >= 500:
        logger.error("API error %s: %s %s", body["code"], body["message"], _describe(context))

    response.data = {"error": body}
    return response
