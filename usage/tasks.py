import logging

from celery import shared_task

logger = logging.getLogger("ledgerline.usage")


@shared_task(ignore_result=True)
def record_usage_task(tenant_id: int, event_type: str, quantity: int = 1, user_id=None,
                      resource_id=None, metadata=None):
    """
    Enregistre un usage publié par un hook. Toute erreur est journalisée puis absorbée.
    """
    from tenants.models import Tenant
    from limits.services.quota import notify_quota_state
    from .services.metering import record_usage

    try:
        tenant = Tenant.objects.get(pk=tenant_id)
        record_usage(tenant, event_type, quantity, user_id=user_id,
                     resource_id=resource_id, metadata=metadata)
        notify_quota_state(tenant, event_type)
    except Exception:
        logger.exception("usage tracking failed tenant=%s type=%s qty=%s", tenant_id, event_type, quantity)
