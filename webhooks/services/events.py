"""
Point d'entrée unique pour notifier un tenant: filtre la config puis
met la livraison en file après commit (jamais d'envoi pour une transaction annulée).
"""
import json
import logging

from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction

from ..models import WebhookConfig

logger = logging.getLogger("ledgerline.webhooks")


def emit(tenant, event: str, data: dict) -> bool:
    """Retourne True si une livraison a été planifiée."""
    from ..tasks import deliver_webhook_task

    cfg = WebhookConfig.objects.filter(tenant_id=tenant.id, active=True).first()
    if cfg is None or not cfg.wants(event):
        return False

    # payload Celery: JSON strict (Decimal / datetime => str)
    safe_data = json.loads(json.dumps(data, cls=DjangoJSONEncoder))
    config_id = cfg.id

    def _enqueue():
        try:
            deliver_webhook_task.delay(config_id, event, safe_data, attempt=1)
        except Exception:
            logger.exception("webhook enqueue failed tenant=%s event=%s", tenant.id, event)

    transaction.on_commit(_enqueue)
    return True
