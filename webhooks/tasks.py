import logging
import math

from celery import shared_task

from .models import WebhookConfig
from .services.sender import send_webhook

logger = logging.getLogger("ledgerline.webhooks")


@shared_task(bind=True, max_retries=10, default_retry_delay=5)
def deliver_webhook_task(self, config_id: int, event: str, data: dict, attempt: int = 1):
    """
    Tâche Celery avec retry exponentiel (backoff_s * 2^(n-1)).
    """
    try:
        config = WebhookConfig.objects.get(id=config_id, active=True)
    except WebhookConfig.DoesNotExist:
        logger.info("webhook config %s gone or inactive; dropping %s", config_id, event)
        return

    delivery = send_webhook(config, event, data, attempt=attempt)
    if delivery.ok:
        return

    # planifie retry si on n'a pas dépassé max_retries configuré
    if attempt >= (config.max_retries or 0):
        logger.error("webhook %s to tenant=%s abandoned after %s attempts", event, config.tenant_id, attempt)
        return

    backoff = config.backoff_s or 5
    next_delay = int(backoff * math.pow(2, attempt - 1))  # 5,10,20,40...
    raise self.retry(countdown=next_delay, args=(config_id, event, data), kwargs={"attempt": attempt + 1})
