"""
Suivi d'usage secondaire (fire-and-forget): publié après commit de l'action
principale, traité par Celery. Un échec de suivi n'échoue jamais la requête.
"""
import logging
from typing import Optional

from django.db import transaction

logger = logging.getLogger("ledgerline.usage")


def track_after_commit(*, tenant_id: int, event_type: str, quantity: int = 1,
                       user_id: Optional[int] = None, resource_id: Optional[str] = None,
                       metadata: Optional[dict] = None) -> None:
    from .tasks import record_usage_task

    kwargs = {
        "tenant_id": tenant_id,
        "event_type": str(event_type),
        "quantity": quantity,
        "user_id": user_id,
        "resource_id": resource_id,
        "metadata": metadata or {},
    }

    def _publish():
        try:
            record_usage_task.delay(**kwargs)
        except Exception:
            # broker indisponible: l'usage est perdu, pas la requête
            logger.exception("usage hook publish failed tenant=%s type=%s", tenant_id, event_type)

    transaction.on_commit(_publish)
