import json
import logging
import time

import httpx
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.utils import timezone

from core.crypto import SecretUnavailable
from .signer import sign_payload, HDR_SIG, HDR_TS, HDR_EVT
from ..models import WebhookConfig, WebhookDelivery

logger = logging.getLogger("ledgerline.webhooks")


def build_payload(event: str, tenant_id: int, data: dict) -> dict:
    return {
        "id": f"wh_{int(time.time() * 1000)}",
        "event": event,
        "tenant_id": tenant_id,
        "data": data,
        "version": settings.SPECTACULAR_SETTINGS.get("VERSION", "1.0.0"),
        "sent_at": timezone.now().isoformat(),
    }


def send_webhook(config: WebhookConfig, event: str, data: dict, attempt: int = 1) -> WebhookDelivery:
    """
    Envoi synchrone (utilisé par la tâche Celery). Retourne un enregistrement WebhookDelivery.
    """
    payload = build_payload(event, config.tenant_id, data)
    body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False, cls=DjangoJSONEncoder).encode("utf-8")
    # le journal garde le corps tel qu'envoyé (Decimal/datetime déjà sérialisés)
    payload = json.loads(body)

    headers = {"Content-Type": "application/json", HDR_EVT: event, "User-Agent": "Ledgerline-Webhook/1.0"}
    status_code = None
    ok = False
    err = ""
    t0 = time.perf_counter()
    try:
        ts_ms, sig = sign_payload(config.secret_bytes(), event, body)
        headers.update({HDR_TS: ts_ms, HDR_SIG: sig})
        with httpx.Client(timeout=config.timeout_s, verify=True) as client:
            resp = client.post(config.url, headers=headers, content=body)
            status_code = resp.status_code
            ok = 200 <= resp.status_code < 300
            if not ok:
                err = f"HTTP {resp.status_code}: {resp.text[:500]}"
    except (httpx.HTTPError, SecretUnavailable) as e:
        err = str(e) or type(e).__name__
    duration_ms = int((time.perf_counter() - t0) * 1000)

    if not ok:
        logger.warning("webhook delivery failed tenant=%s event=%s attempt=%s: %s",
                       config.tenant_id, event, attempt, err)

    return WebhookDelivery.objects.create(
        tenant_id=config.tenant_id,
        config=config,
        event=event,
        url=config.url,
        attempt=attempt,
        headers=headers,
        payload=payload,
        status_code=status_code,
        ok=ok,
        error=err,
        duration_ms=duration_ms,
    )
