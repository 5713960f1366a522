import hashlib
import hmac
import time
from dataclasses import dataclass
from typing import Optional, Tuple

from django.core.cache import cache
from rest_framework.authentication import BaseAuthentication
from rest_framework import exceptions

from core.crypto import SecretUnavailable
from ..models import ApiKey

# En-têtes requis par le contrat:
HDR_KEY = "HTTP_X_API_KEY"          # X-API-KEY
HDR_TS = "HTTP_X_API_TIMESTAMP"     # X-API-TIMESTAMP (epoch ms)
HDR_SIGN = "HTTP_X_API_SIGN"        # X-API-SIGN (hex HMAC SHA256)
HDR_IDEMPOTENCY = "HTTP_IDEMPOTENCY_KEY"  # Idempotency-Key (optionnel)

TIMESKEW_MS = 5 * 60 * 1000  # ±5 minutes
ANTI_REPLAY_TTL = 5 * 60     # 5 minutes


def _sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def string_to_sign(ts_ms: int, method: str, path: str, body: bytes) -> bytes:
    return f"{ts_ms}\n{method.upper()}\n{path}\n{_sha256_hex(body)}".encode("utf-8")


@dataclass
class ApiKeyUser:
    tenant_id: int
    api_key_id: str
    user_id: Optional[int] = None
    is_authenticated: bool = True
    is_staff: bool = False


class ApiKeyHmacAuthentication(BaseAuthentication):
    """
    Authentification HMAC basée sur:
      signature = HMAC_SHA256(secret, f"{ts}\n{method}\n{path}\n{body_sha256}")
    Exige:
      - X-API-KEY
      - X-API-TIMESTAMP (epoch ms)
      - X-API-SIGN (hex)
    Sans X-API-KEY, on laisse la main aux autres authentifications (session opérateur).
    Anti-replay: (key_id, ts) en cache ; timestamp dans la fenêtre ±5min.
    """

    def authenticate_header(self, request):
        return "HMAC-SHA256"

    def authenticate(self, request) -> Optional[Tuple[ApiKeyUser, ApiKey]]:
        key_id = request.META.get(HDR_KEY)
        if not key_id:
            return None
        ts_raw = request.META.get(HDR_TS)
        sign_hex = request.META.get(HDR_SIGN)
        if not ts_raw or not sign_hex:
            raise exceptions.AuthenticationFailed("Missing HMAC headers")

        # 1) API key lookup
        try:
            api_key = ApiKey.objects.select_related("tenant").get(key_id=key_id, active=True)
        except ApiKey.DoesNotExist:
            raise exceptions.AuthenticationFailed("Invalid API key")

        if api_key.is_expired:
            raise exceptions.AuthenticationFailed("API key expired")

        # 2) Horodatage acceptable
        try:
            ts_ms = int(ts_raw)
        except ValueError:
            raise exceptions.AuthenticationFailed("Invalid timestamp")

        now_ms = int(time.time() * 1000)
        if abs(now_ms - ts_ms) > TIMESKEW_MS:
            raise exceptions.AuthenticationFailed("Timestamp skew too large")

        # 3) Filtre IP (si configuré)
        client_ip = request.META.get("REMOTE_ADDR")
        if api_key.allowed_ips and client_ip not in api_key.allowed_ips:
            raise exceptions.AuthenticationFailed("IP not allowed")

        # 4) Chaîne signée: path sans query pour stabilité
        path = request.get_full_path().split("?")[0]
        to_sign = string_to_sign(ts_ms, request.method, path, request.body or b"")

        # 5) Vérif HMAC (secret déchiffré, jamais stocké en clair hors DEV)
        try:
            raw_secret = api_key.secret_bytes()
        except SecretUnavailable as e:
            raise exceptions.AuthenticationFailed(str(e))

        calc = hmac.new(raw_secret, to_sign, hashlib.sha256).hexdigest()
        if not hmac.compare_digest(calc, sign_hex):
            raise exceptions.AuthenticationFailed("Invalid signature")

        # 6) Anti-replay (cache) ; clé = key_id:ts
        replay_key = f"ak-replay:{key_id}:{ts_ms}"
        if not cache.add(replay_key, 1, timeout=ANTI_REPLAY_TTL):
            raise exceptions.AuthenticationFailed("Replay detected")

        # 7) Contexte request: tenant + api_key (+ HttpRequest pour le middleware d'usage)
        request.idempotency_key = request.META.get(HDR_IDEMPOTENCY)
        request.tenant = api_key.tenant
        request.api_key = api_key
        request._request.tenant = api_key.tenant
        request._request.tenant_user_id = api_key.user_id
        api_key.touch_last_used()

        user = ApiKeyUser(tenant_id=api_key.tenant_id, api_key_id=api_key.key_id, user_id=api_key.user_id)
        return (user, api_key)
