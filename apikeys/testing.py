"""
Aide aux tests: requêtes signées HMAC pour un tenant.
"""
import hashlib
import hmac
import json
import secrets
import time
from urllib.parse import urlencode

from django.test import Client

from .models import ApiKey


class SignedClientMixin:
    key_secret = "secret_test"

    def make_api_key(self, tenant, key_id=None, user=None) -> ApiKey:
        # key_id unique: le cache anti-replay survit d'un test à l'autre
        ak = ApiKey(tenant=tenant, user=user, key_id=key_id or f"kid_{secrets.token_hex(6)}")
        ak.set_secret(self.key_secret)
        ak.save()
        self.api_key = ak
        self.client = Client()
        self._last_ts = 0
        return ak

    def _headers(self, method, path, body: bytes):
        # ts strictement croissant: l'anti-replay rejette deux requêtes dans la même ms
        ts_ms = max(int(time.time() * 1000), self._last_ts + 1)
        self._last_ts = ts_ms
        body_sha = hashlib.sha256(body).hexdigest()
        to_sign = f"{ts_ms}\n{method}\n{path}\n{body_sha}".encode()
        sign = hmac.new(self.key_secret.encode(), to_sign, hashlib.sha256).hexdigest()
        return {
            "HTTP_X_API_KEY": self.api_key.key_id,
            "HTTP_X_API_TIMESTAMP": str(ts_ms),
            "HTTP_X_API_SIGN": sign,
            "CONTENT_TYPE": "application/json",
        }

    def signed_post(self, path, payload=None):
        body = json.dumps(payload or {}, separators=(",", ":")).encode()
        return self.client.post(path, data=body, content_type="application/json",
                                **self._headers("POST", path, body))

    def signed_get(self, path, params=None):
        url = f"{path}?{urlencode(params)}" if params else path
        return self.client.get(url, **self._headers("GET", path, b""))
