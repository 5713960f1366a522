"""
Chiffrement des secrets partagés (clés API HMAC, secrets de webhooks).

Le secret HMAC doit être relu en clair pour recalculer la signature:
on le stocke donc chiffré (Fernet, clé APIKEYS_ENC_KEY) et non hashé.
Mode dégradé DEV: sans clé configurée, stockage "plain:<secret>".
"""
from cryptography.fernet import Fernet, InvalidToken
from django.conf import settings

PLAIN_PREFIX = "plain:"


class SecretUnavailable(Exception):
    pass


def _fernet():
    key = getattr(settings, "APIKEYS_ENC_KEY", "")
    return Fernet(key.encode("utf-8")) if key else None


def encrypt_secret(raw: str) -> str:
    f = _fernet()
    if f is None:
        return f"{PLAIN_PREFIX}{raw}"
    return f.encrypt(raw.encode("utf-8")).decode("utf-8")


def decrypt_secret(stored: str) -> bytes:
    if stored.startswith(PLAIN_PREFIX):
        return stored[len(PLAIN_PREFIX):].encode("utf-8")
    f = _fernet()
    if f is None:
        raise SecretUnavailable("Server misconfigured: missing APIKEYS_ENC_KEY")
    try:
        return f.decrypt(stored.encode("utf-8"))
    except InvalidToken as e:
        raise SecretUnavailable("Cannot decrypt stored secret") from e
