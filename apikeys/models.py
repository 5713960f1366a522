import secrets

from django.db import models
from django.utils import timezone

from core.crypto import encrypt_secret, decrypt_secret


class ApiKey(models.Model):
    """
    Clé API portée par un tenant.
    - key_id (public) communiqué au client
    - key_secret_enc: secret HMAC chiffré (Fernet) ou "plain:..." en DEV; jamais réaffiché
    - user: utilisateur du tenant au nom duquel la clé agit (optionnel, attribué aux usage events)
    - allowed_ips: liste optionnelle d'IPs autorisées
    - expires_at: optionnel ; si dépassé => inactif
    """
    tenant = models.ForeignKey("tenants.Tenant", on_delete=models.CASCADE, related_name="api_keys")
    user = models.ForeignKey("tenants.TenantUser", on_delete=models.SET_NULL, null=True, blank=True,
                             related_name="api_keys")
    key_id = models.CharField(max_length=64, unique=True, db_index=True)
    key_secret_enc = models.CharField(max_length=255)
    active = models.BooleanField(default=True)
    allowed_ips = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    last_used_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    name = models.CharField(max_length=128, blank=True, default="")

    class Meta:
        db_table = "api_keys"
        indexes = [models.Index(fields=["tenant", "active"], name="api_keys_tenant_active_idx")]

    def __str__(self) -> str:
        return f"{self.tenant_id}:{self.key_id}"

    @property
    def is_expired(self) -> bool:
        return bool(self.expires_at and self.expires_at <= timezone.now())

    @classmethod
    def issue(cls, tenant, user=None, **fields) -> tuple:
        """Crée la clé et retourne (clé, secret en clair) ; le secret n'est stocké que chiffré."""
        key = cls(tenant=tenant, user=user, key_id=secrets.token_hex(16), **fields)
        raw = key.rotate_secret(save=False)
        key.save()
        return key, raw

    def rotate_secret(self, save: bool = True) -> str:
        raw = secrets.token_urlsafe(32)
        self.set_secret(raw)
        if save:
            self.save(update_fields=["key_secret_enc"])
        return raw

    def set_secret(self, raw_secret: str) -> None:
        self.key_secret_enc = encrypt_secret(raw_secret)

    def secret_bytes(self) -> bytes:
        return decrypt_secret(self.key_secret_enc)

    def touch_last_used(self):
        self.last_used_at = timezone.now()
        ApiKey.objects.filter(pk=self.pk).update(last_used_at=self.last_used_at)
