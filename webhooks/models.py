from django.db import models

from core.crypto import encrypt_secret, decrypt_secret

EVENT_CHOICES = [
    ("quota.threshold", "Quota threshold reached"),
    ("quota.exceeded", "Quota exceeded"),
    ("subscription.plan_changed", "Plan changed"),
    ("subscription.payment_failed", "Plan change payment failed"),
    ("invoice.created", "Invoice created"),
    ("test.ping", "Test ping"),
]
EVENT_NAMES = [name for name, _ in EVENT_CHOICES]


class WebhookConfig(models.Model):
    """
    Configuration de webhook par tenant.
    - url: endpoint HTTP(s) du client
    - secret: secret HMAC chiffré (Fernet) ou plain:... en DEV
    - events: liste des événements souscrits (ex: ["quota.exceeded","invoice.created"])
    - timeout_s / max_retries / backoff_s: politique d'envoi (backoff exponentiel)
    """
    tenant = models.OneToOneField("tenants.Tenant", on_delete=models.CASCADE, related_name="webhook_config")
    url = models.URLField()
    secret = models.CharField(max_length=255)
    events = models.JSONField(default=list, blank=True)
    active = models.BooleanField(default=True)
    timeout_s = models.PositiveIntegerField(default=10)
    max_retries = models.PositiveIntegerField(default=5)
    backoff_s = models.PositiveIntegerField(default=5)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "webhook_configs"

    def __str__(self) -> str:
        return f"WebhookConfig(t={self.tenant_id}, active={self.active})"

    def set_secret(self, raw_secret: str) -> None:
        self.secret = encrypt_secret(raw_secret)

    def secret_bytes(self) -> bytes:
        return decrypt_secret(self.secret)

    def wants(self, event: str) -> bool:
        return self.active and (event in (self.events or []) or event == "test.ping")


class WebhookDelivery(models.Model):
    """
    Historique des livraisons (journal immuable).
    - attempt: n° tentative (1..N)
    - status_code: code HTTP reçu (null si erreur réseau)
    - error: texte d'erreur ; duration_ms: latence
    """
    tenant = models.ForeignKey("tenants.Tenant", on_delete=models.CASCADE, related_name="webhook_deliveries")
    config = models.ForeignKey(WebhookConfig, on_delete=models.SET_NULL, null=True, blank=True,
                               related_name="deliveries")
    event = models.CharField(max_length=64)
    url = models.URLField()
    attempt = models.PositiveIntegerField(default=1)
    headers = models.JSONField(default=dict, blank=True)
    payload = models.JSONField(default=dict, blank=True)

    status_code = models.IntegerField(null=True, blank=True)
    ok = models.BooleanField(default=False)
    error = models.TextField(blank=True, default="")
    duration_ms = models.IntegerField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "webhook_deliveries"
        indexes = [
            models.Index(fields=["tenant", "event", "created_at"], name="wh_deliv_tenant_event_idx"),
            models.Index(fields=["created_at"], name="wh_deliv_created_idx"),
        ]

    def __str__(self) -> str:
        return f"WebhookDelivery(t={self.tenant_id}, ev={self.event}, ok={self.ok}, attempt={self.attempt})"
