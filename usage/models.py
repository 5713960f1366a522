from django.core.validators import MinValueValidator
from django.db import models


class UsageEventType(models.TextChoices):
    DOCUMENT_UPLOAD = "document_upload", "Document Upload"
    DOCUMENT_DOWNLOAD = "document_download", "Document Download"
    API_CALL = "api_call", "API Call"
    USER_CREATION = "user_creation", "User Creation"
    STORAGE_USAGE = "storage_usage", "Storage Usage"
    COMPLIANCE_CHECK = "compliance_check", "Compliance Check"


class UsageEvent(models.Model):
    """
    Événement de consommation immuable (journal d'audit, jamais supprimé).
    - tenant / user: qui consomme (user optionnel)
    - event_type: ressource mesurée (voir UsageEventType)
    - quantity: unités consommées (>= 1)
    - billing_period_start / end: mois calendaire de traitement
    """
    tenant = models.ForeignKey("tenants.Tenant", on_delete=models.PROTECT, related_name="usage_events")
    user = models.ForeignKey("tenants.TenantUser", on_delete=models.SET_NULL, null=True, blank=True,
                             related_name="usage_events")
    event_type = models.CharField(max_length=32, choices=UsageEventType.choices, db_index=True)
    resource_id = models.CharField(max_length=255, null=True, blank=True)
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    metadata = models.JSONField(default=dict, blank=True)
    billing_period_start = models.DateTimeField()
    billing_period_end = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "usage_events"
        indexes = [
            models.Index(fields=["tenant", "event_type", "billing_period_start"], name="usage_ev_tenant_type_per_idx"),
            models.Index(fields=["tenant", "created_at"], name="usage_ev_tenant_created_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.tenant_id}:{self.event_type}x{self.quantity}"


class UsageSummary(models.Model):
    """
    Agrégat par (tenant, event_type, période). Une seule ligne par clé.
    total_quantity ne fait que croître (incrément atomique côté base).
    """
    STATUS_PENDING = "pending"
    STATUS_CALCULATED = "calculated"
    STATUS_BILLED = "billed"
    STATUS_FAILED = "failed"
    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_CALCULATED, "Calculated"),
        (STATUS_BILLED, "Billed"),
        (STATUS_FAILED, "Failed"),
    ]

    tenant = models.ForeignKey("tenants.Tenant", on_delete=models.PROTECT, related_name="usage_summaries")
    event_type = models.CharField(max_length=32, choices=UsageEventType.choices)
    billing_period_start = models.DateTimeField()
    billing_period_end = models.DateTimeField()
    total_quantity = models.PositiveBigIntegerField(default=0)
    unit_price = models.DecimalField(max_digits=10, decimal_places=4, default=0)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)
    billed_at = models.DateTimeField(null=True, blank=True)
    invoice = models.ForeignKey("billing.Invoice", on_delete=models.SET_NULL, null=True, blank=True,
                                related_name="usage_summaries")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "usage_summaries"
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "event_type", "billing_period_start"],
                name="uniq_usage_summary_period",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.tenant_id}:{self.event_type}@{self.billing_period_start:%Y-%m} = {self.total_quantity}"
