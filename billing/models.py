from django.db import models


class Invoice(models.Model):
    """
    Facture d'usage générée par le moteur de facturation.
    - invoice_number: INV-<epoch ms>-<tenant id>
    - amount: total des charges d'usage; total_amount: forfait + usage + taxes
    - items: lignes (forfait + une ligne par type d'event)
    """
    STATUS_DRAFT = "draft"
    STATUS_SENT = "sent"
    STATUS_PAID = "paid"
    STATUS_VOID = "void"
    STATUS_CHOICES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_SENT, "Sent"),
        (STATUS_PAID, "Paid"),
        (STATUS_VOID, "Void"),
    ]

    tenant = models.ForeignKey("tenants.Tenant", on_delete=models.PROTECT, related_name="invoices")
    subscription = models.ForeignKey("subscriptions.Subscription", on_delete=models.SET_NULL, null=True,
                                     blank=True, related_name="invoices")
    invoice_number = models.CharField(max_length=64, unique=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_SENT)
    issue_date = models.DateTimeField()
    due_date = models.DateTimeField()
    billing_period_start = models.DateTimeField()
    billing_period_end = models.DateTimeField()
    items = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "invoices"
        ordering = ["-issue_date"]
        indexes = [models.Index(fields=["tenant", "issue_date"], name="invoices_tenant_issue_idx")]

    def __str__(self) -> str:
        return f"{self.invoice_number} ({self.status})"
