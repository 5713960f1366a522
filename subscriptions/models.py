from django.db import models
from django.utils import timezone


class SubscriptionQuerySet(models.QuerySet):
    def active(self):
        return self.filter(status=Subscription.STATUS_ACTIVE)

    def active_for(self, tenant):
        return self.active().select_related("plan").filter(tenant=tenant).order_by("-created_at").first()


class Subscription(models.Model):
    """
    Affectation courante d'un plan à un tenant.
    current_period_start / current_period_end: fenêtre de proration.
    """
    STATUS_ACTIVE = "active"
    STATUS_CANCELLED = "cancelled"
    STATUS_EXPIRED = "expired"
    STATUS_CHOICES = [
        (STATUS_ACTIVE, "Active"),
        (STATUS_CANCELLED, "Cancelled"),
        (STATUS_EXPIRED, "Expired"),
    ]

    tenant = models.ForeignKey("tenants.Tenant", on_delete=models.CASCADE, related_name="subscriptions")
    plan = models.ForeignKey("tenants.Plan", on_delete=models.PROTECT, related_name="subscriptions")
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)
    current_period_start = models.DateTimeField()
    current_period_end = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = SubscriptionQuerySet.as_manager()

    class Meta:
        db_table = "subscriptions"
        indexes = [models.Index(fields=["tenant", "status"], name="subscriptions_tenant_st_idx")]

    def __str__(self) -> str:
        return f"Subscription(t={self.tenant_id}, plan={self.plan_id}, {self.status})"


class PlanChange(models.Model):
    """
    Demande de changement de plan (machine à états):
      REQUESTED -> APPLIED                       (montant == 0)
      REQUESTED -> AWAITING_PAYMENT -> APPLIED   (confirmation passerelle)
                                    -> FAILED    (refus / échec de paiement)
    amount: montant proraté en unités mineures (cents).
    """
    STATUS_REQUESTED = "requested"
    STATUS_AWAITING_PAYMENT = "awaiting_payment"
    STATUS_APPLIED = "applied"
    STATUS_FAILED = "failed"
    STATUS_CHOICES = [
        (STATUS_REQUESTED, "Requested"),
        (STATUS_AWAITING_PAYMENT, "Awaiting payment"),
        (STATUS_APPLIED, "Applied"),
        (STATUS_FAILED, "Failed"),
    ]

    tenant = models.ForeignKey("tenants.Tenant", on_delete=models.CASCADE, related_name="plan_changes")
    subscription = models.ForeignKey(Subscription, on_delete=models.CASCADE, related_name="plan_changes")
    from_plan = models.ForeignKey("tenants.Plan", on_delete=models.PROTECT, related_name="+")
    to_plan = models.ForeignKey("tenants.Plan", on_delete=models.PROTECT, related_name="+")
    amount = models.PositiveIntegerField(default=0)
    currency = models.CharField(max_length=8, default="usd")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_REQUESTED, db_index=True)
    payment_intent_id = models.CharField(max_length=128, null=True, blank=True, unique=True)
    failure_reason = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    applied_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "plan_changes"
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"PlanChange#{self.pk}({self.from_plan_id}->{self.to_plan_id}, {self.status})"

    @property
    def is_final(self) -> bool:
        return self.status in (self.STATUS_APPLIED, self.STATUS_FAILED)

    def mark(self, status: str, **fields):
        self.status = status
        if status == self.STATUS_APPLIED:
            self.applied_at = timezone.now()
            fields.setdefault("applied_at", self.applied_at)
        for name, value in fields.items():
            setattr(self, name, value)
        self.save(update_fields=["status", "updated_at", *fields.keys()])
