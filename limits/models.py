from django.db import models

from usage.models import UsageEventType


class UsageLimit(models.Model):
    """
    Quota et tarification d'un plan pour un type d'event.
    - limit_quantity: quota inclus par période (None => illimité, tout est facturé à unit_price)
    - unit_price: prix unitaire dans le quota
    - overage_price: prix unitaire au-delà du quota (None => dépassement non facturé)
    """
    plan = models.ForeignKey("tenants.Plan", on_delete=models.CASCADE, related_name="usage_limits")
    event_type = models.CharField(max_length=32, choices=UsageEventType.choices)
    limit_quantity = models.PositiveIntegerField(null=True, blank=True)
    unit_price = models.DecimalField(max_digits=10, decimal_places=4, default=0)
    overage_price = models.DecimalField(max_digits=10, decimal_places=4, null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "usage_limits"
        ordering = ["plan_id", "event_type"]
        constraints = [
            models.UniqueConstraint(fields=["plan", "event_type"], name="uniq_usage_limit_plan_event"),
        ]

    def __str__(self) -> str:
        cap = "unlimited" if self.limit_quantity is None else self.limit_quantity
        return f"UsageLimit(plan={self.plan_id}, {self.event_type}={cap})"
