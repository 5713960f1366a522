"""
Aide aux tests: plans, quotas et abonnements.
"""
from datetime import timedelta
from decimal import Decimal

from django.utils import timezone

from limits.models import UsageLimit
from tenants.models import Plan, Tenant
from usage.services.periods import current_billing_period
from .models import Subscription


def make_plan(slug="starter", price="29.99", max_users=5, **kwargs) -> Plan:
    return Plan.objects.create(name=kwargs.pop("name", slug.title()), slug=slug,
                               price=Decimal(price), max_users=max_users, **kwargs)


def make_limit(plan, event_type, limit=None, unit_price="0", overage_price=None) -> UsageLimit:
    return UsageLimit.objects.create(
        plan=plan, event_type=event_type, limit_quantity=limit, unit_price=Decimal(unit_price),
        overage_price=Decimal(overage_price) if overage_price is not None else None,
    )


def make_tenant(name="ACME", **kwargs) -> Tenant:
    return Tenant.objects.create(name=name, **kwargs)


def subscribe(tenant, plan, start=None, end=None) -> Subscription:
    if start is None or end is None:
        start, end = current_billing_period()
    return Subscription.objects.create(tenant=tenant, plan=plan, current_period_start=start,
                                       current_period_end=end)


def mid_cycle(days_elapsed=15, days_total=30):
    """Période de days_total jours dont days_elapsed écoulés (bornes, now)."""
    now = timezone.now()
    start = now - timedelta(days=days_elapsed)
    return start, start + timedelta(days=days_total), now
