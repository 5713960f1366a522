"""
Agrégation de facturation: forfait du plan + consommation de la période.

Pour chaque UsageLimit actif du plan:
  quota non nul  -> inclus = min(total, quota), dépassement = max(0, total - quota)
  quota illimité -> tout est facturé à unit_price
Montants en Decimal, arrondis à 0.01 (half-up).
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from django.conf import settings
from django.db import DatabaseError, transaction
from django.db.models import Sum
from django.utils import timezone

from core.exceptions import NotFound
from limits.models import UsageLimit
from subscriptions.models import Subscription
from usage.models import UsageEvent, UsageEventType, UsageSummary
from usage.services.periods import current_billing_period
from ..models import Invoice

logger = logging.getLogger("ledgerline.billing")

CENT = Decimal("0.01")
ZERO = Decimal("0")


def round_money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class UsageCharge:
    event_type: str
    total_usage: int
    limit_quantity: Optional[int]
    unit_price: Decimal
    overage_price: Decimal
    included_usage: int
    overage_usage: int
    base_charge: Decimal
    overage_charge: Decimal
    total_charge: Decimal

    @property
    def label(self) -> str:
        return UsageEventType(self.event_type).label

    def as_dict(self) -> dict:
        return {
            "eventType": self.event_type,
            "totalUsage": self.total_usage,
            "limitQuantity": self.limit_quantity,
            "unitPrice": str(self.unit_price),
            "overagePrice": str(self.overage_price),
            "includedUsage": self.included_usage,
            "overageUsage": self.overage_usage,
            "baseCharge": str(self.base_charge),
            "overageCharge": str(self.overage_charge),
            "totalCharge": str(self.total_charge),
        }


@dataclass
class BillingBreakdown:
    subscription_id: int
    plan_name: str
    period_start: datetime
    period_end: datetime
    subscription_fee: Decimal
    usage_charges: List[UsageCharge]
    total_usage_charges: Decimal
    total_amount: Decimal
    calculated_at: datetime = field(default_factory=timezone.now)
    invoice: Optional[Invoice] = None

    def as_dict(self) -> dict:
        data = {
            "subscriptionId": self.subscription_id,
            "planName": self.plan_name,
            "billingPeriod": {"start": self.period_start, "end": self.period_end},
            "subscriptionFee": str(self.subscription_fee),
            "usageCharges": [c.as_dict() for c in self.usage_charges],
            "totalUsageCharges": str(self.total_usage_charges),
            "totalAmount": str(self.total_amount),
            "calculatedAt": self.calculated_at,
            "invoice": None,
        }
        if self.invoice is not None:
            data["invoice"] = {
                "id": self.invoice.id,
                "invoiceNumber": self.invoice.invoice_number,
                "amount": str(self.invoice.total_amount),
                "status": self.invoice.status,
                "issueDate": self.invoice.issue_date,
                "dueDate": self.invoice.due_date,
            }
        return data


def compute_charge(event_type: str, total_usage: int, limit_quantity: Optional[int],
                   unit_price, overage_price=None) -> UsageCharge:
    unit = Decimal(str(unit_price or 0))
    over = Decimal(str(overage_price or 0))
    if limit_quantity is None:
        included, overage = total_usage, 0
    else:
        included = min(total_usage, limit_quantity)
        overage = max(0, total_usage - limit_quantity)
    base_raw = included * unit
    overage_raw = overage * over
    return UsageCharge(
        event_type=event_type,
        total_usage=total_usage,
        limit_quantity=limit_quantity,
        unit_price=unit,
        overage_price=over,
        included_usage=included,
        overage_usage=overage,
        base_charge=round_money(base_raw),
        overage_charge=round_money(overage_raw),
        total_charge=round_money(base_raw + overage_raw),
    )


def _period_usage(tenant, event_type: str, period_start, period_end) -> int:
    return (UsageEvent.objects
            .filter(tenant=tenant, event_type=event_type,
                    billing_period_start__gte=period_start, billing_period_end__lte=period_end)
            .aggregate(total=Sum("quantity"))["total"] or 0)


def _invoice_items(breakdown: BillingBreakdown) -> list:
    items = [{
        "description": f"{breakdown.plan_name} Subscription",
        "quantity": 1,
        "unitPrice": str(breakdown.subscription_fee),
        "amount": str(breakdown.subscription_fee),
    }]
    for c in breakdown.usage_charges:
        items.append({
            "description": f"{c.label} Usage ({c.total_usage} units)",
            "quantity": c.total_usage,
            "unitPrice": str(c.unit_price),
            "amount": str(c.total_charge),
            "metadata": {
                "eventType": c.event_type,
                "limitQuantity": c.limit_quantity,
                "overageUsage": c.overage_usage,
                "overageCharge": str(c.overage_charge),
            },
        })
    return items


def _create_invoice(tenant, breakdown: BillingBreakdown, subscription) -> Invoice:
    issue = timezone.now()
    return Invoice.objects.create(
        tenant=tenant,
        subscription=subscription,
        invoice_number=f"INV-{int(time.time() * 1000)}-{tenant.id}",
        amount=breakdown.total_usage_charges,
        tax_amount=ZERO,
        total_amount=breakdown.total_amount,
        status=Invoice.STATUS_SENT,
        issue_date=issue,
        due_date=issue + timedelta(days=getattr(settings, "INVOICE_DUE_DAYS", 30)),
        billing_period_start=breakdown.period_start,
        billing_period_end=breakdown.period_end,
        items=_invoice_items(breakdown),
    )


def _mark_summaries(tenant, breakdown: BillingBreakdown) -> None:
    """
    Best-effort: un échec ici n'annule ni le calcul ni la facture.
    """
    invoice = breakdown.invoice
    for c in breakdown.usage_charges:
        fields = {"total_amount": c.total_charge, "updated_at": timezone.now()}
        if invoice is not None:
            fields.update(status=UsageSummary.STATUS_BILLED, invoice=invoice, billed_at=invoice.issue_date)
        else:
            fields["status"] = UsageSummary.STATUS_CALCULATED
        try:
            with transaction.atomic():
                qs = UsageSummary.objects.filter(tenant=tenant, event_type=c.event_type,
                                                 billing_period_start__gte=breakdown.period_start,
                                                 billing_period_end__lte=breakdown.period_end)
                if invoice is None:
                    # un agrégat facturé ne repasse jamais à "calculated"
                    qs = qs.exclude(status=UsageSummary.STATUS_BILLED)
                qs.update(**fields)
        except DatabaseError:
            logger.exception("summary update failed tenant=%s type=%s period=%s..%s",
                             tenant.id, c.event_type, breakdown.period_start, breakdown.period_end)


def calculate_usage_billing(tenant, period_start: datetime, period_end: datetime,
                            generate_invoice: bool = False) -> BillingBreakdown:
    sub = Subscription.objects.active_for(tenant)
    if sub is None:
        raise NotFound("No active subscription found")

    limits = UsageLimit.objects.filter(plan_id=sub.plan_id, is_active=True).order_by("event_type")
    charges = [
        compute_charge(ul.event_type, _period_usage(tenant, ul.event_type, period_start, period_end),
                       ul.limit_quantity, ul.unit_price, ul.overage_price)
        for ul in limits
    ]
    fee = round_money(sub.plan.price)
    usage_total = round_money(sum((c.total_charge for c in charges), ZERO))
    breakdown = BillingBreakdown(
        subscription_id=sub.id,
        plan_name=sub.plan.name,
        period_start=period_start,
        period_end=period_end,
        subscription_fee=fee,
        usage_charges=charges,
        total_usage_charges=usage_total,
        total_amount=round_money(fee + usage_total),
    )

    if generate_invoice and breakdown.total_amount > 0:
        with transaction.atomic():
            breakdown.invoice = _create_invoice(tenant, breakdown, sub)
        logger.info("invoice %s generated tenant=%s total=%s",
                    breakdown.invoice.invoice_number, tenant.id, breakdown.total_amount)

        from webhooks.services.events import emit
        emit(tenant, "invoice.created", {
            "invoiceId": breakdown.invoice.id,
            "invoiceNumber": breakdown.invoice.invoice_number,
            "totalAmount": str(breakdown.total_amount),
            "dueDate": breakdown.invoice.due_date.isoformat(),
        })

    _mark_summaries(tenant, breakdown)
    return breakdown


def billing_summary(tenant, period_start: Optional[datetime] = None,
                    period_end: Optional[datetime] = None) -> dict:
    """
    Forfait + agrégats de la période (mois courant par défaut).
    """
    if period_start is None or period_end is None:
        period_start, period_end = current_billing_period()

    summaries = list(UsageSummary.objects
                     .filter(tenant=tenant, billing_period_start__gte=period_start,
                             billing_period_end__lte=period_end)
                     .order_by("event_type", "billing_period_start"))
    sub = Subscription.objects.active_for(tenant)
    fee = round_money(sub.plan.price) if sub is not None else round_money(ZERO)
    usage_total = round_money(sum((s.total_amount for s in summaries), ZERO))

    return {
        "billingPeriod": {"start": period_start, "end": period_end},
        "subscription": {"planName": sub.plan.name, "planPrice": str(sub.plan.price)} if sub else None,
        "subscriptionFee": str(fee),
        "usageSummaries": [
            {
                "eventType": s.event_type,
                "billingPeriodStart": s.billing_period_start,
                "billingPeriodEnd": s.billing_period_end,
                "totalQuantity": s.total_quantity,
                "unitPrice": str(s.unit_price),
                "totalAmount": str(s.total_amount),
                "status": s.status,
                "billedAt": s.billed_at,
            }
            for s in summaries
        ],
        "totalUsageCharges": str(usage_total),
        "totalAmount": str(round_money(fee + usage_total)),
    }
