"""
Exports de consommation (CSV / JSON) et rapport mensuel par type d'event.
"""
import csv
import io
import json
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from django.core.serializers.json import DjangoJSONEncoder
from django.db.models import Avg, Count, Sum
from django.db.models.functions import TruncMonth
from django.utils import timezone

from usage.models import UsageEvent, UsageSummary
from .periods import current_billing_period, months_back

FORMATS = ("csv", "json")
ANALYTICS_DEFAULT_MONTHS = 2  # mois courant + 2 précédents

EVENT_HEADERS = ["ID", "Event Type", "Resource ID", "Quantity", "Created At",
                 "Billing Period Start", "Billing Period End", "User ID", "Metadata"]
SUMMARY_HEADERS = ["ID", "Event Type", "Billing Period Start", "Billing Period End",
                   "Total Quantity", "Unit Price", "Total Amount", "Status", "Billed At"]
ANALYTICS_HEADERS = ["Event Type", "Month", "Total Events", "Total Quantity", "Average Quantity Per Event"]


@dataclass
class ExportFile:
    content: str
    content_type: str
    filename: str


def _iso(dt: Optional[datetime]) -> str:
    return dt.isoformat() if dt else ""


def _csv(headers, rows) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return buf.getvalue()


def _event_rows(events):
    for e in events:
        yield [e.id, e.event_type, e.resource_id or "", e.quantity, _iso(e.created_at),
               _iso(e.billing_period_start), _iso(e.billing_period_end), e.user_id or "",
               json.dumps(e.metadata) if e.metadata else ""]


def _summary_rows(summaries):
    for s in summaries:
        yield [s.id, s.event_type, _iso(s.billing_period_start), _iso(s.billing_period_end),
               s.total_quantity, s.unit_price, s.total_amount, s.status, _iso(s.billed_at)]


def _event_dict(e: UsageEvent) -> dict:
    return {
        "id": e.id,
        "eventType": e.event_type,
        "resourceId": e.resource_id,
        "quantity": e.quantity,
        "createdAt": e.created_at,
        "billingPeriodStart": e.billing_period_start,
        "billingPeriodEnd": e.billing_period_end,
        "userId": e.user_id,
        "metadata": e.metadata,
    }


def _summary_dict(s: UsageSummary) -> dict:
    return {
        "id": s.id,
        "eventType": s.event_type,
        "billingPeriodStart": s.billing_period_start,
        "billingPeriodEnd": s.billing_period_end,
        "totalQuantity": s.total_quantity,
        "unitPrice": str(s.unit_price),
        "totalAmount": str(s.total_amount),
        "status": s.status,
        "billedAt": s.billed_at,
    }


def export_usage(tenant, fmt: str = "csv", start: Optional[datetime] = None, end: Optional[datetime] = None,
                 event_type: Optional[str] = None, include_details: bool = True) -> ExportFile:
    """
    include_details: events un par un ; sinon les agrégats mensuels.
    Fenêtre par défaut: mois courant.
    """
    if start is None or end is None:
        start, end = current_billing_period()
    stamp = timezone.localdate().isoformat()

    if include_details:
        qs = UsageEvent.objects.filter(tenant=tenant, created_at__gte=start, created_at__lte=end)
        if event_type:
            qs = qs.filter(event_type=event_type)
        records = list(qs.order_by("-created_at", "-id"))
        headers, rows, as_dict = EVENT_HEADERS, _event_rows(records), _event_dict
    else:
        qs = UsageSummary.objects.filter(tenant=tenant, billing_period_start__gte=start,
                                         billing_period_end__lte=end)
        if event_type:
            qs = qs.filter(event_type=event_type)
        records = list(qs.order_by("billing_period_start", "event_type"))
        headers, rows, as_dict = SUMMARY_HEADERS, _summary_rows(records), _summary_dict

    if fmt == "csv":
        return ExportFile(_csv(headers, rows), "text/csv", f"usage-data-{stamp}.csv")

    body = {
        "exportDate": timezone.now(),
        "dateRange": {"start": start, "end": end},
        "tenantId": tenant.id,
        "eventType": event_type or "all",
        "includeDetails": include_details,
        "data": [as_dict(r) for r in records],
    }
    return ExportFile(json.dumps(body, cls=DjangoJSONEncoder, indent=2), "application/json",
                      f"usage-data-{stamp}.json")


def usage_analytics(tenant, start: Optional[datetime] = None, end: Optional[datetime] = None) -> dict:
    """
    Par type d'event et par mois: nb d'events, quantité totale, quantité moyenne (2 décimales).
    Fenêtre par défaut: les 3 derniers mois (mois courant inclus).
    """
    if start is None or end is None:
        now = timezone.now()
        end = current_billing_period(now).end
        start = months_back(now, ANALYTICS_DEFAULT_MONTHS)

    rows = (UsageEvent.objects
            .filter(tenant=tenant, created_at__gte=start, created_at__lte=end)
            .annotate(month=TruncMonth("created_at"))
            .values("event_type", "month")
            .annotate(total_events=Count("id"), total_quantity=Sum("quantity"), avg_quantity=Avg("quantity"))
            .order_by("-month", "event_type"))

    analytics = [
        {
            "eventType": r["event_type"],
            "month": r["month"].strftime("%Y-%m"),
            "totalEvents": r["total_events"],
            "totalQuantity": r["total_quantity"] or 0,
            "averageQuantityPerEvent": float(
                Decimal(str(r["avg_quantity"] or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)),
        }
        for r in rows
    ]
    return {"dateRange": {"start": start, "end": end}, "tenantId": tenant.id, "analytics": analytics}


def usage_analytics_file(tenant, fmt: str = "csv", start=None, end=None) -> ExportFile:
    report = usage_analytics(tenant, start, end)
    stamp = timezone.localdate().isoformat()
    if fmt == "csv":
        rows = ([a["eventType"], a["month"], a["totalEvents"], a["totalQuantity"], a["averageQuantityPerEvent"]]
                for a in report["analytics"])
        return ExportFile(_csv(ANALYTICS_HEADERS, rows), "text/csv", f"usage-analytics-{stamp}.csv")
    body = {"exportDate": timezone.now(), **report}
    return ExportFile(json.dumps(body, cls=DjangoJSONEncoder, indent=2), "application/json",
                      f"usage-analytics-{stamp}.json")
