"""
Période de facturation = mois calendaire dans le fuseau configuré (TIME_ZONE).
  début: 1er du mois 00:00:00.000
  fin:   dernier jour 23:59:59.999
"""
from calendar import monthrange
from datetime import date, datetime, time
from typing import NamedTuple, Optional

from django.utils import timezone


class BillingPeriod(NamedTuple):
    start: datetime
    end: datetime


def billing_period_for(dt: datetime) -> BillingPeriod:
    local = timezone.localtime(dt) if timezone.is_aware(dt) else timezone.make_aware(dt)
    last_day = monthrange(local.year, local.month)[1]
    start = local.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    end = local.replace(day=last_day, hour=23, minute=59, second=59, microsecond=999000)
    return BillingPeriod(start, end)


def end_of_day(day: date) -> datetime:
    """Borne de fin d'un jour, alignée sur celle des périodes (23:59:59.999)."""
    return timezone.make_aware(datetime.combine(day, time(23, 59, 59, 999000)))


def current_billing_period(now: Optional[datetime] = None) -> BillingPeriod:
    return billing_period_for(now or timezone.now())


def months_back(dt: datetime, months: int) -> datetime:
    """Début du mois situé `months` mois avant celui de dt (fenêtre d'analytics)."""
    local = timezone.localtime(dt)
    idx = local.year * 12 + (local.month - 1) - months
    return local.replace(year=idx // 12, month=idx % 12 + 1, day=1,
                         hour=0, minute=0, second=0, microsecond=0)
