"""
Contrôle des quotas par type d'event sur la période de facturation courante.

La consommation est relue depuis les UsageEvent (source de vérité), jamais
depuis un compteur en cache: deux appels sans écriture intermédiaire
renvoient le même résultat.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from django.conf import settings
from django.core.cache import cache
from django.db.models import Sum

from core.exceptions import QuotaExceeded
from subscriptions.models import Subscription
from usage.models import UsageEvent
from usage.services.periods import current_billing_period
from ..models import UsageLimit

logger = logging.getLogger("ledgerline.limits")

NOTIFY_TTL = 40 * 24 * 3600  # > un mois: une notification par seuil et par période


@dataclass(frozen=True)
class LimitCheckResult:
    event_type: str
    current_usage: int
    limit: Optional[int]          # None => illimité
    percent_used: float
    is_over_limit: bool
    is_near_limit: bool
    remaining: Optional[int]

    @property
    def allowed(self) -> bool:
        return not self.is_over_limit

    def as_dict(self) -> dict:
        return {
            "eventType": self.event_type,
            "currentUsage": self.current_usage,
            "limit": self.limit,
            "percentUsed": self.percent_used,
            "isOverLimit": self.is_over_limit,
            "isNearLimit": self.is_near_limit,
            "remaining": self.remaining,
        }


def _near_threshold() -> float:
    return float(getattr(settings, "USAGE_NEAR_LIMIT_PERCENT", 80))


def current_usage(tenant, event_type: str, period=None) -> int:
    period = period or current_billing_period()
    return (UsageEvent.objects
            .filter(tenant=tenant, event_type=event_type, billing_period_start=period.start)
            .aggregate(total=Sum("quantity"))["total"] or 0)


def _build(event_type: str, usage: int, limit: Optional[int]) -> LimitCheckResult:
    if limit is None:
        return LimitCheckResult(event_type, usage, None, 0.0, False, False, None)
    if limit == 0:
        # quota nul: tout usage est un dépassement, on est "au seuil" d'office
        return LimitCheckResult(event_type, usage, 0, 100.0, usage > 0, True, 0)
    percent = round(usage / limit * 100, 2)
    return LimitCheckResult(
        event_type=event_type,
        current_usage=usage,
        limit=limit,
        percent_used=percent,
        is_over_limit=usage > limit,
        is_near_limit=percent >= _near_threshold(),
        remaining=max(0, limit - usage),
    )


def _plan_limit(tenant, event_type: str) -> Optional[UsageLimit]:
    sub = Subscription.objects.active_for(tenant)
    if sub is None:
        return None
    return UsageLimit.objects.filter(plan_id=sub.plan_id, event_type=event_type, is_active=True).first()


def check_limit(tenant, event_type: str) -> LimitCheckResult:
    """
    Sans abonnement actif, sans UsageLimit, ou limite nulle (None): usage permis, remaining None.
    """
    usage = current_usage(tenant, event_type)
    ul = _plan_limit(tenant, event_type)
    return _build(event_type, usage, ul.limit_quantity if ul is not None else None)


def check_all_limits(tenant) -> List[LimitCheckResult]:
    sub = Subscription.objects.active_for(tenant)
    if sub is None:
        return []
    period = current_billing_period()
    limits = UsageLimit.objects.filter(plan_id=sub.plan_id, is_active=True).order_by("event_type")
    return [_build(ul.event_type, current_usage(tenant, ul.event_type, period), ul.limit_quantity)
            for ul in limits]


def enforce_quota(tenant, event_type: str, quantity: int = 1) -> LimitCheckResult:
    """
    Garde avant action: refuse si l'action ferait dépasser le quota.
    """
    result = check_limit(tenant, event_type)
    if result.limit is not None and result.current_usage + quantity > result.limit:
        raise QuotaExceeded(
            f"{event_type} limit exceeded. Current usage: {result.current_usage}/{result.limit}",
            details={**result.as_dict(), "requested": quantity},
        )
    return result


def notify_quota_state(tenant, event_type: str) -> Optional[LimitCheckResult]:
    """
    Après un usage enregistré: webhook quota.threshold / quota.exceeded,
    au plus une fois par seuil et par période.
    """
    from webhooks.services.events import emit

    result = check_limit(tenant, event_type)
    if result.limit is None:
        return result

    period = current_billing_period()
    if result.is_over_limit:
        level, event = "exceeded", "quota.exceeded"
    elif result.is_near_limit:
        level, event = "threshold", "quota.threshold"
    else:
        return result

    key = f"quota-notified:{tenant.id}:{event_type}:{period.start:%Y%m}:{level}"
    if cache.add(key, 1, timeout=NOTIFY_TTL):
        logger.info("quota %s tenant=%s type=%s usage=%s/%s",
                    level, tenant.id, event_type, result.current_usage, result.limit)
        emit(tenant, event, result.as_dict())
    return result
