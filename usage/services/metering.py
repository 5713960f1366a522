"""
Enregistrement des events de consommation + agrégat mensuel (UsageSummary).

L'insert de l'event et l'incrément de l'agrégat sont dans la même transaction:
un event persisté est toujours compté, un échec ne laisse rien derrière lui.
"""
import logging
from decimal import Decimal
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import DecimalField, ExpressionWrapper, F
from rest_framework.exceptions import ValidationError

from usage.models import UsageEvent, UsageEventType, UsageSummary
from .periods import current_billing_period

logger = logging.getLogger("ledgerline.usage")

ZERO_PRICE = Decimal("0.0000")


def get_unit_price(tenant, event_type: str) -> Decimal:
    """
    Prix unitaire = UsageLimit actif du plan de l'abonnement actif ; 0 sinon.
    """
    from subscriptions.models import Subscription
    from limits.models import UsageLimit

    sub = Subscription.objects.active_for(tenant)
    if sub is None:
        return ZERO_PRICE
    limit = (UsageLimit.objects
             .filter(plan_id=sub.plan_id, event_type=event_type, is_active=True)
             .only("unit_price")
             .first())
    return limit.unit_price if limit is not None else ZERO_PRICE


def _increment_summary(tenant, event_type: str, period_start, quantity: int) -> int:
    """Incrément atomique côté base ; retourne le nombre de lignes touchées (0 ou 1)."""
    return (UsageSummary.objects
            .filter(tenant=tenant, event_type=event_type, billing_period_start=period_start)
            .update(
                total_quantity=F("total_quantity") + quantity,
                total_amount=ExpressionWrapper(
                    (F("total_quantity") + quantity) * F("unit_price"),
                    output_field=DecimalField(max_digits=12, decimal_places=2),
                ),
            ))


def _insert_summary(tenant, event_type: str, period, quantity: int, unit_price: Decimal) -> UsageSummary:
    return UsageSummary.objects.create(
        tenant=tenant,
        event_type=event_type,
        billing_period_start=period.start,
        billing_period_end=period.end,
        total_quantity=quantity,
        unit_price=unit_price,
        total_amount=(Decimal(quantity) * unit_price).quantize(Decimal("0.01")),
    )


def upsert_summary(tenant, event_type: str, period, quantity: int) -> None:
    """
    UPSERT de l'agrégat: UPDATE += q ; sinon INSERT (savepoint) ;
    si un créateur concurrent a gagné (IntegrityError), on revient à l'incrément.
    """
    if _increment_summary(tenant, event_type, period.start, quantity):
        return
    unit_price = get_unit_price(tenant, event_type)
    try:
        with transaction.atomic():
            _insert_summary(tenant, event_type, period, quantity, unit_price)
    except IntegrityError:
        if not _increment_summary(tenant, event_type, period.start, quantity):
            raise


def _validate(event_type: str, quantity) -> int:
    if event_type not in UsageEventType.values:
        raise ValidationError({"eventType": [f"Invalid event type: {event_type}"]})
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError({"quantity": ["Quantity must be a positive integer"]})
    return quantity


def record_usage(tenant, event_type: str, quantity: int = 1, *, user_id: Optional[int] = None,
                 resource_id: Optional[str] = None, metadata: Optional[dict] = None) -> UsageEvent:
    """
    Persiste un UsageEvent dans la période courante et incrémente l'agrégat.
    Lève ValidationError (type inconnu, quantité <= 0) ; les erreurs base remontent telles quelles.
    """
    quantity = _validate(event_type, quantity)
    period = current_billing_period()

    with transaction.atomic():
        event = UsageEvent.objects.create(
            tenant=tenant,
            user_id=user_id,
            event_type=event_type,
            resource_id=resource_id,
            quantity=quantity,
            metadata=metadata or {},
            billing_period_start=period.start,
            billing_period_end=period.end,
        )
        upsert_summary(tenant, event_type, period, quantity)
        tenant.touch_usage()

    logger.debug("usage recorded tenant=%s type=%s qty=%s period=%s",
                 tenant.id, event_type, quantity, period.start.date())
    return event
