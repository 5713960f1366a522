"""
Proration d'un changement de plan en cours de période.

Fonction pure (aucune I/O): montants en unités majeures (ex: 29.99),
résultat en unités mineures (cents), arrondi half-up, jamais négatif.
Pas d'avoir/remboursement par ce chemin: un downgrade coûte 0.
"""
import math
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

from django.utils import timezone

SECONDS_PER_DAY = 86400
CENTS = Decimal(100)


def _to_decimal(value) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        d = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not d.is_finite() or d < 0:
        return None
    return d


def to_minor_units(amount: Decimal) -> int:
    return int((amount * CENTS).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _ceil_days(delta) -> int:
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def calculate_proration(current_price, new_price, period_start: Optional[datetime],
                        period_end: Optional[datetime], now: Optional[datetime] = None) -> int:
    """
    1. total = ceil((fin - début) / 1 jour) ; restant = ceil((fin - now) / 1 jour)
    2. restant <= 0 : plein tarif du nouveau plan
    3. prix identiques : 0
    4. net = (nouveau - courant) / total * restant ; max(0, round(net * 100))
    Entrée invalide: plein tarif du nouveau plan (0 s'il est lui-même invalide).
    """
    new = _to_decimal(new_price)
    if new is None:
        return 0
    current = _to_decimal(current_price)
    if current is None or period_start is None or period_end is None or period_end <= period_start:
        return to_minor_units(new)

    now = now or timezone.now()
    total_days = _ceil_days(period_end - period_start)
    remaining_days = _ceil_days(period_end - now)

    if remaining_days <= 0:
        return to_minor_units(new)
    if current == new:
        return 0

    credit = current / total_days * remaining_days
    charge = new / total_days * remaining_days
    return max(0, to_minor_units(charge - credit))
