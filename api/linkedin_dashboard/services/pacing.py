"""
Budget pacing de la période courante

Jours comptés en dates calendaires inclusives: 2025-01-01 → 2025-01-31 = 31 jours.
daysElapsed est borné à [0, daysTotal].
"""
from datetime import date
from typing import Dict, Optional

from .aggregator import PeriodTotals


def calculate_budget_pacing(
    totals: PeriodTotals,
    date_range,
    budget: Optional[float] = None,
    today: Optional[date] = None,
) -> Dict[str, float]:
    """
    Args:
        totals: totaux de la période courante
        date_range: objet avec .start/.end (dates)
        budget: budget saisi manuellement (0 si inconnu, jamais deviné)
        today: date de référence (aujourd'hui par défaut)

    Returns:
        {budget, spent, daysTotal, daysElapsed, pacingPercent, timeProgressPercent}
    """
    today = today or date.today()
    budget = budget or 0
    spent = totals.counters.spend

    days_total = (date_range.end - date_range.start).days + 1
    days_elapsed = max(0, min((today - date_range.start).days + 1, days_total))

    return {
        "budget": budget,
        "spent": spent,
        "daysTotal": days_total,
        "daysElapsed": days_elapsed,
        "pacingPercent": spent / budget * 100 if budget > 0 else 0,
        "timeProgressPercent": days_elapsed / days_total * 100 if days_total > 0 else 0,
    }
