"""
Métriques dérivées d'une période (MetricSet) et classement des top performers

Chaque ratio protège son dénominateur: 0 si impressions / clicks / leads = 0.
Pas d'arrondi ici (affichage côté dashboard).
"""
from typing import Any, Dict, List, Optional

from .aggregator import BreakdownRow, PeriodTotals


def _ratio(numerator: float, denominator: float, scale: float = 1) -> float:
    return numerator / denominator * scale if denominator > 0 else 0


def derive_metrics(totals: PeriodTotals) -> Dict[str, float]:
    """
    PeriodTotals → MetricSet

    Returns:
        {impressions, clicks, ctr, spent, cpm, cpc, leads, cpl, engagementRate, engagements}
    """
    c = totals.counters
    engagements = c.clicks + c.likes + c.comments + c.shares + c.follows

    return {
        "impressions": c.impressions,
        "clicks": c.clicks,
        "ctr": _ratio(c.clicks, c.impressions, 100),
        "spent": c.spend,
        "cpm": _ratio(c.spend, c.impressions, 1000),
        "cpc": _ratio(c.spend, c.clicks),
        "leads": c.leads,
        "cpl": _ratio(c.spend, c.leads),
        "engagementRate": _ratio(engagements, c.impressions, 100),
        "engagements": engagements,
    }


def top_performers(breakdown: List[BreakdownRow], n: int = 5) -> List[BreakdownRow]:
    """
    Top N par impressions décroissantes

    sorted() est stable: à égalité, l'ordre de première apparition est conservé.
    Lecture seule: ni la liste ni les entrées ne sont modifiées.
    """
    if n <= 0:
        return []
    return sorted(breakdown, key=lambda row: row.impressions, reverse=True)[:n]


def percent_change(current: float, previous: float) -> Optional[float]:
    """Variation période / période précédente en %, None si previous = 0"""
    if not previous:
        return None
    return (current - previous) / previous * 100


def metric_changes(current: Dict[str, Any], previous: Dict[str, Any]) -> Dict[str, Optional[float]]:
    """Variation en % pour chaque métrique commune aux deux MetricSet"""
    return {
        key: percent_change(current[key], previous.get(key, 0))
        for key in current
        if isinstance(current[key], (int, float))
    }
