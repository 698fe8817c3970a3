"""
Agrégation des rows adAnalytics d'une période

- totals: SUM de tous les compteurs
- breakdown: une entrée par entité (id extrait de l'URN pivot), compteurs sommés
  si l'entité apparaît dans plusieurs rows / pages
"""
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Iterable, List, Optional

# Compteurs bruts suivis (noms internes)
COUNTERS = (
    "impressions", "clicks", "spend", "leads",
    "likes", "comments", "shares", "follows", "other_engagements",
)


def _number(value: Any) -> float:
    """costInLocalCurrency arrive en string ("12.34"), le reste en int; None → 0"""
    if value is None:
        return 0
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0


def extract_entity_id(pivot_value: Optional[str]) -> Optional[str]:
    """urn:li:sponsoredCampaign:123 → "123" (None si absent / illisible)"""
    if not pivot_value or not isinstance(pivot_value, str):
        return None
    entity_id = pivot_value.rsplit(":", 1)[-1].strip()
    return entity_id or None


@dataclass
class Counters:
    impressions: float = 0
    clicks: float = 0
    spend: float = 0
    leads: float = 0
    likes: float = 0
    comments: float = 0
    shares: float = 0
    follows: float = 0
    other_engagements: float = 0

    def add(self, other: "Counters") -> None:
        for name in COUNTERS:
            setattr(self, name, getattr(self, name) + getattr(other, name))

    def copy(self) -> "Counters":
        return Counters(**{name: getattr(self, name) for name in COUNTERS})


@dataclass
class RawAnalyticsRow:
    entity_id: Optional[str]
    counters: Counters

    @classmethod
    def from_element(cls, element: Dict[str, Any]) -> "RawAnalyticsRow":
        """Row LinkedIn brute → RawAnalyticsRow"""
        pivot_values = element.get("pivotValues") or []
        pivot_value = pivot_values[0] if pivot_values else element.get("pivotValue")

        return cls(
            entity_id=extract_entity_id(pivot_value),
            counters=Counters(
                impressions=_number(element.get("impressions")),
                clicks=_number(element.get("clicks")),
                spend=float(_number(element.get("costInLocalCurrency"))),
                leads=_number(element.get("oneClickLeads")),
                likes=_number(element.get("likes")),
                comments=_number(element.get("comments")),
                shares=_number(element.get("shares")),
                follows=_number(element.get("follows")),
                other_engagements=_number(element.get("otherEngagements")),
            ),
        )


@dataclass
class BreakdownRow:
    id: str
    counters: Counters = field(default_factory=Counters)

    @property
    def impressions(self) -> float:
        return self.counters.impressions

    def to_dict(self) -> Dict[str, Any]:
        c = self.counters
        return {
            "id": self.id,
            "impressions": c.impressions,
            "clicks": c.clicks,
            "ctr": c.clicks / c.impressions * 100 if c.impressions > 0 else 0,
            "spent": c.spend,
            "leads": c.leads,
            "likes": c.likes,
            "comments": c.comments,
            "shares": c.shares,
            "follows": c.follows,
            "otherEngagements": c.other_engagements,
        }


@dataclass
class PeriodTotals:
    """Accumulateur d'une période (totaux + ventilation par entité)"""
    counters: Counters = field(default_factory=Counters)
    # dict: ordre d'insertion = ordre de première apparition
    breakdown_index: Dict[str, BreakdownRow] = field(default_factory=dict)
    rows_count: int = 0
    unattributed_rows: int = 0
    complete: bool = True

    @property
    def breakdown(self) -> List[BreakdownRow]:
        return list(self.breakdown_index.values())

    def add_row(self, row: RawAnalyticsRow) -> None:
        self.counters.add(row.counters)
        self.rows_count += 1

        if row.entity_id is None:
            # Non attribuable: compte dans les totaux seulement
            self.unattributed_rows += 1
            return

        entry = self.breakdown_index.get(row.entity_id)
        if entry is None:
            self.breakdown_index[row.entity_id] = BreakdownRow(row.entity_id, row.counters.copy())
        else:
            entry.counters.add(row.counters)

    def merge(self, other: "PeriodTotals") -> "PeriodTotals":
        """Somme de deux accumulateurs partiels (ex: un par compte) dans self"""
        self.counters.add(other.counters)
        self.rows_count += other.rows_count
        self.unattributed_rows += other.unattributed_rows
        self.complete = self.complete and other.complete

        for entity_id, entry in other.breakdown_index.items():
            mine = self.breakdown_index.get(entity_id)
            if mine is None:
                self.breakdown_index[entity_id] = BreakdownRow(entity_id, entry.counters.copy())
            else:
                mine.counters.add(entry.counters)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {name.name: getattr(self.counters, name.name) for name in fields(Counters)}


def aggregate_rows(elements: Iterable[Dict[str, Any]], complete: bool = True) -> PeriodTotals:
    """
    Agrège les rows brutes d'une période

    Args:
        elements: rows adAnalytics (dicts LinkedIn) concaténées de toutes les pages
        complete: False si la pagination a été interrompue (données partielles)

    Returns:
        PeriodTotals (totaux + breakdown)
    """
    totals = PeriodTotals(complete=complete)
    for element in elements:
        totals.add_row(RawAnalyticsRow.from_element(element))
    return totals
