"""
Pipeline d'agrégation analytics du dashboard
Orchestre: résolution sélection → fetch paginé (2 périodes) → agrégation → métriques

IMPORTANT: Une seule implémentation paramétrée par niveau de pivot
(compte, groupe, campagne, ad) pour toutes les vues du dashboard
"""
import asyncio
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from ..config import settings
from .aggregator import PeriodTotals, aggregate_rows
from .analytics_fetcher import fetch_analytics_rows
from .entity_resolver import ResolvedSelection, resolve_selection
from .linkedin_client import LinkedInClient
from .metrics import derive_metrics, top_performers
from .pacing import calculate_budget_pacing

logger = logging.getLogger(__name__)


async def _gather_or_raise(*aws) -> List[Any]:
    """asyncio.gather qui attend TOUTES les tâches avant de remonter la première erreur"""
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


async def fetch_period_totals(
    client: LinkedInClient,
    access_token: str,
    resolved: ResolvedSelection,
    date_range,
    deadline: Optional[float] = None,
    semaphore: Optional[asyncio.Semaphore] = None,
) -> PeriodTotals:
    """
    Totaux d'une période

    Les batchs (un par compte au niveau ACCOUNT) partent en parallèle, limités par
    le sémaphore; chacun produit son accumulateur partiel, sommés une fois tous
    les fetchs terminés.
    """
    if semaphore is None:
        semaphore = asyncio.Semaphore(settings.LINKEDIN_MAX_CONCURRENCY)

    async def fetch_one(batch: ResolvedSelection) -> PeriodTotals:
        async with semaphore:
            result = await fetch_analytics_rows(client, access_token, batch, date_range, deadline=deadline)
        return aggregate_rows(result.rows, complete=result.complete)

    partials = await _gather_or_raise(*[fetch_one(batch) for batch in resolved.batches()])

    totals = PeriodTotals()
    for partial in partials:
        totals.merge(partial)
    return totals


async def build_analytics(
    client: LinkedInClient,
    access_token: str,
    selection,
    current_range,
    previous_range,
    budget: Optional[float] = None,
    today: Optional[date] = None,
    top_n: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Construit la réponse de /api/analytics

    Args:
        selection: objet avec accountIds, campaignGroupIds, campaignIds, adIds
        current_range / previous_range: périodes comparées (indépendantes)
        budget: budget manuel de la période courante (optionnel)

    Returns:
        {
            "current": MetricSet,
            "previous": MetricSet,
            "topPerformers": [BreakdownRow, ...],
            "budgetPacing": {...},
            "pivot": {"level": str, "breakdown": str},
            "partial": bool
        }

    Raises:
        InvalidSelectionError: sélection vide (avant tout appel réseau)
        LinkedInAPIError: 401 LinkedIn (token expiré), pour forcer une reconnexion
    """
    resolved = resolve_selection(
        selection.accountIds,
        selection.campaignGroupIds,
        selection.campaignIds,
        selection.adIds,
    )
    logger.info(
        f"Analytics {resolved.level.value} x{len(resolved.ids)}: "
        f"current {current_range}, previous {previous_range}"
    )

    deadline = asyncio.get_running_loop().time() + settings.ANALYTICS_TIMEOUT_SECONDS
    # Un seul sémaphore pour les deux périodes: borne les appels adAnalytics de la requête
    semaphore = asyncio.Semaphore(settings.LINKEDIN_MAX_CONCURRENCY)

    current_totals, previous_totals = await _gather_or_raise(
        fetch_period_totals(client, access_token, resolved, current_range, deadline, semaphore),
        fetch_period_totals(client, access_token, resolved, previous_range, deadline, semaphore),
    )

    partial = not (current_totals.complete and previous_totals.complete)
    if partial:
        logger.warning("Analytics response built from partial data")

    top = top_performers(current_totals.breakdown, top_n or settings.TOP_PERFORMERS_LIMIT)

    return {
        "current": derive_metrics(current_totals),
        "previous": derive_metrics(previous_totals),
        "topPerformers": [row.to_dict() for row in top],
        "budgetPacing": calculate_budget_pacing(current_totals, current_range, budget, today),
        "pivot": {"level": resolved.level.value, "breakdown": resolved.level.breakdown_pivot},
        "partial": partial,
    }
