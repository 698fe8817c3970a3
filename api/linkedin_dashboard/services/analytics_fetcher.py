"""
Fetch paginé de adAnalytics (offset start/count)

Arrêt de la pagination:
(a) page plus courte que page_size → dernière page
(b) plafond d'offset atteint (safety limit contre une boucle côté LinkedIn)
(c) page en échec (HTTP, réseau, timeout) → on garde ce qui a déjà été collecté

Une page en échec n'est PAS remontée en exception: des données partielles
valent mieux que rien pour un dashboard. Seule exception: 401 LinkedIn
(token expiré), remonté pour forcer une reconnexion.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config import settings
from .entity_resolver import ResolvedSelection
from .linkedin_client import LinkedInAPIError, LinkedInClient

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    rows: List[Dict[str, Any]] = field(default_factory=list)
    pages: int = 0
    complete: bool = True


async def fetch_analytics_rows(
    client: LinkedInClient,
    access_token: str,
    selection: ResolvedSelection,
    date_range,
    page_size: Optional[int] = None,
    max_offset: Optional[int] = None,
    deadline: Optional[float] = None,
) -> FetchResult:
    """
    Collecte toutes les rows d'une sélection sur une période

    Args:
        client: LinkedInClient
        access_token: token LinkedIn du membre
        selection: niveau + ids (une requête)
        date_range: objet avec .start/.end
        page_size: taille de page (settings.ANALYTICS_PAGE_SIZE par défaut)
        max_offset: plafond d'offset (settings.ANALYTICS_MAX_OFFSET par défaut)
        deadline: instant loop.time() au-delà duquel on ne lance plus de page

    Returns:
        FetchResult(rows, pages, complete)

    Raises:
        LinkedInAPIError: 401 uniquement (token LinkedIn expiré ou révoqué)
    """
    page_size = page_size or settings.ANALYTICS_PAGE_SIZE
    max_offset = settings.ANALYTICS_MAX_OFFSET if max_offset is None else max_offset
    loop = asyncio.get_running_loop()

    result = FetchResult()
    offset = 0
    label = f"{selection.level.value} {','.join(selection.ids)} ({date_range})"

    while True:
        if offset >= max_offset:
            logger.warning(f"adAnalytics offset ceiling {max_offset} reached for {label}")
            result.complete = False
            break

        remaining = None
        if deadline is not None:
            remaining = deadline - loop.time()
            if remaining <= 0:
                logger.warning(f"adAnalytics deadline exceeded for {label} after {result.pages} page(s)")
                result.complete = False
                break

        try:
            page = await asyncio.wait_for(
                client.get_analytics_page(
                    access_token,
                    pivot=selection.level.breakdown_pivot,
                    facet=selection.level.facet,
                    urns=selection.urns,
                    date_range=date_range,
                    start=offset,
                    count=page_size,
                ),
                timeout=remaining,
            )
        except asyncio.TimeoutError:
            logger.warning(f"adAnalytics page start={offset} timed out for {label}")
            result.complete = False
            break
        except LinkedInAPIError as e:
            # Token révoqué / expiré: pas une page en échec, le membre doit se reconnecter
            if e.status_code == 401:
                raise
            logger.warning(f"adAnalytics page start={offset} failed for {label}: {e}")
            result.complete = False
            break
        except ValueError as e:
            logger.warning(f"adAnalytics page start={offset} failed for {label}: {e}")
            result.complete = False
            break

        result.rows.extend(page)
        result.pages += 1

        if len(page) < page_size:
            break
        offset += page_size

    logger.info(f"adAnalytics {label}: {len(result.rows)} rows in {result.pages} page(s)")
    return result
