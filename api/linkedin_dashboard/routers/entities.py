"""
Router des entités sous un compte: groupes de campagnes, campagnes, ads

Un compte en échec est loggé et ignoré (les autres comptes restent affichés),
sauf 401 LinkedIn qui impose une reconnexion.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List

from fastapi import APIRouter, Depends, HTTPException

from ..config import settings
from ..dependencies.auth import get_linkedin_token
from ..schemas import AccountsRequest, AdsRequest, CampaignsRequest
from ..services.entity_resolver import clean_ids
from ..services.linkedin_client import LinkedInAPIError, LinkedInClient, get_linkedin_client
from .accounts import upstream_http_error

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_accounts(body: AccountsRequest) -> List[str]:
    """Ids de comptes non vides (mêmes règles que /api/analytics)"""
    account_ids = list(clean_ids(body.accountIds))
    if not account_ids:
        raise HTTPException(status_code=400, detail="accountIds must contain at least one ad account")
    return account_ids


async def _collect_per_account(
    account_ids: List[str],
    fetch_one: Callable[[str], Awaitable[List[Dict[str, Any]]]],
    what: str,
) -> List[Dict[str, Any]]:
    """
    Fetch parallèle par compte (limité par sémaphore), concaténé dans l'ordre des comptes
    """
    semaphore = asyncio.Semaphore(settings.LINKEDIN_MAX_CONCURRENCY)

    async def fetch_limited(account_id: str) -> List[Dict[str, Any]]:
        async with semaphore:
            return await fetch_one(account_id)

    results = await asyncio.gather(*[fetch_limited(a) for a in account_ids], return_exceptions=True)

    items: List[Dict[str, Any]] = []
    for account_id, result in zip(account_ids, results):
        if isinstance(result, LinkedInAPIError):
            if result.status_code == 401:
                raise upstream_http_error(result)
            logger.warning(f"{what} failed for account {account_id}: {result}")
            continue
        if isinstance(result, BaseException):
            raise result
        items.extend(result)
    return items


def _dedupe(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    seen = set()
    unique = []
    for item in items:
        if item["id"] not in seen:
            seen.add(item["id"])
            unique.append(item)
    return unique


@router.post("/campaign-groups")
async def list_campaign_groups(
    body: AccountsRequest,
    access_token: str = Depends(get_linkedin_token),
    client: LinkedInClient = Depends(get_linkedin_client),
) -> List[Dict[str, Any]]:
    """Groupes de campagnes des comptes sélectionnés (dédoublonnés par id)"""
    account_ids = _require_accounts(body)

    groups = await _collect_per_account(
        account_ids,
        lambda account_id: client.get_campaign_groups(account_id, access_token),
        "Campaign groups",
    )
    groups = _dedupe(groups)
    logger.info(f"Total campaign groups: {len(groups)}")
    return groups


@router.post("/campaigns")
async def list_campaigns(
    body: CampaignsRequest,
    access_token: str = Depends(get_linkedin_token),
    client: LinkedInClient = Depends(get_linkedin_client),
) -> List[Dict[str, Any]]:
    """Campagnes des comptes sélectionnés, filtrées par groupe si fourni"""
    account_ids = _require_accounts(body)

    campaigns = await _collect_per_account(
        account_ids,
        lambda account_id: client.get_campaigns(account_id, access_token),
        "Campaigns",
    )

    group_ids = set(body.campaignGroupIds)
    if group_ids:
        campaigns = [c for c in campaigns if c.get("campaignGroupId") in group_ids]

    campaigns = _dedupe(campaigns)
    logger.info(f"Total campaigns: {len(campaigns)}")
    return campaigns


@router.post("/ads")
async def list_ads(
    body: AdsRequest,
    access_token: str = Depends(get_linkedin_token),
    client: LinkedInClient = Depends(get_linkedin_client),
) -> List[Dict[str, Any]]:
    """Ads (créas) des campagnes sélectionnées"""
    account_ids = _require_accounts(body)
    if not body.campaignIds:
        raise HTTPException(status_code=400, detail="campaignIds must contain at least one campaign")

    ads = await _collect_per_account(
        account_ids,
        lambda account_id: client.get_creatives(account_id, body.campaignIds, access_token),
        "Ads",
    )
    ads = _dedupe(ads)
    logger.info(f"Total ads: {len(ads)}")
    return ads
