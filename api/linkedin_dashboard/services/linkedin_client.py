"""
Client LinkedIn Marketing API avec retry intelligent et timeouts
Gestion des rate limits avec backoff exponentiel

Les requêtes Rest.li 2.0 utilisent une syntaxe de query structurée
(List(...), (start:(year:...))) qui ne doit PAS être ré-encodée:
les URLs sont construites à la main, seules les URNs sont percent-encodées.
"""
import asyncio
import logging
import random
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote, urlencode

import httpx
from ..config import settings

logger = logging.getLogger(__name__)

REST_BASE_URL = "https://api.linkedin.com/rest"
OAUTH_BASE_URL = "https://www.linkedin.com/oauth/v2"
USERINFO_URL = "https://api.linkedin.com/v2/userinfo"

# Compteurs demandés à adAnalytics (oneClickLeads = formulaires Lead Gen natifs)
ANALYTICS_FIELDS = (
    "impressions,clicks,costInLocalCurrency,oneClickLeads,"
    "likes,comments,shares,follows,otherEngagements,pivotValues"
)


class LinkedInAPIError(Exception):
    """Erreur lors d'un appel LinkedIn API"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def urn_list(urns: Sequence[str]) -> str:
    """List(urn1,urn2) avec chaque URN percent-encodée (format Rest.li 2.0)"""
    return "List(" + ",".join(quote(urn, safe="") for urn in urns) + ")"


def date_range_param(start, end) -> str:
    """(start:(year:2025,month:1,day:1),end:(year:2025,month:1,day:31))"""
    return (
        f"(start:(year:{start.year},month:{start.month},day:{start.day}),"
        f"end:(year:{end.year},month:{end.month},day:{end.day}))"
    )


def build_url(path: str, query: Sequence[Tuple[str, Any]]) -> str:
    """Concatène une query déjà encodée (pas de urlencode: casserait Rest.li)"""
    return f"{REST_BASE_URL}{path}?" + "&".join(f"{key}={value}" for key, value in query)


class LinkedInClient:
    """
    Client asynchrone pour LinkedIn Marketing API (REST, versionnée)

    Features:
    - Timeouts explicites (connect/read)
    - Retry avec backoff exponentiel + jitter
    - Gestion des rate limits (429)
    - Pagination par curseur (pageToken) pour les listes d'entités
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.client_id = settings.LINKEDIN_CLIENT_ID
        self.client_secret = settings.LINKEDIN_CLIENT_SECRET
        self.api_version = settings.LINKEDIN_API_VERSION
        # Injecté par les tests (httpx.MockTransport)
        self._transport = transport

    def _headers(self, access_token: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {access_token}",
            "LinkedIn-Version": self.api_version,
            "X-RestLi-Protocol-Version": "2.0.0",
        }

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        data: Optional[Dict[str, Any]] = None,
        attempts: int = 4,
        base_delay: float = 0.4,
    ) -> Dict[str, Any]:
        """
        Effectue une requête HTTP avec retry intelligent

        Args:
            method: GET ou POST
            url: URL complète (query incluse)
            headers: En-têtes (Authorization, LinkedIn-Version, ...)
            data: Corps form-encoded (pour POST OAuth)
            attempts: Nombre max de tentatives (1 = pas de retry)
            base_delay: Délai de base pour backoff (secondes)

        Returns:
            Response JSON

        Raises:
            LinkedInAPIError: 4xx immédiatement (sauf 429), sinon après tous les retries
        """
        timeout = httpx.Timeout(
            connect=5.0,
            read=30.0,    # adAnalytics peut être lent sur les gros comptes
            write=5.0,
            pool=5.0
        )

        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            for attempt in range(1, attempts + 1):
                try:
                    if method.upper() == "GET":
                        response = await client.get(url, headers=headers)
                    elif method.upper() == "POST":
                        response = await client.post(url, headers=headers, data=data)
                    else:
                        raise ValueError(f"Method {method} not supported")

                    # Stop retry sur 4xx (sauf 429 rate limit)
                    if 400 <= response.status_code < 500 and response.status_code != 429:
                        raise LinkedInAPIError(
                            f"LinkedIn API error {response.status_code}: {response.text[:300]}",
                            status_code=response.status_code,
                        )

                    # 5xx ou 429 → retry
                    response.raise_for_status()
                    return response.json()

                except (httpx.HTTPStatusError, httpx.TransportError) as e:
                    status_code = e.response.status_code if isinstance(e, httpx.HTTPStatusError) else None

                    # Dernière tentative → raise
                    if attempt == attempts:
                        raise LinkedInAPIError(
                            f"LinkedIn API error after {attempts} attempts: {e}",
                            status_code=status_code,
                        )

                    delay = base_delay * (2 ** (attempt - 1)) + random.random() * 0.2
                    logger.debug(f"Retry {attempt}/{attempts} in {delay:.2f}s: {e}")
                    await asyncio.sleep(delay)

        raise LinkedInAPIError("Unexpected error in retry loop")

    async def _paginate(
        self,
        path: str,
        query: List[Tuple[str, Any]],
        access_token: str,
        page_size: int = 100,
        max_pages: int = 50,
    ) -> List[Dict[str, Any]]:
        """
        Récupère TOUTES les pages d'une recherche (pagination par curseur)

        Safety limit: max_pages * page_size éléments
        """
        elements: List[Dict[str, Any]] = []
        page_token = None

        for _ in range(max_pages):
            page_query = list(query) + [("pageSize", page_size)]
            if page_token:
                page_query.append(("pageToken", quote(page_token, safe="")))

            response = await self._request_with_retry(
                "GET", build_url(path, page_query), headers=self._headers(access_token)
            )
            elements.extend(response.get("elements", []))

            page_token = response.get("metadata", {}).get("nextPageToken")
            if not page_token:
                break
        else:
            logger.warning(f"Pagination stopped after {max_pages} pages on {path}")

        return elements

    # ------------------------------------------------------------------
    # OAuth
    # ------------------------------------------------------------------

    def authorization_url(self, state: str, redirect_uri: str) -> str:
        """URL du dialogue d'autorisation LinkedIn (OpenID Connect + r_ads)"""
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "state": state,
            "scope": settings.LINKEDIN_SCOPES,
        }
        return f"{OAUTH_BASE_URL}/authorization?{urlencode(params)}"

    async def exchange_code_for_token(self, code: str, redirect_uri: str) -> Dict[str, Any]:
        """
        Échange le code OAuth contre un access token (~60 jours)

        Returns:
            {"access_token": str, "expires_in": int}
        """
        token_data = await self._request_with_retry(
            "POST",
            f"{OAUTH_BASE_URL}/accessToken",
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
        )

        if "access_token" not in token_data:
            raise LinkedInAPIError("Token response without access_token")

        return {
            "access_token": token_data["access_token"],
            "expires_in": token_data.get("expires_in"),
        }

    async def get_userinfo(self, access_token: str) -> Dict[str, Any]:
        """
        Profil OpenID du membre connecté

        Returns:
            {"sub": str, "name": str, "email": str, ...}
        """
        return await self._request_with_retry(
            "GET", USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"}
        )

    # ------------------------------------------------------------------
    # Entités publicitaires
    # ------------------------------------------------------------------

    async def get_ad_accounts(self, access_token: str) -> List[Dict[str, Any]]:
        """
        Récupère TOUS les comptes publicitaires ACTIVE/DRAFT accessibles

        Returns:
            Liste de {"id": str, "name": str, "currency": str, "status": str}
        """
        elements = await self._paginate(
            "/adAccounts",
            [("q", "search"), ("search", "(status:(values:List(ACTIVE,DRAFT)))")],
            access_token,
        )

        return [
            {
                "id": str(account["id"]),
                "name": account.get("name") or f"Account {account['id']}",
                "currency": account.get("currency"),
                "status": account.get("status"),
            }
            for account in elements
            if "id" in account
        ]

    async def get_campaign_groups(self, account_id: str, access_token: str) -> List[Dict[str, Any]]:
        """Groupes de campagnes d'un compte"""
        elements = await self._paginate(
            f"/adAccounts/{account_id}/adCampaignGroups", [("q", "search")], access_token
        )

        return [
            {
                "id": str(group["id"]),
                "name": group.get("name") or f"Campaign Group {group['id']}",
                "status": group.get("status"),
                "accountId": account_id,
            }
            for group in elements
            if "id" in group
        ]

    async def get_campaigns(self, account_id: str, access_token: str) -> List[Dict[str, Any]]:
        """Campagnes d'un compte (avec l'id de leur groupe)"""
        elements = await self._paginate(
            f"/adAccounts/{account_id}/adCampaigns", [("q", "search")], access_token
        )

        campaigns = []
        for campaign in elements:
            if "id" not in campaign:
                continue
            group_urn = campaign.get("campaignGroup") or ""
            campaigns.append({
                "id": str(campaign["id"]),
                "name": campaign.get("name") or f"Campaign {campaign['id']}",
                "status": campaign.get("status"),
                "accountId": account_id,
                "campaignGroupId": group_urn.rsplit(":", 1)[-1] or None,
            })
        return campaigns

    async def get_creatives(
        self,
        account_id: str,
        campaign_ids: Sequence[str],
        access_token: str
    ) -> List[Dict[str, Any]]:
        """
        Créas (ads) des campagnes données, dans un compte

        Les ids de créa sont des URNs (urn:li:sponsoredCreative:123): on garde l'id numérique
        """
        campaign_urns = [f"urn:li:sponsoredCampaign:{cid}" for cid in campaign_ids]
        elements = await self._paginate(
            f"/adAccounts/{account_id}/creatives",
            [("q", "criteria"), ("campaigns", urn_list(campaign_urns))],
            access_token,
        )

        ads = []
        for creative in elements:
            creative_id = str(creative.get("id", "")).rsplit(":", 1)[-1]
            if not creative_id:
                continue
            ads.append({
                "id": creative_id,
                "name": creative.get("name") or f"Ad {creative_id}",
                "status": creative.get("intendedStatus"),
                "campaignId": str(creative.get("campaign", "")).rsplit(":", 1)[-1] or None,
                "accountId": account_id,
            })
        return ads

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    async def get_analytics_page(
        self,
        access_token: str,
        pivot: str,
        facet: str,
        urns: Sequence[str],
        date_range,
        start: int = 0,
        count: int = 100,
    ) -> List[Dict[str, Any]]:
        """
        Une page de adAnalytics (timeGranularity=ALL, une row par entité pivot)

        Pas de retry: le fetcher paginé arrête la pagination à la première page en échec

        Args:
            pivot: CAMPAIGN, CREATIVE, ...
            facet: accounts, campaignGroups, campaigns, creatives
            urns: URNs de filtrage (urn:li:sponsoredAccount:123, ...)
            date_range: objet avec .start/.end (dates)
            start: offset de pagination
            count: taille de page

        Returns:
            Liste des rows (dicts bruts LinkedIn)
        """
        url = build_url("/adAnalytics", [
            ("q", "analytics"),
            ("pivot", pivot),
            ("timeGranularity", "ALL"),
            ("dateRange", date_range_param(date_range.start, date_range.end)),
            (facet, urn_list(urns)),
            ("fields", ANALYTICS_FIELDS),
            ("start", start),
            ("count", count),
        ])
        logger.debug(f"adAnalytics {pivot} start={start}: {url}")

        response = await self._request_with_retry(
            "GET", url, headers=self._headers(access_token), attempts=1
        )
        return response.get("elements", [])


# Instance globale (singleton pattern)
linkedin_client = LinkedInClient()


def get_linkedin_client() -> LinkedInClient:
    """Dependency FastAPI (surchargée dans les tests)"""
    return linkedin_client
