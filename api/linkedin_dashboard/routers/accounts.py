"""
Router pour les comptes publicitaires et informations utilisateur
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies.auth import get_linkedin_token, get_token_payload
from ..services.linkedin_client import LinkedInAPIError, LinkedInClient, get_linkedin_client

logger = logging.getLogger(__name__)

router = APIRouter()


def upstream_http_error(e: LinkedInAPIError) -> HTTPException:
    """
    LinkedInAPIError → HTTPException

    401 LinkedIn (token expiré / révoqué) → 401 pour forcer une reconnexion,
    tout le reste → 502
    """
    if e.status_code == 401:
        return HTTPException(
            status_code=401,
            detail=f"LinkedIn token expired or invalid. Please sign in again. Error: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return HTTPException(status_code=502, detail=f"LinkedIn API error: {str(e)}")


@router.get("/me")
def get_me(payload: dict = Depends(get_token_payload)) -> Dict[str, Any]:
    """
    Membre LinkedIn connecté

    🔒 Protected endpoint - requires valid JWT (Bearer or cookie)
    """
    return {
        "member_id": payload["sub"],
        "name": payload.get("name", ""),
    }


@router.get("")
async def list_accounts(
    access_token: str = Depends(get_linkedin_token),
    client: LinkedInClient = Depends(get_linkedin_client),
) -> Dict[str, Any]:
    """
    Liste TOUS les comptes publicitaires (ACTIVE, DRAFT) du membre

    Returns:
        {"accounts": [{"id", "name", "currency", "status"}], "count": int}
    """
    try:
        accounts = await client.get_ad_accounts(access_token)
    except LinkedInAPIError as e:
        raise upstream_http_error(e)

    logger.info(f"Ad accounts listed: {len(accounts)}")
    return {"accounts": accounts, "count": len(accounts)}
