"""
Router d'authentification LinkedIn OAuth avec state sécurisé
Pas de base de données: le token LinkedIn est chiffré dans le JWT de session
"""
import logging
import secrets
import time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse, JSONResponse

from ..config import settings
from ..schemas import DevLoginRequest
from ..services.linkedin_client import LinkedInAPIError, LinkedInClient, get_linkedin_client
from ..utils.jwt import ACCESS_TOKEN_EXPIRE_MINUTES, create_access_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/linkedin", tags=["auth"])

OAUTH_STATE_TTL_SECONDS = 600  # 10 minutes


def _set_auth_cookie(response, token: str) -> None:
    """Pose le JWT dans un cookie HttpOnly sécurisé"""
    response.set_cookie(
        key="access_token",
        value=token,
        httponly=True,
        secure=not settings.DEBUG,  # HTTPS seulement en production
        samesite=settings.COOKIE_SAMESITE,
        domain=settings.COOKIE_DOMAIN or None,  # None = current domain only
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        path="/"
    )


@router.get("/login")
async def linkedin_login(
    request: Request,
    client: LinkedInClient = Depends(get_linkedin_client),
):
    """
    Initie le flux OAuth LinkedIn
    Génère un state sécurisé et redirige vers LinkedIn
    """
    state = secrets.token_urlsafe(32)
    request.session["oauth_state"] = {
        "value": state,
        "timestamp": int(time.time())
    }

    return RedirectResponse(url=client.authorization_url(state, settings.LINKEDIN_REDIRECT_URI))


@router.get("/callback")
async def linkedin_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    error_description: Optional[str] = None,
    client: LinkedInClient = Depends(get_linkedin_client),
):
    """
    Callback OAuth LinkedIn
    Échange le code contre un token, lit le profil OpenID, pose le JWT et redirige vers le dashboard
    """
    if error:
        raise HTTPException(status_code=400, detail=f"OAuth error: {error} {error_description or ''}".strip())

    if not code or not state:
        raise HTTPException(status_code=400, detail="Missing code or state parameter")

    # Vérification state (CSRF protection + TTL)
    state_data = request.session.pop("oauth_state", None)
    if not state_data or state != state_data.get("value"):
        raise HTTPException(status_code=403, detail="Invalid OAuth state (CSRF detected)")

    if int(time.time()) - state_data.get("timestamp", 0) > OAUTH_STATE_TTL_SECONDS:
        raise HTTPException(status_code=403, detail="Expired OAuth state (session timeout)")

    try:
        # 1. Échanger code contre access token
        token_data = await client.exchange_code_for_token(
            code=code,
            redirect_uri=settings.LINKEDIN_REDIRECT_URI
        )
        linkedin_token = token_data["access_token"]

        # 2. Profil OpenID (sub = member id)
        userinfo = await client.get_userinfo(linkedin_token)
    except LinkedInAPIError as e:
        logger.error(f"LinkedIn OAuth failed: {e}")
        raise HTTPException(status_code=502, detail=f"LinkedIn API error: {str(e)}")

    member_id = userinfo.get("sub")
    if not member_id:
        raise HTTPException(status_code=502, detail="LinkedIn userinfo without member id")

    # 3. JWT de session (token LinkedIn chiffré dedans)
    access_token = create_access_token(
        member_id=member_id,
        linkedin_token=linkedin_token,
        name=userinfo.get("name"),
    )
    logger.info(f"LinkedIn member {member_id} signed in")

    response = RedirectResponse(url=settings.DASHBOARD_URL, status_code=302)
    _set_auth_cookie(response, access_token)
    return response


@router.post("/dev-login")
def dev_login(body: DevLoginRequest):
    """
    DEBUG ONLY: Dev login endpoint to bypass OAuth for testing
    Wraps a LinkedIn token (e.g. from the developer portal token generator) into a JWT + cookie
    """
    if not settings.DEBUG:
        raise HTTPException(status_code=404, detail="Not found")

    token = create_access_token(body.member_id, body.access_token, name=body.name)

    resp = JSONResponse({
        "access_token": token,
        "member_id": body.member_id,
        "message": "Dev login successful (DEBUG mode only)"
    })
    _set_auth_cookie(resp, token)
    return resp


@router.post("/logout")
async def logout(request: Request):
    """Déconnexion (clear session + cookie)"""
    request.session.clear()
    resp = JSONResponse({"message": "Logged out successfully"})
    resp.delete_cookie("access_token", path="/", domain=settings.COOKIE_DOMAIN or None)
    return resp
