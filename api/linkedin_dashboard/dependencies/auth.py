"""
Authentication dependencies for FastAPI endpoints
Provides the signed-in LinkedIn member and its decrypted LinkedIn access token
Supports both Bearer token (header) and HttpOnly cookie
"""
from typing import Optional
from cryptography.fernet import InvalidToken
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError

from ..utils.jwt import verify_token
from ..utils.security import decrypt_token

# HTTPBearer scheme for extracting "Bearer <token>" from Authorization header
# auto_error=False allows us to fallback to cookie if header is missing
http_bearer = HTTPBearer(auto_error=False)


def _extract_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials]
) -> Optional[str]:
    """
    Extract JWT token from Authorization header OR HttpOnly cookie

    Priority:
    1. Authorization: Bearer <token> header (for API clients)
    2. access_token cookie (for browser-based dashboard)
    """
    if credentials and credentials.scheme.lower() == "bearer" and credentials.credentials:
        return credentials.credentials

    return request.cookies.get("access_token")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_token_payload(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer)
) -> dict:
    """
    Extract and validate JWT, return its payload

    Raises:
        HTTPException 401: If token is missing, invalid, or expired
    """
    token = _extract_token(request, credentials)

    if not token:
        raise _unauthorized("Not authenticated")

    try:
        return verify_token(token)
    except JWTError as e:
        raise _unauthorized(f"Invalid authentication credentials: {str(e)}")


def get_current_member_id(payload: dict = Depends(get_token_payload)) -> str:
    """LinkedIn member id of the signed-in user"""
    return payload["sub"]


def get_linkedin_token(payload: dict = Depends(get_token_payload)) -> str:
    """
    Decrypt the LinkedIn access token embedded in the JWT

    Raises:
        HTTPException 401: If the embedded token cannot be decrypted (key rotated out)
    """
    try:
        return decrypt_token(payload["lit"])
    except (InvalidToken, KeyError, ValueError) as e:
        raise _unauthorized(f"Malformed token payload: {e.__class__.__name__}")
