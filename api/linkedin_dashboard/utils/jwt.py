"""
JWT utilities for API authentication
The LinkedIn access token travels encrypted inside the JWT (no server-side store)
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import jwt, JWTError
from ..config import settings
from .security import encrypt_token

# JWT Configuration
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 8 * 60  # une journée de travail
AUDIENCE = "api"


def create_access_token(
    member_id: str,
    linkedin_token: str,
    name: Optional[str] = None,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token for API authentication

    Args:
        member_id: LinkedIn member id (OpenID "sub")
        linkedin_token: LinkedIn OAuth access token (encrypted before embedding)
        name: Display name of the member
        expires_delta: Optional custom expiration

    Returns:
        Encoded JWT string
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    now = datetime.now(timezone.utc)

    payload = {
        "sub": member_id,                       # Subject: LinkedIn member
        "name": name or "",
        "lit": encrypt_token(linkedin_token),   # LinkedIn token (Fernet)
        "aud": AUDIENCE,
        "iss": settings.JWT_ISSUER,
        "iat": now,
        "exp": now + expires_delta,
    }

    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> dict:
    """
    Verify and decode a JWT token

    Returns:
        Decoded payload dict with 'sub' (member id) and 'lit' (encrypted LinkedIn token)

    Raises:
        JWTError: If token is invalid, expired, or has wrong audience/issuer
    """
    payload = jwt.decode(
        token,
        settings.SECRET_KEY,
        algorithms=[ALGORITHM],
        audience=AUDIENCE,
        issuer=settings.JWT_ISSUER
    )

    # Validate required claims
    if "sub" not in payload or "lit" not in payload:
        raise JWTError("Missing required claims (sub or lit)")

    return payload
