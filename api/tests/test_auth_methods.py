"""
Integration Test 1: Auth Cookie vs Bearer Token

Vérifie que l'API accepte l'authentification via:
1. Authorization: Bearer <token> header
2. HttpOnly cookie access_token

Critical pour sécurité: les deux méthodes doivent être supportées
"""
from datetime import timedelta

import httpx
from fastapi.testclient import TestClient
from jose import jwt

from linkedin_dashboard.config import settings
from linkedin_dashboard.main import app
from linkedin_dashboard.utils.jwt import ALGORITHM, create_access_token, verify_token
from linkedin_dashboard.utils.security import decrypt_token

from conftest import RecordingHandler

client = TestClient(app)


def test_auth_with_bearer_token():
    """
    Test que l'API accepte un Bearer token dans l'Authorization header
    """
    access_token = create_access_token("member_bearer", "li-token", name="Bearer User")

    response = client.get(
        "/api/accounts/me",
        headers={"Authorization": f"Bearer {access_token}"}
    )

    assert response.status_code == 200
    assert response.json() == {"member_id": "member_bearer", "name": "Bearer User"}


def test_auth_with_cookie():
    """
    Test que l'API accepte un JWT dans un cookie HttpOnly
    """
    access_token = create_access_token("member_cookie", "li-token")

    cookie_client = TestClient(app)
    cookie_client.cookies.set("access_token", access_token)
    response = cookie_client.get("/api/accounts/me")

    assert response.status_code == 200
    assert response.json()["member_id"] == "member_cookie"


def test_auth_bearer_has_priority_over_cookie():
    """
    Test que si Bearer ET cookie sont présents, Bearer a priorité
    """
    token_bearer = create_access_token("member_bearer", "li-token-1")
    token_cookie = create_access_token("member_cookie", "li-token-2")

    both_client = TestClient(app)
    both_client.cookies.set("access_token", token_cookie)
    response = both_client.get(
        "/api/accounts/me",
        headers={"Authorization": f"Bearer {token_bearer}"},
    )

    assert response.status_code == 200
    assert response.json()["member_id"] == "member_bearer"


def test_missing_or_invalid_token_is_rejected():
    response = TestClient(app).get("/api/accounts/me")
    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"

    response = client.get("/api/accounts/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_expired_token_is_rejected():
    expired = create_access_token("member_123", "li-token", expires_delta=timedelta(minutes=-5))

    response = client.get("/api/accounts/me", headers={"Authorization": f"Bearer {expired}"})

    assert response.status_code == 401


def test_token_without_linkedin_claim_is_rejected():
    forged = jwt.encode(
        {"sub": "member_123", "aud": "api", "iss": settings.JWT_ISSUER},
        settings.SECRET_KEY,
        algorithm=ALGORITHM,
    )

    response = client.get("/api/accounts/me", headers={"Authorization": f"Bearer {forged}"})

    assert response.status_code == 401


def test_linkedin_token_is_encrypted_in_the_jwt():
    token = create_access_token("member_123", "li-secret-token")

    payload = verify_token(token)

    assert payload["sub"] == "member_123"
    assert "li-secret-token" not in token
    assert decrypt_token(payload["lit"]) == "li-secret-token"


def test_linkedin_token_reaches_the_upstream_call(api_client, access_token):
    handler = RecordingHandler(lambda request: httpx.Response(200, json={"elements": [
        {"id": 111, "name": "Acme", "currency": "EUR", "status": "ACTIVE"},
    ]}))
    test_client = api_client(handler)

    response = test_client.get(
        "/api/accounts",
        headers={"Authorization": f"Bearer {access_token}"},
        follow_redirects=False,  # pas de redirection 307 vers "/api/accounts/"
    )

    assert response.status_code == 200
    assert response.json() == {
        "accounts": [{"id": "111", "name": "Acme", "currency": "EUR", "status": "ACTIVE"}],
        "count": 1,
    }
    assert handler.requests[0].headers["Authorization"] == "Bearer li-test-token"


def test_expired_linkedin_token_maps_to_401(api_client, auth_headers):
    test_client = api_client(lambda request: httpx.Response(401, json={"message": "Expired"}))

    response = test_client.get("/api/accounts", headers=auth_headers)

    assert response.status_code == 401
    assert "sign in again" in response.json()["detail"]


def test_other_linkedin_errors_map_to_502(api_client, auth_headers):
    test_client = api_client(lambda request: httpx.Response(403, json={"message": "Forbidden"}))

    response = test_client.get("/api/accounts", headers=auth_headers)

    assert response.status_code == 502
