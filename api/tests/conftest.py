"""
Fixtures partagées

L'environnement doit être posé AVANT l'import de linkedin_dashboard (Settings() au chargement).
LinkedIn est simulé avec httpx.MockTransport: aucun appel réseau réel.
"""
import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ.setdefault("TOKEN_ENCRYPTION_KEY", "MDEyMzQ1Njc4OWFiY2RlZjAxMjM0NTY3ODlhYmNkZWY=")
os.environ.setdefault("LINKEDIN_CLIENT_ID", "test-client-id")
os.environ.setdefault("LINKEDIN_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("LINKEDIN_REDIRECT_URI", "http://testserver/auth/linkedin/callback")
os.environ.setdefault("DASHBOARD_URL", "http://localhost:3000/")
os.environ.setdefault("ANTHROPIC_API_KEY", "")
os.environ.setdefault("DEBUG", "true")

import httpx
import pytest
from fastapi.testclient import TestClient

from linkedin_dashboard.main import app
from linkedin_dashboard.services.linkedin_client import LinkedInClient, get_linkedin_client
from linkedin_dashboard.utils.jwt import create_access_token

DASHBOARD_ORIGIN = "http://localhost:3000"


def analytics_element(entity_id, impressions=0, clicks=0, cost=0, leads=0,
                      likes=0, comments=0, shares=0, follows=0, other=0,
                      urn_type="sponsoredCampaign"):
    """Row adAnalytics telle que renvoyée par LinkedIn"""
    element = {
        "impressions": impressions,
        "clicks": clicks,
        "costInLocalCurrency": str(cost),
        "oneClickLeads": leads,
        "likes": likes,
        "comments": comments,
        "shares": shares,
        "follows": follows,
        "otherEngagements": other,
    }
    if entity_id is not None:
        element["pivotValues"] = [f"urn:li:{urn_type}:{entity_id}"]
    return element


class RecordingHandler:
    """Handler MockTransport qui garde les requêtes reçues"""

    def __init__(self, handler):
        self.handler = handler
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)


def make_linkedin_client(handler) -> LinkedInClient:
    return LinkedInClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def access_token():
    """JWT valide embarquant un faux token LinkedIn"""
    return create_access_token("member_123", "li-test-token", name="Test Member")


@pytest.fixture
def auth_headers(access_token):
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
def api_client():
    """
    TestClient + fonction pour brancher un handler LinkedIn simulé

    Usage:
        client = api_client(handler)
    """
    def _make(handler=None):
        if handler is not None:
            app.dependency_overrides[get_linkedin_client] = lambda: make_linkedin_client(handler)
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()
