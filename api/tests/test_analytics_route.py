"""
Integration Test: POST /api/analytics

Vérifie que:
1. Le pipeline complet renvoie current / previous / topPerformers / budgetPacing
2. Une page LinkedIn en échec donne une réponse 200 partielle (pas une erreur)
3. Les entrées invalides sont rejetées AVANT tout appel LinkedIn
"""
import asyncio

import httpx
import pytest

from linkedin_dashboard.config import settings

from conftest import DASHBOARD_ORIGIN, RecordingHandler, analytics_element

CURRENT = {"start": "2025-01-01", "end": "2025-01-31"}
PREVIOUS = {"start": "2024-12-01", "end": "2024-12-31"}


def _body(**overrides):
    body = {"accountIds": ["111"], "currentRange": CURRENT, "previousRange": PREVIOUS}
    body.update(overrides)
    return body


def _by_period(current_rows, previous_rows):
    """Handler: rows différentes selon la période demandée (mois de début)"""
    def handler(request):
        is_current = "year:2025" in request.url.params["dateRange"].split("end")[0]
        rows = current_rows if is_current else previous_rows
        return httpx.Response(200, json={"elements": rows if request.url.params["start"] == "0" else []})
    return RecordingHandler(handler)


def test_analytics_end_to_end(api_client, auth_headers):
    handler = _by_period(
        [
            analytics_element("111", impressions=1000, clicks=20, cost=50),
            analytics_element("222", impressions=2000, clicks=10, cost=30),
        ],
        [analytics_element("111", impressions=500, clicks=5, cost=10, leads=2)],
    )
    client = api_client(handler)

    response = client.post("/api/analytics", json=_body(budget=1000), headers=auth_headers)

    assert response.status_code == 200
    data = response.json()

    assert data["current"]["impressions"] == 3000
    assert data["current"]["clicks"] == 30
    assert data["current"]["spent"] == pytest.approx(80)
    assert data["current"]["ctr"] == pytest.approx(1.0)
    assert data["current"]["cpm"] == pytest.approx(26.6667, rel=1e-4)
    assert data["current"]["cpc"] == pytest.approx(2.6667, rel=1e-4)

    assert data["previous"]["impressions"] == 500
    assert data["previous"]["cpl"] == pytest.approx(5.0)

    assert [row["id"] for row in data["topPerformers"]] == ["222", "111"]
    assert data["budgetPacing"]["budget"] == 1000
    assert data["budgetPacing"]["spent"] == pytest.approx(80)
    assert data["budgetPacing"]["daysTotal"] == 31
    assert data["pivot"] == {"level": "ACCOUNT", "breakdown": "CAMPAIGN"}
    assert data["partial"] is False

    # Une requête par période (une seule page chacune)
    assert len(handler.requests) == 2
    assert all(r.url.params["accounts"] == "List(urn:li:sponsoredAccount:111)" for r in handler.requests)


def test_accounts_are_fetched_separately_and_merged(api_client, auth_headers):
    def handler(request):
        account = request.url.params["accounts"]
        if "111" in account:
            rows = [analytics_element("5", impressions=100, clicks=1, cost=1)]
        else:
            rows = [analytics_element("5", impressions=50, clicks=1, cost=1),
                    analytics_element("6", impressions=10)]
        return httpx.Response(200, json={"elements": rows})

    handler = RecordingHandler(handler)
    client = api_client(handler)

    response = client.post("/api/analytics", json=_body(accountIds=["111", "222"]), headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["current"]["impressions"] == 160
    top = data["topPerformers"][0]
    assert top["id"] == "5"
    assert top["impressions"] == 150
    assert top["clicks"] == 2
    assert top["ctr"] == pytest.approx(2 / 150 * 100)
    assert [row["id"] for row in data["topPerformers"]] == ["5", "6"]
    # 2 comptes x 2 périodes
    assert len(handler.requests) == 4


def test_most_specific_selection_drives_the_query(api_client, auth_headers):
    handler = _by_period([analytics_element("900", impressions=10, urn_type="sponsoredCreative")], [])
    client = api_client(handler)

    response = client.post(
        "/api/analytics",
        json=_body(campaignIds=["5"], adIds=["900"]),
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert response.json()["pivot"] == {"level": "AD", "breakdown": "CREATIVE"}
    assert response.json()["topPerformers"][0]["id"] == "900"
    params = handler.requests[0].url.params
    assert params["creatives"] == "List(urn:li:sponsoredCreative:900)"
    assert params["pivot"] == "CREATIVE"
    assert "accounts" not in params


def test_failed_page_returns_partial_success(api_client, auth_headers):
    def handler(request):
        start = int(request.url.params["start"])
        if start == 100:
            return httpx.Response(502, text="bad gateway")
        rows = [analytics_element(str(i), impressions=1, clicks=0, cost=0) for i in range(100)]
        return httpx.Response(200, json={"elements": rows})

    client = api_client(RecordingHandler(handler))

    response = client.post("/api/analytics", json=_body(), headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["partial"] is True
    # Page 1 seulement (100 rows x 1 impression), pour chaque période
    assert data["current"]["impressions"] == 100
    assert data["previous"]["impressions"] == 100


def test_upstream_down_gives_zeros_not_an_error(api_client, auth_headers):
    client = api_client(lambda request: httpx.Response(500, text="down"))

    response = client.post("/api/analytics", json=_body(), headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["partial"] is True
    assert data["current"]["impressions"] == 0
    assert data["current"]["ctr"] == 0
    assert data["topPerformers"] == []


def test_expired_linkedin_token_forces_sign_in(api_client, auth_headers):
    """Un 401 LinkedIn n'est pas une page en échec: pas de métriques à zéro, reconnexion"""
    client = api_client(lambda request: httpx.Response(401, json={"message": "Invalid access token"}))

    response = client.post("/api/analytics", json=_body(accountIds=["111", "222"]), headers=auth_headers)

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"
    assert "sign in again" in response.json()["detail"]


def test_linkedin_calls_are_bounded(api_client, auth_headers):
    """12 comptes x 2 périodes: jamais plus de LINKEDIN_MAX_CONCURRENCY appels en vol"""
    state = {"in_flight": 0, "peak": 0, "calls": 0}

    async def handler(request):
        state["in_flight"] += 1
        state["calls"] += 1
        state["peak"] = max(state["peak"], state["in_flight"])
        await asyncio.sleep(0.02)
        state["in_flight"] -= 1
        return httpx.Response(200, json={"elements": [analytics_element("5", impressions=1)]})

    client = api_client(handler)
    account_ids = [str(100 + i) for i in range(12)]

    response = client.post("/api/analytics", json=_body(accountIds=account_ids), headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["current"]["impressions"] == 12
    assert state["calls"] == 24
    assert 1 < state["peak"] <= settings.LINKEDIN_MAX_CONCURRENCY


def test_empty_account_selection_is_rejected_before_any_call(api_client, auth_headers):
    handler = RecordingHandler(lambda request: httpx.Response(200, json={"elements": []}))
    client = api_client(handler)

    response = client.post("/api/analytics", json=_body(accountIds=[]), headers=auth_headers)

    assert response.status_code == 400
    assert "accountIds" in response.json()["detail"]

    response = client.post("/api/analytics", json=_body(accountIds=["  ", ""]), headers=auth_headers)
    assert response.status_code == 400
    assert handler.requests == []


def test_invalid_date_range_is_rejected(api_client, auth_headers):
    client = api_client(lambda request: httpx.Response(200, json={"elements": []}))

    bad_range = {"start": "2025-02-01", "end": "2025-01-01"}
    response = client.post("/api/analytics", json=_body(currentRange=bad_range), headers=auth_headers)
    assert response.status_code == 422

    response = client.post("/api/analytics", json=_body(previousRange={"start": "not-a-date", "end": "2025-01-01"}),
                           headers=auth_headers)
    assert response.status_code == 422


def test_negative_budget_is_rejected(api_client, auth_headers):
    client = api_client(lambda request: httpx.Response(200, json={"elements": []}))
    response = client.post("/api/analytics", json=_body(budget=-5), headers=auth_headers)
    assert response.status_code == 422


def test_analytics_requires_authentication(api_client):
    client = api_client(lambda request: httpx.Response(200, json={"elements": []}))

    response = client.post("/api/analytics", json=_body(), headers={"Origin": DASHBOARD_ORIGIN})

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"
