"""Tests for the scenario scoring and cache admin endpoints."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from fastapi import status

from scenario_scoring.core.exceptions import StoreError
from scenario_scoring.repositories import analog_score_cache_orm as store
from scenario_scoring.services.cache_population import populate_score_cache


SCORES_URL = "/scenarios/scores-by-analog"


class TestScoresByAnalog:
    """Tests for POST /scenarios/scores-by-analog."""

    @pytest.mark.asyncio
    async def test_computed_scores(self, async_client):
        """An empty cache computes every catalog portfolio."""
        response = await async_client.post(SCORES_URL, json={"analogId": "covid-crash"})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["success"] is True
        assert data["source"] == "computed"
        assert data["analogName"] == "COVID Crash"
        assert data["analogPeriod"] == "2020-02-01 to 2020-03-31"
        assert [p["portfolioId"] for p in data["portfolios"]] == [
            "max-growth",
            "growth",
            "moderate",
            "max-income",
        ]
        assert all(0 <= p["score"] <= 100 for p in data["portfolios"])
        assert isinstance(data["computeTimeMs"], int)

    @pytest.mark.asyncio
    async def test_cached_scores_match_computed(self, async_client, service):
        computed = (
            await async_client.post(SCORES_URL, json={"analogId": "rate-shock"})
        ).json()
        await populate_score_cache(service, analog_id="rate-shock")

        cached = (
            await async_client.post(SCORES_URL, json={"analogId": "rate-shock"})
        ).json()

        assert cached["source"] == "cache"
        assert [p["score"] for p in cached["portfolios"]] == [
            p["score"] for p in computed["portfolios"]
        ]

    @pytest.mark.asyncio
    async def test_asset_class_breakdown(self, async_client):
        response = await async_client.post(SCORES_URL, json={"analogId": "covid-crash"})

        portfolio = response.json()["portfolios"][0]
        assert portfolio["assetClasses"][0] == {"assetClass": "stocks", "weight": 0.835}
        assert {"ticker", "weight", "assetClass"} == set(portfolio["holdings"][0])

    @pytest.mark.asyncio
    async def test_missing_analog_id(self, async_client):
        response = await async_client.post(SCORES_URL, json={})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "BAD_REQUEST"
        assert "analogId" in data["message"]

    @pytest.mark.asyncio
    async def test_blank_analog_id(self, async_client):
        response = await async_client.post(SCORES_URL, json={"analogId": "   "})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_unknown_analog(self, async_client, reference_provider):
        response = await async_client.post(SCORES_URL, json={"analogId": "not-an-analog"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "UNKNOWN_ANALOG"
        assert reference_provider.calls == 0

    @pytest.mark.asyncio
    async def test_malformed_body(self, async_client):
        response = await async_client.post(
            SCORES_URL,
            content=b"not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_store_failure(self, async_client):
        with patch.object(
            store, "get_entries", AsyncMock(side_effect=StoreError(message="down"))
        ):
            response = await async_client.post(SCORES_URL, json={"analogId": "covid-crash"})

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "STORE_ERROR"

    @pytest.mark.asyncio
    async def test_unexpected_error(self, async_client, service):
        with patch.object(
            service, "get_scores_for_analog", AsyncMock(side_effect=RuntimeError("boom"))
        ):
            response = await async_client.post(SCORES_URL, json={"analogId": "covid-crash"})

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_request_id_header(self, async_client):
        response = await async_client.post(
            SCORES_URL,
            json={"analogId": "covid-crash"},
            headers={"X-Request-ID": "req-123"},
        )

        assert response.headers["X-Request-ID"] == "req-123"


class TestPortfolioScore:
    """Tests for POST /scenarios/portfolio-score."""

    @pytest.mark.asyncio
    async def test_single_portfolio(self, async_client):
        response = await async_client.post(
            "/scenarios/portfolio-score",
            json={"analogId": "dot-com-bust", "portfolioId": "moderate"},
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["source"] == "computed"
        assert data["portfolio"]["portfolioId"] == "moderate"

    @pytest.mark.asyncio
    async def test_unknown_portfolio(self, async_client):
        response = await async_client.post(
            "/scenarios/portfolio-score",
            json={"analogId": "dot-com-bust", "portfolioId": "nope"},
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["success"] is False


class TestAnalogs:
    """Tests for GET /scenarios/analogs."""

    @pytest.mark.asyncio
    async def test_lists_registry(self, async_client):
        response = await async_client.get("/scenarios/analogs")

        assert response.status_code == status.HTTP_200_OK
        analogs = response.json()["analogs"]
        assert len(analogs) == 5
        assert analogs[0]["id"] == "2008-financial-crisis"
        assert analogs[0]["startDate"] == "2007-10-09"


class TestCacheAdmin:
    """Tests for the /admin cache endpoints."""

    @pytest.mark.asyncio
    async def test_status_empty(self, async_client):
        response = await async_client.get("/admin/cache-status")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "empty"
        assert data["currentVersion"] == 1
        assert data["totalEntries"] == 0
        assert data["expectedEntries"] == 20
        assert len(data["analogs"]) == 5
        assert not any(a["complete"] for a in data["analogs"])
        assert data["statistics"] == []

    @pytest.mark.asyncio
    async def test_status_ready(self, async_client, service):
        await populate_score_cache(service)

        data = (await async_client.get("/admin/cache-status")).json()

        assert data["status"] == "ready"
        assert data["totalEntries"] == 20
        assert all(a["complete"] for a in data["analogs"])
        assert data["statistics"][0]["version"] == 1
        assert data["statistics"][0]["entries"] == 20
        assert data["statistics"][0]["uniqueAnalogs"] == 5

    @pytest.mark.asyncio
    async def test_clear_cache(self, async_client, service):
        await populate_score_cache(service, analog_id="covid-crash")

        response = await async_client.post("/admin/clear-cache")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["success"] is True
        assert data["deleted"] == 4
        assert (await async_client.get("/admin/cache-status")).json()["status"] == "empty"

    @pytest.mark.asyncio
    async def test_clear_cache_get(self, async_client, service):
        await populate_score_cache(service, analog_id="covid-crash")

        response = await async_client.get("/admin/clear-cache")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["deleted"] == 4
        assert await store.count_entries(1) == 0
