"""Tests for health check API endpoints."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from fastapi import status
from fastapi.testclient import TestClient


DB_CHECK = "scenario_scoring.api.routes.health.db_healthcheck"
CACHE_CHECK = "scenario_scoring.api.routes.health.valkey_healthcheck"


class TestHealthEndpoint:
    """Tests for GET /health."""

    def test_health_all_ok(self, client: TestClient):
        """GET /health is healthy when database and cache respond."""
        with patch(DB_CHECK, AsyncMock(return_value=True)), patch(
            CACHE_CHECK, AsyncMock(return_value=True)
        ):
            response = client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "healthy"
        assert data["checks"] == {"database": True, "cache": True}
        assert "version" in data

    def test_health_degraded_without_cache(self, client: TestClient):
        """GET /health is degraded when only the cache is down."""
        with patch(DB_CHECK, AsyncMock(return_value=True)), patch(
            CACHE_CHECK, AsyncMock(return_value=False)
        ):
            response = client.get("/health")

        assert response.json()["status"] == "degraded"

    def test_health_unhealthy_without_database(self, client: TestClient):
        """GET /health is unhealthy when the database is down."""
        with patch(DB_CHECK, AsyncMock(return_value=False)), patch(
            CACHE_CHECK, AsyncMock(return_value=True)
        ):
            response = client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "unhealthy"


class TestReadinessEndpoint:
    """Tests for GET /health/ready."""

    def test_ready(self, client: TestClient):
        with patch(DB_CHECK, AsyncMock(return_value=True)):
            response = client.get("/health/ready")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"status": "ready"}

    def test_not_ready(self, client: TestClient):
        """GET /health/ready returns 503 while the database is unreachable."""
        with patch(DB_CHECK, AsyncMock(return_value=False)):
            response = client.get("/health/ready")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["success"] is False


class TestLivenessEndpoint:
    """Tests for GET /health/live."""

    def test_live_returns_alive_status(self, client: TestClient):
        response = client.get("/health/live")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "alive"

    def test_security_headers(self, client: TestClient):
        response = client.get("/health/live")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "X-Request-ID" in response.headers


class TestDbHealthcheck:
    """Tests for db_healthcheck function."""

    @pytest.mark.asyncio
    async def test_db_healthcheck_with_engine(self, db_engine):
        """db_healthcheck succeeds against a live engine."""
        from scenario_scoring.database.connection import db_healthcheck

        assert await db_healthcheck() is True

    @pytest.mark.asyncio
    async def test_db_healthcheck_failure(self):
        """db_healthcheck reports False instead of raising."""
        from scenario_scoring.database.connection import db_healthcheck

        with patch(
            "scenario_scoring.database.connection.init_sqlalchemy_engine",
            AsyncMock(side_effect=OSError("connection refused")),
        ):
            assert await db_healthcheck() is False
