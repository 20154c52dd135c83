"""Health check endpoints."""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter

from scenario_scoring.cache.client import valkey_healthcheck
from scenario_scoring.core.config import settings
from scenario_scoring.core.exceptions import ExternalServiceError
from scenario_scoring.database.connection import db_healthcheck
from scenario_scoring.schemas.common import HealthResponse


router = APIRouter(prefix="/health")


@router.get(
    "",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the health status of the API and its dependencies.",
)
async def health_check() -> HealthResponse:
    checks = {
        "database": await db_healthcheck(),
        "cache": await valkey_healthcheck(),
    }

    if all(checks.values()):
        status = "healthy"
    elif checks.get("database", False):
        status = "degraded"  # DB ok but cache down
    else:
        status = "unhealthy"

    return HealthResponse(
        status=status,
        version=settings.app_version,
        timestamp=datetime.now(UTC),
        checks=checks,
    )


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if the API is ready to accept traffic.",
)
async def readiness_check() -> dict:
    if not await db_healthcheck():
        raise ExternalServiceError(message="Database not ready")
    return {"status": "ready"}


@router.get(
    "/live",
    summary="Liveness check",
    description="Check if the API process is alive.",
)
async def liveness_check() -> dict:
    return {"status": "alive"}
