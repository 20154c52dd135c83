"""Score cache administration endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from scenario_scoring.core.logging import get_logger
from scenario_scoring.schemas.scenarios import (
    AnalogCacheStatusSchema,
    CacheStatusResponse,
    ClearCacheResponse,
    VersionStatsSchema,
)
from scenario_scoring.services.score_cache import AnalogScoreCache

from ..dependencies import score_cache


router = APIRouter(prefix="/admin")

logger = get_logger("api.admin_cache")


@router.get(
    "/cache-status",
    response_model=CacheStatusResponse,
    summary="Score cache population status",
)
async def cache_status(
    cache: AnalogScoreCache = Depends(score_cache),
) -> CacheStatusResponse:
    report = await cache.status()
    return CacheStatusResponse(
        status=report.status,
        current_version=report.version,
        total_entries=report.total_entries,
        expected_entries=report.expected_entries,
        analogs=[AnalogCacheStatusSchema.from_status(a) for a in report.analogs],
        statistics=[VersionStatsSchema.from_stats(s) for s in report.statistics],
    )


@router.post(
    "/clear-cache",
    response_model=ClearCacheResponse,
    summary="Delete every cached score",
)
async def clear_cache(
    cache: AnalogScoreCache = Depends(score_cache),
) -> ClearCacheResponse:
    deleted = await cache.clear_all()
    logger.warning(f"Score cache cleared by admin request ({deleted} rows)")
    return ClearCacheResponse(
        message=f"Score cache cleared ({deleted} entries removed)",
        deleted=deleted,
    )


@router.get(
    "/clear-cache",
    response_model=ClearCacheResponse,
    summary="Delete every cached score",
)
async def clear_cache_get(
    cache: AnalogScoreCache = Depends(score_cache),
) -> ClearCacheResponse:
    return await clear_cache(cache)
