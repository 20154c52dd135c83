"""
Offline population of the analog score cache.

Analogs are processed one at a time; the portfolios of each analog are scored
concurrently. Failed portfolios are logged and skipped so a partial run still
persists what it could, and the next run fills the gaps.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from scenario_scoring.core.exceptions import UnknownAnalogError
from scenario_scoring.core.logging import get_logger
from scenario_scoring.domain.analogs import HistoricalAnalog, get_analog, list_analogs

from .scenario_service import ScenarioScoringService

logger = get_logger("services.cache_population")


@dataclass
class PopulationSummary:
    version: int
    skipped: bool = False
    written: int = 0
    failed: int = 0
    analogs: list[str] = field(default_factory=list)
    failures: list[dict[str, str]] = field(default_factory=list)
    duration_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "skipped": self.skipped,
            "written": self.written,
            "failed": self.failed,
            "analogs": self.analogs,
            "failures": self.failures,
            "duration_ms": self.duration_ms,
        }


async def populate_score_cache(
    service: ScenarioScoringService,
    version: int | None = None,
    analog_id: str | None = None,
    force: bool = False,
) -> PopulationSummary:
    """
    Score and persist every (analog, portfolio) pair for a cache version.

    Args:
        service: Orchestrator whose cache and scorer are used
        version: Cache version to write (defaults to the cache's own)
        analog_id: Restrict the run to one analog
        force: Re-score even when the cache is already fully populated

    Raises:
        UnknownAnalogError: analog_id is given but not registered.
    """
    cache = service.cache
    resolved_version = cache.version if version is None else version
    summary = PopulationSummary(version=resolved_version)
    started = time.monotonic()

    if analog_id is not None:
        analog = get_analog(analog_id)
        if analog is None:
            raise UnknownAnalogError(analog_id)
        analogs: list[HistoricalAnalog] = [analog]
    else:
        analogs = list_analogs()
        if not force and await cache.is_populated(resolved_version):
            logger.info(f"Score cache v{resolved_version} already populated, skipping")
            summary.skipped = True
            return summary

    for analog in analogs:
        logger.info(f"Populating scores for {analog.id} (v{resolved_version})")
        outcomes = await service.score_portfolios(analog)

        for outcome in outcomes:
            if outcome.result is None:
                summary.failed += 1
                summary.failures.append(
                    {
                        "analog_id": analog.id,
                        "portfolio_id": outcome.portfolio.id,
                        "error": str(outcome.error),
                    }
                )
                continue

            await cache.write(
                analog.id, outcome.portfolio.id, outcome.result, resolved_version
            )
            summary.written += 1

        summary.analogs.append(analog.id)

    summary.duration_ms = int((time.monotonic() - started) * 1000)
    logger.info(
        f"Score cache v{resolved_version} population finished: "
        f"{summary.written} written, {summary.failed} failed in {summary.duration_ms}ms"
    )
    return summary
