"""
Score cache access layer.

Wraps the analog_score_cache repository with the completeness rules the
request path relies on:

- ``lookup`` reports ``found`` only when every expected portfolio has a row
  for the analog at the requested version; partial sets are misses.
- ``write`` upserts and is reserved for the offline population job.
- ``clear_all`` wipes every row of every version.

The cache version is an explicit constructor argument, so several versions
can be exercised side by side.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from scenario_scoring.core.logging import get_logger
from scenario_scoring.database.orm import AnalogScoreCacheEntry
from scenario_scoring.domain.analogs import HistoricalAnalog, get_analog
from scenario_scoring.domain.portfolio import CachedPortfolioScore, Holding, ScoreResult
from scenario_scoring.repositories import analog_score_cache_orm as store
from scenario_scoring.repositories.analog_score_cache_orm import VersionStats

logger = get_logger("services.score_cache")

CacheStatus = Literal["ready", "partial", "empty"]


@dataclass(frozen=True)
class CacheLookupResult:
    found: bool
    scores: list[CachedPortfolioScore] = field(default_factory=list)


@dataclass(frozen=True)
class AnalogCacheStatus:
    analog_id: str
    analog_name: str
    count: int
    expected: int
    last_updated: datetime | None

    @property
    def complete(self) -> bool:
        return self.count >= self.expected


@dataclass(frozen=True)
class CacheStatusReport:
    status: CacheStatus
    version: int
    total_entries: int
    expected_entries: int
    analogs: list[AnalogCacheStatus]
    statistics: list[VersionStats]


def entry_to_cached_score(entry: AnalogScoreCacheEntry) -> CachedPortfolioScore:
    """Rebuild the domain object from a stored row."""
    holdings = tuple(Holding.from_dict(h) for h in (entry.holdings or []))
    result = ScoreResult(
        portfolio_id=entry.portfolio_id,
        portfolio_name=entry.portfolio_name,
        score=int(entry.score),
        portfolio_return=float(entry.portfolio_return),
        benchmark_return=float(entry.benchmark_return),
        outperformance=float(entry.outperformance),
        portfolio_drawdown=float(entry.portfolio_drawdown),
        benchmark_drawdown=float(entry.benchmark_drawdown),
        return_score=float(entry.return_score),
        drawdown_score=float(entry.drawdown_score),
        label=entry.label,
        color=entry.color,
        holdings=holdings,
        estimated_upside=(
            float(entry.estimated_upside) if entry.estimated_upside is not None else None
        ),
        estimated_downside=(
            float(entry.estimated_downside) if entry.estimated_downside is not None else None
        ),
    )
    return CachedPortfolioScore(
        analog_id=entry.analog_id,
        portfolio_id=entry.portfolio_id,
        version=int(entry.version),
        result=result,
        updated_at=entry.updated_at,
    )


def score_to_row(
    analog_id: str,
    portfolio_id: str,
    version: int,
    result: ScoreResult,
    analog: HistoricalAnalog | None = None,
) -> dict:
    return {
        "analog_id": analog_id,
        "portfolio_id": portfolio_id,
        "version": version,
        "portfolio_name": result.portfolio_name,
        "analog_name": analog.name if analog else None,
        "analog_period": analog.period if analog else None,
        "score": result.score,
        "label": result.label,
        "color": result.color,
        "portfolio_return": result.portfolio_return,
        "benchmark_return": result.benchmark_return,
        "outperformance": result.outperformance,
        "portfolio_drawdown": result.portfolio_drawdown,
        "benchmark_drawdown": result.benchmark_drawdown,
        "return_score": result.return_score,
        "drawdown_score": result.drawdown_score,
        "estimated_upside": result.estimated_upside,
        "estimated_downside": result.estimated_downside,
        "holdings": [h.to_dict() for h in result.holdings],
    }


class AnalogScoreCache:
    """
    Versioned cache of portfolio scores per analog.

    Args:
        version: Format version used when callers don't pass one
        portfolio_ids: Portfolios a complete analog entry must cover
        analog_ids: Analogs a fully populated cache must cover
    """

    def __init__(
        self,
        version: int,
        portfolio_ids: Sequence[str],
        analog_ids: Sequence[str],
    ):
        if not portfolio_ids:
            raise ValueError("AnalogScoreCache needs at least one portfolio id")
        self.version = version
        self.portfolio_ids = list(portfolio_ids)
        self.analog_ids = list(analog_ids)

    @property
    def expected_per_analog(self) -> int:
        return len(self.portfolio_ids)

    @property
    def expected_entries(self) -> int:
        return len(self.analog_ids) * len(self.portfolio_ids)

    def _version(self, version: int | None) -> int:
        return self.version if version is None else version

    async def lookup(self, analog_id: str, version: int | None = None) -> CacheLookupResult:
        """Cached scores for an analog; ``found`` only when the set is complete."""
        resolved = self._version(version)
        entries = await store.get_entries(analog_id, resolved, self.portfolio_ids)
        scores = [entry_to_cached_score(e) for e in entries]

        if len(scores) != self.expected_per_analog:
            logger.info(
                f"Score cache miss for {analog_id} v{resolved}: "
                f"{len(scores)}/{self.expected_per_analog} portfolios cached"
            )
            return CacheLookupResult(found=False, scores=scores)

        logger.debug(f"Score cache hit for {analog_id} v{resolved}")
        return CacheLookupResult(found=True, scores=scores)

    async def get(
        self, analog_id: str, portfolio_id: str, version: int | None = None
    ) -> CachedPortfolioScore | None:
        entry = await store.get_entry(analog_id, portfolio_id, self._version(version))
        return entry_to_cached_score(entry) if entry is not None else None

    async def write(
        self,
        analog_id: str,
        portfolio_id: str,
        result: ScoreResult,
        version: int | None = None,
    ) -> None:
        """Upsert one score. Only the population job should call this."""
        resolved = self._version(version)
        row = score_to_row(analog_id, portfolio_id, resolved, result, get_analog(analog_id))
        await store.upsert_entry(row)
        logger.debug(f"Cached {portfolio_id} score for {analog_id} v{resolved}")

    async def clear_all(self) -> int:
        """Delete every cached row of every version."""
        deleted = await store.delete_all()
        logger.info(f"Score cache cleared ({deleted} rows)")
        return deleted

    async def stats(self) -> list[VersionStats]:
        return await store.get_version_stats()

    async def is_populated(self, version: int | None = None) -> bool:
        """True when every analog has every portfolio cached at this version."""
        count = await store.count_entries(
            self._version(version), self.analog_ids, self.portfolio_ids
        )
        return count >= self.expected_entries

    async def analog_status(self, version: int | None = None) -> list[AnalogCacheStatus]:
        """Per-analog row counts in registry order."""
        counts = await store.get_analog_counts(self._version(version), self.portfolio_ids)
        report = []
        for analog_id in self.analog_ids:
            analog = get_analog(analog_id)
            entry = counts.get(analog_id)
            report.append(
                AnalogCacheStatus(
                    analog_id=analog_id,
                    analog_name=analog.name if analog else analog_id,
                    count=entry.count if entry else 0,
                    expected=self.expected_per_analog,
                    last_updated=entry.last_updated if entry else None,
                )
            )
        return report

    async def status(self, version: int | None = None) -> CacheStatusReport:
        resolved = self._version(version)
        analogs = await self.analog_status(resolved)
        statistics = await self.stats()
        total = sum(a.count for a in analogs)

        if total == 0:
            status: CacheStatus = "empty"
        elif total >= self.expected_entries:
            status = "ready"
        else:
            status = "partial"

        return CacheStatusReport(
            status=status,
            version=resolved,
            total_entries=total,
            expected_entries=self.expected_entries,
            analogs=analogs,
            statistics=statistics,
        )
