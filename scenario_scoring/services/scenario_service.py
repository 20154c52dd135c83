"""
Scenario scoring orchestrator.

Request-time flow for one analog:

1. Resolve the analog (unknown ids are client errors).
2. Serve the cached score set when it is complete for the requested version.
3. Otherwise score every cached-catalog portfolio concurrently. Each
   computation is isolated and time-bounded; failures are logged and
   dropped, and only a fan-out where everything failed is an error.

Computed results are never written back from here. Persisting scores is the
population job's responsibility.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Literal, Sequence

from scenario_scoring.core.classification import (
    AssetClassWeight,
    aggregate_by_asset_class,
    is_aggregate_eligible,
)
from scenario_scoring.core.config import settings
from scenario_scoring.core.exceptions import (
    ComputationFailedError,
    NotFoundError,
    UnknownAnalogError,
)
from scenario_scoring.core.logging import get_logger
from scenario_scoring.domain import catalog
from scenario_scoring.domain.analogs import HistoricalAnalog, get_analog
from scenario_scoring.domain.portfolio import PortfolioDefinition, ScoreResult
from scenario_scoring.scoring.engine import PortfolioScorer

from .score_cache import AnalogScoreCache

logger = get_logger("services.scenarios")

ScoreSource = Literal["cache", "computed"]


@dataclass(frozen=True)
class AnalogScores:
    analog: HistoricalAnalog
    portfolios: list[ScoreResult]
    source: ScoreSource
    compute_time_ms: int = 0


@dataclass(frozen=True)
class PortfolioOutcome:
    """Result of one fan-out computation."""

    portfolio: PortfolioDefinition
    result: ScoreResult | None = None
    error: BaseException | None = field(default=None, compare=False)

    @property
    def ok(self) -> bool:
        return self.result is not None


def asset_class_view(result: ScoreResult) -> list[AssetClassWeight] | None:
    """Asset-class breakdown for aggregate-eligible portfolios, else None."""
    if not is_aggregate_eligible(result.portfolio_name):
        return None
    return aggregate_by_asset_class(result.holdings)


class ScenarioScoringService:
    """
    Serves portfolio scores per analog, cache first.

    Usage:
        service = ScenarioScoringService(cache=score_cache, scorer=scorer)
        scores = await service.get_scores_for_analog("covid-crash")
    """

    def __init__(
        self,
        cache: AnalogScoreCache,
        scorer: PortfolioScorer,
        portfolios: Sequence[PortfolioDefinition] | None = None,
        benchmark: PortfolioDefinition | None = None,
        timeout_seconds: float | None = None,
    ):
        self.cache = cache
        self.scorer = scorer
        self.portfolios = list(portfolios or catalog.SCORED_PORTFOLIOS)
        self.benchmark = benchmark or catalog.benchmark_portfolio(settings.benchmark_ticker)
        self.timeout_seconds = timeout_seconds or settings.scoring_timeout_seconds
        self._order = {p.id: i for i, p in enumerate(self.portfolios)}

    def resolve_analog(self, analog_id: str | None) -> HistoricalAnalog:
        analog = get_analog(analog_id)
        if analog is None:
            raise UnknownAnalogError(analog_id or "")
        return analog

    def _in_catalog_order(self, results: Sequence[ScoreResult]) -> list[ScoreResult]:
        return sorted(results, key=lambda r: self._order.get(r.portfolio_id, len(self._order)))

    async def _score_one(
        self, analog: HistoricalAnalog, portfolio: PortfolioDefinition
    ) -> ScoreResult:
        return await asyncio.wait_for(
            self.scorer.score(analog.id, portfolio, self.benchmark),
            timeout=self.timeout_seconds,
        )

    async def score_portfolios(
        self,
        analog: HistoricalAnalog,
        portfolios: Sequence[PortfolioDefinition] | None = None,
    ) -> list[PortfolioOutcome]:
        """Score portfolios concurrently; failures are captured per portfolio."""
        targets = list(portfolios or self.portfolios)
        results = await asyncio.gather(
            *(self._score_one(analog, p) for p in targets),
            return_exceptions=True,
        )

        outcomes: list[PortfolioOutcome] = []
        for portfolio, result in zip(targets, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                reason = (
                    f"timed out after {self.timeout_seconds:.0f}s"
                    if isinstance(result, asyncio.TimeoutError)
                    else str(result)
                )
                logger.warning(
                    f"Scoring {portfolio.id} against {analog.id} failed: {reason}",
                    extra={"analog_id": analog.id, "portfolio_id": portfolio.id},
                )
                outcomes.append(PortfolioOutcome(portfolio=portfolio, error=result))
            else:
                outcomes.append(PortfolioOutcome(portfolio=portfolio, result=result))
        return outcomes

    async def get_scores_for_analog(
        self, analog_id: str | None, version: int | None = None
    ) -> AnalogScores:
        """
        Scores of every catalog portfolio for one analog.

        Raises:
            UnknownAnalogError: analog_id is not registered.
            StoreError: the cache store could not be read.
            ComputationFailedError: no portfolio could be scored on demand.
        """
        started = time.monotonic()
        analog = self.resolve_analog(analog_id)

        lookup = await self.cache.lookup(analog.id, version)
        if lookup.found:
            portfolios = self._in_catalog_order([s.to_score_result() for s in lookup.scores])
            return AnalogScores(
                analog=analog,
                portfolios=portfolios,
                source="cache",
                compute_time_ms=int((time.monotonic() - started) * 1000),
            )

        outcomes = await self.score_portfolios(analog)
        computed = [o.result for o in outcomes if o.result is not None]
        if not computed:
            raise ComputationFailedError(
                message=f"Failed to compute scores for {analog.name}",
                details={
                    "analog_id": analog.id,
                    "failed_portfolios": [o.portfolio.id for o in outcomes],
                },
            )

        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            f"Computed {len(computed)}/{len(outcomes)} scores for {analog.id} in {elapsed_ms}ms"
        )
        return AnalogScores(
            analog=analog,
            portfolios=computed,
            source="computed",
            compute_time_ms=elapsed_ms,
        )

    async def get_portfolio_score(
        self, analog_id: str | None, portfolio_id: str, version: int | None = None
    ) -> tuple[ScoreResult, ScoreSource]:
        """Score of a single catalog portfolio, cache first where it is cached."""
        analog = self.resolve_analog(analog_id)
        portfolio = catalog.get_portfolio(portfolio_id)
        if portfolio is None:
            raise NotFoundError(
                message=f"Unknown portfolio: {portfolio_id}",
                details={"portfolio_id": portfolio_id},
            )

        if portfolio.id in self.cache.portfolio_ids:
            cached = await self.cache.get(analog.id, portfolio.id, version)
            if cached is not None:
                return cached.to_score_result(), "cache"

        result = await self._score_one(analog, portfolio)
        return result, "computed"


_instance: ScenarioScoringService | None = None


def get_scenario_service() -> ScenarioScoringService:
    """Process-wide service wired from settings."""
    global _instance
    if _instance is None:
        from scenario_scoring.domain.analogs import analog_ids
        from scenario_scoring.repositories.portfolio_holdings_orm import (
            get_portfolio_holdings,
        )

        from .data_providers import build_default_provider

        cache = AnalogScoreCache(
            version=settings.score_cache_version,
            portfolio_ids=catalog.scored_portfolio_ids(),
            analog_ids=analog_ids(),
        )
        scorer = PortfolioScorer(
            provider=build_default_provider(),
            holdings_resolver=get_portfolio_holdings,
        )
        _instance = ScenarioScoringService(cache=cache, scorer=scorer)
    return _instance
