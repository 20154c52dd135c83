"""
Portfolio scoring against historical analogs.

A portfolio's window return and drawdown are the weight-weighted sums of its
holdings' figures (a linear approximation; correlation between holdings is
not modeled). Both are compared with the benchmark over the same window and
mapped to 0-100 sub-scores centered on 50:

    return_score   = clamp(50 + outperformance * 100 * return_sensitivity)
    drawdown_score = clamp(50 + drawdown_advantage * 100 * drawdown_sensitivity)

where ``drawdown_advantage`` is benchmark depth minus portfolio depth (depth
being the positive size of the peak-to-trough decline). The composite is the
weighted mean of the two, rounded half-up to an integer.

Changing any constant here changes cached results, so bump
``CURRENT_CACHE_VERSION`` alongside.
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Sequence

from scenario_scoring.core.config import settings
from scenario_scoring.core.exceptions import (
    DataUnavailableError,
    InsufficientDataError,
    UnknownAnalogError,
)
from scenario_scoring.core.logging import get_logger
from scenario_scoring.domain.analogs import HistoricalAnalog, get_analog
from scenario_scoring.domain.portfolio import (
    Holding,
    PortfolioDefinition,
    ScoreResult,
    normalize_weights,
)
from scenario_scoring.services.data_providers.base import (
    HistoricalDataProvider,
    ReturnAndDrawdown,
)


logger = get_logger("scoring")

MIN_SCORE = 0.0
MAX_SCORE = 100.0
MIDPOINT = 50.0


@dataclass(frozen=True)
class ScoreBand:
    min_score: int
    label: str
    color: str


# Highest band first; the last band must start at 0 so every score is covered
SCORE_BANDS: tuple[ScoreBand, ...] = (
    ScoreBand(90, "Excellent", "#10b981"),
    ScoreBand(75, "Strong", "#2dd4bf"),
    ScoreBand(60, "Moderate", "#f59e0b"),
    ScoreBand(0, "Weak", "#f87171"),
)


@dataclass
class ScoringConfig:
    """Tunable constants of the scoring formula."""

    return_sensitivity: float = 2.0
    drawdown_sensitivity: float = 2.0
    return_weight: float = 0.5
    drawdown_weight: float = 0.5
    # Width of the estimated outcome range around the window return
    estimate_spread: float = 0.36

    @classmethod
    def from_settings(cls) -> "ScoringConfig":
        return cls(
            return_sensitivity=settings.return_score_sensitivity,
            drawdown_sensitivity=settings.drawdown_score_sensitivity,
            return_weight=settings.return_score_weight,
            drawdown_weight=settings.drawdown_score_weight,
        )


def clamp_score(value: float) -> float:
    return max(MIN_SCORE, min(MAX_SCORE, value))


def compute_return_score(outperformance: float, sensitivity: float = 2.0) -> float:
    """Map outperformance to [0, 100]; zero outperformance maps to exactly 50."""
    return clamp_score(MIDPOINT + outperformance * 100.0 * sensitivity)


def compute_drawdown_score(
    portfolio_drawdown: float,
    benchmark_drawdown: float,
    sensitivity: float = 2.0,
) -> float:
    """Map drawdown advantage to [0, 100]; a shallower decline scores above 50.

    Depths are compared by magnitude, so either drawdown sign convention works.
    """
    advantage = abs(benchmark_drawdown) - abs(portfolio_drawdown)
    return clamp_score(MIDPOINT + advantage * 100.0 * sensitivity)


def composite_score(
    return_score: float,
    drawdown_score: float,
    return_weight: float = 0.5,
    drawdown_weight: float = 0.5,
) -> int:
    """Weighted mean of the sub-scores, rounded half-up and clipped to [0, 100]."""
    total_weight = return_weight + drawdown_weight
    if total_weight <= 0:
        raise ValueError("Score weights must sum to a positive value")
    if abs(total_weight - 1.0) > 0.01:
        return_weight /= total_weight
        drawdown_weight /= total_weight

    raw = return_weight * return_score + drawdown_weight * drawdown_score
    return int(clamp_score(math.floor(raw + 0.5)))


def score_band(score: float) -> ScoreBand:
    """Presentation band for a score. Total over [0, 100]."""
    bounded = clamp_score(score)
    for band in SCORE_BANDS:
        if bounded >= band.min_score:
            return band
    return SCORE_BANDS[-1]


def weighted_window_stats(
    holdings: Iterable[Holding],
    stats: dict[str, ReturnAndDrawdown],
) -> tuple[float, float]:
    """Weighted sums of holding returns and drawdowns."""
    total_return = 0.0
    total_drawdown = 0.0
    for holding in holdings:
        figures = stats[holding.ticker]
        total_return += holding.weight * figures.total_return
        total_drawdown += holding.weight * figures.drawdown
    return total_return, min(total_drawdown, 0.0)


def estimated_range(
    portfolio_return: float, portfolio_drawdown: float, spread: float = 0.36
) -> tuple[float, float]:
    """Rough (upside, downside) band around a window outcome."""
    upside = portfolio_return + spread
    if portfolio_return < 0:
        downside = -abs(portfolio_drawdown)
    else:
        downside = portfolio_return - spread
    return upside, downside


HoldingsResolver = Callable[[str], Awaitable[Sequence[Holding]]]


class PortfolioScorer:
    """
    Scores portfolios against registered analogs.

    Usage:
        scorer = PortfolioScorer(provider=build_default_provider())
        result = await scorer.score("covid-crash", MODERATE, benchmark)
    """

    def __init__(
        self,
        provider: HistoricalDataProvider,
        config: ScoringConfig | None = None,
        holdings_resolver: HoldingsResolver | None = None,
    ):
        self.provider = provider
        self.config = config or ScoringConfig.from_settings()
        self._holdings_resolver = holdings_resolver

    def _resolve_analog(self, analog_id: str) -> HistoricalAnalog:
        analog = get_analog(analog_id)
        if analog is None:
            raise UnknownAnalogError(analog_id)
        return analog

    async def _resolve_holdings(self, portfolio: PortfolioDefinition) -> list[Holding]:
        holdings: Sequence[Holding] = portfolio.holdings
        if portfolio.live_holdings and not holdings:
            if self._holdings_resolver is None:
                raise InsufficientDataError(
                    message=f"No holdings source configured for {portfolio.name}",
                    details={"portfolio_id": portfolio.id},
                )
            holdings = await self._holdings_resolver(portfolio.id)

        try:
            return normalize_weights(holdings)
        except ValueError as e:
            raise InsufficientDataError(
                message=f"Portfolio {portfolio.name} has no weighted holdings",
                details={"portfolio_id": portfolio.id},
            ) from e

    async def _fetch_window_stats(
        self, tickers: Sequence[str], analog: HistoricalAnalog
    ) -> dict[str, ReturnAndDrawdown]:
        results = await asyncio.gather(
            *(
                self.provider.get_return_and_drawdown(ticker, analog.date_range)
                for ticker in tickers
            ),
            return_exceptions=True,
        )

        stats: dict[str, ReturnAndDrawdown] = {}
        for ticker, result in zip(tickers, results):
            if isinstance(result, DataUnavailableError):
                raise InsufficientDataError(
                    message=f"No {analog.name} history for {ticker}: {result.message}",
                    details={"ticker": ticker, "analog_id": analog.id},
                ) from result
            if isinstance(result, BaseException):
                raise result
            stats[ticker] = result
        return stats

    async def score(
        self,
        analog_id: str,
        portfolio: PortfolioDefinition,
        benchmark: PortfolioDefinition,
    ) -> ScoreResult:
        """
        Score one portfolio against the benchmark over an analog window.

        Raises:
            UnknownAnalogError: analog_id is not registered.
            InsufficientDataError: a holding or benchmark window can't be built.
        """
        analog = self._resolve_analog(analog_id)
        holdings = await self._resolve_holdings(portfolio)
        benchmark_holdings = await self._resolve_holdings(benchmark)

        tickers = list(dict.fromkeys(h.ticker for h in (*holdings, *benchmark_holdings)))
        stats = await self._fetch_window_stats(tickers, analog)

        portfolio_return, portfolio_drawdown = weighted_window_stats(holdings, stats)
        benchmark_return, benchmark_drawdown = weighted_window_stats(
            benchmark_holdings, stats
        )
        return self.build_result(
            portfolio,
            holdings,
            portfolio_return=portfolio_return,
            portfolio_drawdown=portfolio_drawdown,
            benchmark_return=benchmark_return,
            benchmark_drawdown=benchmark_drawdown,
        )

    def build_result(
        self,
        portfolio: PortfolioDefinition,
        holdings: Sequence[Holding],
        *,
        portfolio_return: float,
        portfolio_drawdown: float,
        benchmark_return: float,
        benchmark_drawdown: float,
    ) -> ScoreResult:
        """Reduce window figures to a ScoreResult."""
        cfg = self.config
        outperformance = portfolio_return - benchmark_return
        return_score = compute_return_score(outperformance, cfg.return_sensitivity)
        drawdown_score = compute_drawdown_score(
            portfolio_drawdown, benchmark_drawdown, cfg.drawdown_sensitivity
        )
        score = composite_score(
            return_score, drawdown_score, cfg.return_weight, cfg.drawdown_weight
        )
        band = score_band(score)
        upside, downside = estimated_range(
            portfolio_return, portfolio_drawdown, cfg.estimate_spread
        )

        return ScoreResult(
            portfolio_id=portfolio.id,
            portfolio_name=portfolio.name,
            score=score,
            portfolio_return=portfolio_return,
            benchmark_return=benchmark_return,
            outperformance=outperformance,
            portfolio_drawdown=portfolio_drawdown,
            benchmark_drawdown=benchmark_drawdown,
            return_score=return_score,
            drawdown_score=drawdown_score,
            label=band.label,
            color=band.color,
            holdings=tuple(holdings),
            estimated_upside=upside,
            estimated_downside=downside,
        )
