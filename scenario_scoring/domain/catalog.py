"""
Static portfolio catalog.

Four allocation-style model portfolios are scored against every analog and
cached. Each asset class in an allocation is represented by one liquid proxy
ETF. The TIME portfolio is holdings-backed: its positions live in the
``portfolio_holdings`` table and are resolved when it is scored.
"""

from __future__ import annotations

from typing import Mapping

from scenario_scoring.core.classification import classify
from scenario_scoring.domain.portfolio import AssetClass, Holding, PortfolioDefinition


PROXY_TICKERS: dict[AssetClass, str] = {
    AssetClass.STOCKS: "SPY",
    AssetClass.BONDS: "AGG",
    AssetClass.COMMODITIES: "DBC",
    AssetClass.REAL_ESTATE: "VNQ",
    AssetClass.CASH: "CASH",
    AssetClass.HEDGES: "SH",
}

TIME_PORTFOLIO_ID = "time"
BENCHMARK_PORTFOLIO_ID = "benchmark"


def allocation_portfolio(
    portfolio_id: str,
    name: str,
    allocation: Mapping[AssetClass, float],
    description: str = "",
) -> PortfolioDefinition:
    """Build a portfolio holding one proxy ticker per allocated asset class."""
    holdings = tuple(
        Holding(ticker=PROXY_TICKERS[asset_class], weight=weight, asset_class=asset_class)
        for asset_class, weight in allocation.items()
        if weight > 0
    )
    return PortfolioDefinition(
        id=portfolio_id,
        name=name,
        holdings=holdings,
        description=description,
    )


MAX_GROWTH = allocation_portfolio(
    "max-growth",
    "Max Growth",
    {
        AssetClass.STOCKS: 0.835,
        AssetClass.HEDGES: 0.043,
        AssetClass.BONDS: 0.050,
        AssetClass.COMMODITIES: 0.050,
        AssetClass.REAL_ESTATE: 0.0,
        AssetClass.CASH: 0.022,
    },
    description="Equity-heavy allocation for long horizons.",
)

GROWTH = allocation_portfolio(
    "growth",
    "Growth",
    {
        AssetClass.STOCKS: 0.756,
        AssetClass.HEDGES: 0.035,
        AssetClass.BONDS: 0.140,
        AssetClass.COMMODITIES: 0.050,
        AssetClass.REAL_ESTATE: 0.0,
        AssetClass.CASH: 0.020,
    },
)

MODERATE = allocation_portfolio(
    "moderate",
    "Moderate",
    {
        AssetClass.STOCKS: 0.607,
        AssetClass.HEDGES: 0.026,
        AssetClass.BONDS: 0.310,
        AssetClass.COMMODITIES: 0.040,
        AssetClass.REAL_ESTATE: 0.0,
        AssetClass.CASH: 0.017,
    },
)

MAX_INCOME = allocation_portfolio(
    "max-income",
    "Max Income",
    {
        AssetClass.STOCKS: 0.518,
        AssetClass.HEDGES: 0.017,
        AssetClass.BONDS: 0.410,
        AssetClass.COMMODITIES: 0.040,
        AssetClass.REAL_ESTATE: 0.0,
        AssetClass.CASH: 0.015,
    },
    description="Income-oriented allocation with the largest bond sleeve.",
)

TIME_PORTFOLIO = PortfolioDefinition(
    id=TIME_PORTFOLIO_ID,
    name="TIME Portfolio",
    live_holdings=True,
    description="Flagship fund; holdings are loaded from the holdings table.",
)

# Portfolios covered by the score cache, in presentation order
SCORED_PORTFOLIOS: tuple[PortfolioDefinition, ...] = (
    MAX_GROWTH,
    GROWTH,
    MODERATE,
    MAX_INCOME,
)

ALL_PORTFOLIOS: tuple[PortfolioDefinition, ...] = SCORED_PORTFOLIOS + (TIME_PORTFOLIO,)


def get_portfolio(portfolio_id: str) -> PortfolioDefinition | None:
    for portfolio in ALL_PORTFOLIOS:
        if portfolio.id == portfolio_id:
            return portfolio
    return None


def scored_portfolio_ids() -> list[str]:
    return [p.id for p in SCORED_PORTFOLIOS]


def benchmark_portfolio(ticker: str) -> PortfolioDefinition:
    """Single-holding benchmark on ``ticker``."""
    symbol = ticker.strip().upper()
    return PortfolioDefinition(
        id=BENCHMARK_PORTFOLIO_ID,
        name=f"Benchmark ({symbol})",
        holdings=(Holding(ticker=symbol, weight=1.0, asset_class=classify(symbol)),),
    )
