"""Portfolio and score value types shared by scoring, cache and API layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Sequence


# Weights summing within this distance of 1.0 are left untouched
WEIGHT_TOLERANCE = 0.05


class AssetClass(str, Enum):
    """Coarse asset classes used for holdings and allocation maps."""

    STOCKS = "stocks"
    BONDS = "bonds"
    COMMODITIES = "commodities"
    CASH = "cash"
    REAL_ESTATE = "real-estate"
    HEDGES = "hedges"


@dataclass(frozen=True)
class Holding:
    """One position in a portfolio: ticker, fractional weight and asset class."""

    ticker: str
    weight: float
    asset_class: AssetClass

    def to_dict(self) -> dict[str, Any]:
        return {
            "ticker": self.ticker,
            "weight": self.weight,
            "asset_class": self.asset_class.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Holding":
        return cls(
            ticker=str(data["ticker"]),
            weight=float(data["weight"]),
            asset_class=AssetClass(data["asset_class"]),
        )


def normalize_weights(
    holdings: Sequence[Holding], tolerance: float = WEIGHT_TOLERANCE
) -> list[Holding]:
    """
    Rescale holdings so their weights sum to 1.0.

    Holdings whose total is already within ``tolerance`` of 1.0 are returned
    unchanged. Otherwise every weight is divided by the observed total.

    Raises:
        ValueError: If the holdings carry no positive weight.
    """
    total = sum(h.weight for h in holdings)
    if total <= 0:
        raise ValueError("Portfolio has no positive weight to normalize")
    if abs(total - 1.0) <= tolerance:
        return list(holdings)
    return [
        Holding(ticker=h.ticker, weight=h.weight / total, asset_class=h.asset_class)
        for h in holdings
    ]


@dataclass(frozen=True)
class PortfolioDefinition:
    """
    A scoreable portfolio.

    Either carries a concrete holdings list (allocation portfolios get one
    proxy ticker per asset class) or is flagged ``live_holdings`` and has
    its holdings resolved from the holdings table at scoring time.
    """

    id: str
    name: str
    holdings: tuple[Holding, ...] = ()
    live_holdings: bool = False
    description: str = ""


@dataclass(frozen=True)
class ScoreResult:
    """Outcome of scoring one portfolio against one analog."""

    portfolio_id: str
    portfolio_name: str
    score: int
    portfolio_return: float
    benchmark_return: float
    outperformance: float
    portfolio_drawdown: float
    benchmark_drawdown: float
    return_score: float
    drawdown_score: float
    label: str
    color: str
    holdings: tuple[Holding, ...] = field(default_factory=tuple)
    estimated_upside: float | None = None
    estimated_downside: float | None = None


@dataclass(frozen=True)
class CachedPortfolioScore:
    """A persisted ScoreResult with its cache key and write time."""

    analog_id: str
    portfolio_id: str
    version: int
    result: ScoreResult
    updated_at: datetime | None = None

    def to_score_result(self) -> ScoreResult:
        return self.result
