"""
Asset-class classification for ticker symbols.

Rules are checked in order and the first match wins, so inverse ETFs are
recognized before any broader pattern gets a chance. Anything unmatched is
treated as an equity.

Usage:
    from scenario_scoring.core.classification import classify, aggregate_by_asset_class
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from scenario_scoring.domain.portfolio import AssetClass, Holding


_CLASSIFICATION_RULES: tuple[tuple[AssetClass, re.Pattern[str]], ...] = (
    (
        AssetClass.HEDGES,
        re.compile(r"^(SQQQ|QID|PSQ|SPXU|SDS|SH|SDOW|DXD|DOG|SOXS|SARK)$"),
    ),
    # Money market funds share the five-letter ...XX suffix
    (AssetClass.CASH, re.compile(r"^(CASH|SHV|SGOV|BIL|[A-Z]{3}XX)$")),
    (
        AssetClass.BONDS,
        re.compile(r"^(AGG|BND|TLT|IEF|LQD|HYG|VCIT|VGIT|VCSH|MUB|TIP|SHY)$"),
    ),
    (AssetClass.REAL_ESTATE, re.compile(r"^(VNQ|SCHH|IYR|XLRE)$")),
    (AssetClass.COMMODITIES, re.compile(r"^(GLD|SLV|IAU|USO|DBC|DBA|NEM)$")),
)

# Model portfolios whose holdings are shown collapsed by asset class
AGGREGATE_ELIGIBLE_NAMES = frozenset({"MAX GROWTH", "GROWTH", "MODERATE", "MAX INCOME"})


def classify(ticker: str) -> AssetClass:
    """Map a ticker to its asset class. Total: unknown tickers are stocks."""
    symbol = (ticker or "").strip().upper()
    for asset_class, pattern in _CLASSIFICATION_RULES:
        if pattern.match(symbol):
            return asset_class
    return AssetClass.STOCKS


@dataclass(frozen=True)
class AssetClassWeight:
    asset_class: AssetClass
    weight: float


def aggregate_by_asset_class(holdings: Iterable[Holding]) -> list[AssetClassWeight]:
    """
    Collapse holdings into one weight per asset class.

    Only classes with a positive total are returned, heaviest first. Ties keep
    the order in which each class first appeared.
    """
    totals: dict[AssetClass, float] = {}
    for holding in holdings:
        totals[holding.asset_class] = totals.get(holding.asset_class, 0.0) + holding.weight

    # sorted() is stable, so equal weights keep first-occurrence order
    ranked = sorted(
        (item for item in totals.items() if item[1] > 0),
        key=lambda item: item[1],
        reverse=True,
    )
    return [AssetClassWeight(asset_class=cls, weight=weight) for cls, weight in ranked]


def is_aggregate_eligible(portfolio_name: str) -> bool:
    """Whether a portfolio is shown as an asset-class breakdown."""
    return (portfolio_name or "").strip().upper() in AGGREGATE_ELIGIBLE_NAMES
