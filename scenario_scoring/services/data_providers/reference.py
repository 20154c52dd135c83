"""
Reference window statistics for the catalog proxy tickers.

Used when live history is unavailable, most notably for windows that predate
the proxy ETFs (the 1973-74 window predates all of them, AGG launched in 2003).
Figures approximate the underlying index each ETF tracks. Drawdowns are
negative fractions.
"""

from __future__ import annotations

from typing import Mapping

from scenario_scoring.core.exceptions import DataUnavailableError
from scenario_scoring.domain.analogs import ANALOGS, DateRange

from .base import ReturnAndDrawdown


def _figures(**values: tuple[float, float]) -> dict[str, ReturnAndDrawdown]:
    return {
        ticker: ReturnAndDrawdown(total_return=ret, drawdown=dd)
        for ticker, (ret, dd) in values.items()
    }


# analog id -> ticker -> (total return, max drawdown)
REFERENCE_FIGURES: dict[str, dict[str, ReturnAndDrawdown]] = {
    "2008-financial-crisis": _figures(
        SPY=(-0.546, -0.552),
        AGG=(0.075, -0.055),
        DBC=(-0.410, -0.565),
        VNQ=(-0.700, -0.735),
        SH=(0.620, -0.115),
        CASH=(0.025, 0.0),
        GLD=(0.255, -0.290),
        TLT=(0.195, -0.090),
    ),
    "covid-crash": _figures(
        SPY=(-0.196, -0.339),
        AGG=(0.004, -0.085),
        DBC=(-0.255, -0.300),
        VNQ=(-0.245, -0.420),
        SH=(0.190, -0.040),
        CASH=(0.002, 0.0),
        GLD=(0.030, -0.120),
        TLT=(0.130, -0.095),
    ),
    "dot-com-bust": _figures(
        SPY=(-0.440, -0.491),
        AGG=(0.320, -0.030),
        DBC=(0.050, -0.250),
        VNQ=(0.450, -0.120),
        SH=(0.480, -0.200),
        CASH=(0.085, 0.0),
        GLD=(0.100, -0.110),
        TLT=(0.350, -0.080),
    ),
    "rate-shock": _figures(
        SPY=(-0.181, -0.254),
        AGG=(-0.130, -0.170),
        DBC=(0.195, -0.175),
        VNQ=(-0.262, -0.335),
        SH=(0.170, -0.180),
        CASH=(0.015, 0.0),
        GLD=(-0.008, -0.205),
        TLT=(-0.311, -0.355),
    ),
    "stagflation": _figures(
        SPY=(-0.400, -0.482),
        AGG=(0.085, -0.080),
        DBC=(1.400, -0.120),
        VNQ=(-0.550, -0.600),
        SH=(0.420, -0.150),
        CASH=(0.160, 0.0),
        GLD=(1.500, -0.230),
        TLT=(-0.020, -0.120),
    ),
}


class ReferenceReturnsProvider:
    """Serves reference figures for registered analog windows."""

    name = "reference"

    def __init__(
        self,
        figures: Mapping[str, Mapping[str, ReturnAndDrawdown]] | None = None,
    ):
        figures = REFERENCE_FIGURES if figures is None else figures
        # Index by window so callers only need the date range
        self._by_window: dict[DateRange, Mapping[str, ReturnAndDrawdown]] = {
            ANALOGS[analog_id].date_range: table
            for analog_id, table in figures.items()
            if analog_id in ANALOGS
        }

    def tickers_for(self, date_range: DateRange) -> list[str]:
        return sorted(self._by_window.get(date_range, {}))

    async def get_return_and_drawdown(
        self, ticker: str, date_range: DateRange
    ) -> ReturnAndDrawdown:
        symbol = ticker.strip().upper()
        table = self._by_window.get(date_range)
        if table is None or symbol not in table:
            raise DataUnavailableError(
                message=f"No reference figures for {symbol} in {date_range.label}",
                details={"ticker": symbol, "period": date_range.label},
            )
        return table[symbol]
