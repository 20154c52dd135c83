"""Historical return/drawdown provider interface and shared series math."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Protocol, runtime_checkable

import numpy as np
import pandas as pd

from scenario_scoring.core.exceptions import DataUnavailableError
from scenario_scoring.domain.analogs import DateRange


@dataclass(frozen=True)
class ReturnAndDrawdown:
    """Total return and max drawdown of one ticker over a window.

    Both are fractions. ``drawdown`` is negative or zero.
    """

    total_return: float
    drawdown: float

    def to_dict(self) -> dict[str, float]:
        return {"return": self.total_return, "drawdown": self.drawdown}

    @classmethod
    def from_dict(cls, data: dict) -> "ReturnAndDrawdown":
        return cls(total_return=float(data["return"]), drawdown=float(data["drawdown"]))


@runtime_checkable
class HistoricalDataProvider(Protocol):
    """Source of per-ticker window statistics.

    Implementations raise DataUnavailableError when the window cannot be built.
    """

    name: str

    async def get_return_and_drawdown(
        self, ticker: str, date_range: DateRange
    ) -> ReturnAndDrawdown: ...


def compute_return_and_drawdown(closes: pd.Series, ticker: str = "") -> ReturnAndDrawdown:
    """
    Total return and maximum peak-to-trough drawdown of a close series.

    Raises:
        DataUnavailableError: Fewer than two valid closes, or a non-positive start price.
    """
    series = pd.to_numeric(closes, errors="coerce").dropna()
    if len(series) < 2:
        raise DataUnavailableError(
            message=f"Not enough price history for {ticker or 'series'}",
            details={"ticker": ticker, "points": int(len(series))},
        )

    first = float(series.iloc[0])
    if first <= 0:
        raise DataUnavailableError(
            message=f"Invalid starting price for {ticker or 'series'}",
            details={"ticker": ticker},
        )

    values = series.to_numpy(dtype=float)
    total_return = float(values[-1]) / first - 1.0
    running_peak = np.maximum.accumulate(values)
    drawdown = float(np.min(values / running_peak - 1.0))

    return ReturnAndDrawdown(total_return=total_return, drawdown=min(drawdown, 0.0))


def check_window_coverage(
    closes: pd.Series,
    date_range: DateRange,
    tolerance_days: int,
    ticker: str = "",
) -> None:
    """
    Reject a close series that does not span the window.

    Weekends and market holidays mean the first and last closes rarely fall on
    the window bounds, so each side may be off by ``tolerance_days``.

    Raises:
        DataUnavailableError: History starts too late or ends too early.
    """
    series = closes.dropna()
    if series.empty:
        raise DataUnavailableError(
            message=f"No price history for {ticker or 'series'} in {date_range.label}",
            details={"ticker": ticker, "period": date_range.label},
        )

    index = pd.DatetimeIndex(series.index)
    if index.tz is not None:
        index = index.tz_localize(None)
    first = index.min().date()
    last = index.max().date()
    slack = timedelta(days=tolerance_days)

    if first > date_range.start + slack or last < date_range.end - slack:
        raise DataUnavailableError(
            message=f"Price history for {ticker or 'series'} does not cover {date_range.label}",
            details={
                "ticker": ticker,
                "period": date_range.label,
                "first": first.isoformat(),
                "last": last.isoformat(),
            },
        )
