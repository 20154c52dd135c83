"""
Historical analog registry.

An analog is a named historical window used as a backtest scenario. The
registry is static reference data: defined at import time, never mutated.

Usage:
    from scenario_scoring.domain.analogs import get_analog, list_analogs

    analog = get_analog("covid-crash")
    if analog is None:
        ...  # unknown id, treat as a client error
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar window."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError(f"DateRange start {self.start} must precede end {self.end}")

    @property
    def label(self) -> str:
        return f"{self.start.isoformat()} to {self.end.isoformat()}"


@dataclass(frozen=True)
class HistoricalAnalog:
    """Definition of a historical market scenario."""

    id: str
    name: str
    date_range: DateRange
    description: str | None = None

    @property
    def period(self) -> str:
        return self.date_range.label


_ANALOG_DEFINITIONS: tuple[HistoricalAnalog, ...] = (
    HistoricalAnalog(
        id="2008-financial-crisis",
        name="2008 Financial Crisis",
        date_range=DateRange(date(2007, 10, 9), date(2009, 3, 9)),  # SPY peak to bottom
        description="Subprime mortgage crisis and Lehman collapse; credit markets froze.",
    ),
    HistoricalAnalog(
        id="covid-crash",
        name="COVID Crash",
        date_range=DateRange(date(2020, 2, 1), date(2020, 3, 31)),
        description="Pandemic-driven sell-off, the fastest bear market on record.",
    ),
    HistoricalAnalog(
        id="dot-com-bust",
        name="Dot-Com Bust",
        date_range=DateRange(date(2000, 3, 1), date(2002, 10, 1)),
        description="Technology bubble deflation after the late-1990s rally.",
    ),
    HistoricalAnalog(
        id="rate-shock",
        name="2022 Rate Shock",
        date_range=DateRange(date(2022, 1, 1), date(2022, 12, 31)),
        description="Fastest Fed hiking cycle in decades; stocks and bonds fell together.",
    ),
    HistoricalAnalog(
        id="stagflation",
        name="1970s Stagflation",
        date_range=DateRange(date(1973, 1, 1), date(1974, 12, 31)),
        description="Oil embargo, double-digit inflation and a deep equity bear market.",
    ),
)


def _build_registry(
    analogs: tuple[HistoricalAnalog, ...],
) -> dict[str, HistoricalAnalog]:
    registry: dict[str, HistoricalAnalog] = {}
    for analog in analogs:
        if analog.id in registry:
            raise ValueError(f"Duplicate analog id: {analog.id}")
        registry[analog.id] = analog
    return registry


ANALOGS: dict[str, HistoricalAnalog] = _build_registry(_ANALOG_DEFINITIONS)


def get_analog(analog_id: str | None) -> HistoricalAnalog | None:
    """Look up an analog by id. Returns None when the id is not registered."""
    if not analog_id:
        return None
    return ANALOGS.get(analog_id)


def list_analogs() -> list[HistoricalAnalog]:
    """All analogs in registration order."""
    return list(ANALOGS.values())


def analog_ids() -> list[str]:
    return list(ANALOGS)
