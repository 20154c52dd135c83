"""Historical window data providers."""

from .base import HistoricalDataProvider, ReturnAndDrawdown, compute_return_and_drawdown
from .chain import CachedHistoryProvider, FallbackHistoryProvider, build_default_provider
from .reference import ReferenceReturnsProvider


__all__ = [
    "CachedHistoryProvider",
    "FallbackHistoryProvider",
    "HistoricalDataProvider",
    "ReferenceReturnsProvider",
    "ReturnAndDrawdown",
    "build_default_provider",
    "compute_return_and_drawdown",
]
