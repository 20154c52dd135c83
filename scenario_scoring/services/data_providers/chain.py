"""Provider composition: reference fallback and Valkey memoization."""

from __future__ import annotations

from typing import Optional

from scenario_scoring.cache.cache import Cache
from scenario_scoring.core.config import settings
from scenario_scoring.core.exceptions import DataUnavailableError
from scenario_scoring.core.logging import get_logger
from scenario_scoring.domain.analogs import DateRange

from .base import HistoricalDataProvider, ReturnAndDrawdown


logger = get_logger("data_providers.chain")


class FallbackHistoryProvider:
    """Try each provider in order; the first success wins."""

    def __init__(self, *providers: HistoricalDataProvider):
        if not providers:
            raise ValueError("FallbackHistoryProvider needs at least one provider")
        self._providers = providers
        self.name = "+".join(p.name for p in providers)

    async def get_return_and_drawdown(
        self, ticker: str, date_range: DateRange
    ) -> ReturnAndDrawdown:
        failures: dict[str, str] = {}
        for provider in self._providers:
            try:
                return await provider.get_return_and_drawdown(ticker, date_range)
            except DataUnavailableError as e:
                failures[provider.name] = e.message
                logger.debug(
                    f"{provider.name} has no data for {ticker} ({date_range.label}): {e.message}"
                )

        raise DataUnavailableError(
            message=f"No provider could supply {ticker} for {date_range.label}",
            details={"ticker": ticker, "period": date_range.label, "providers": failures},
        )


class CachedHistoryProvider:
    """Memoizes another provider's window statistics in Valkey."""

    def __init__(
        self,
        inner: HistoricalDataProvider,
        cache: Optional[Cache] = None,
    ):
        self._inner = inner
        self._cache = cache or Cache(
            prefix="window_returns", default_ttl=settings.returns_cache_ttl
        )
        self.name = f"cached:{inner.name}"

    @staticmethod
    def _key(ticker: str, date_range: DateRange) -> str:
        return f"{ticker.strip().upper()}:{date_range.start.isoformat()}:{date_range.end.isoformat()}"

    async def get_return_and_drawdown(
        self, ticker: str, date_range: DateRange
    ) -> ReturnAndDrawdown:
        key = self._key(ticker, date_range)
        cached = await self._cache.get(key)
        if cached is not None:
            return ReturnAndDrawdown.from_dict(cached)

        result = await self._inner.get_return_and_drawdown(ticker, date_range)
        await self._cache.set(key, result.to_dict())
        return result


def build_default_provider() -> HistoricalDataProvider:
    """Assemble the provider chain from settings."""
    from .reference import ReferenceReturnsProvider
    from .yfinance_provider import YFinanceHistoryProvider

    provider: HistoricalDataProvider = YFinanceHistoryProvider()
    if settings.returns_cache_enabled:
        provider = CachedHistoryProvider(provider)
    if settings.reference_data_fallback:
        provider = FallbackHistoryProvider(provider, ReferenceReturnsProvider())
    return provider
