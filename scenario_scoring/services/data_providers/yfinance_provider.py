"""
yfinance-backed historical window provider.

yfinance is synchronous, so downloads run in a small thread pool. Identical
concurrent requests are coalesced and the upstream is protected by a circuit
breaker; transient network errors are retried with backoff.
"""

from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import Optional

import pandas as pd
import yfinance as yf

from scenario_scoring.core.config import settings
from scenario_scoring.core.exceptions import DataUnavailableError
from scenario_scoring.core.logging import get_logger
from scenario_scoring.domain.analogs import DateRange

from .base import (
    ReturnAndDrawdown,
    check_window_coverage,
    compute_return_and_drawdown,
)
from .resilience import (
    CircuitBreaker,
    CircuitOpenError,
    RequestCoalescer,
    RetryExhaustedError,
    with_retry,
)


logger = get_logger("data_providers.yfinance")

_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="yfinance")

# Synthetic catalog tickers mapped to a traded instrument
TICKER_ALIASES: dict[str, str] = {
    "CASH": "BIL",
}


class YFinanceHistoryProvider:
    """Computes window return/drawdown from yfinance adjusted closes."""

    name = "yfinance"

    def __init__(
        self,
        timeout: Optional[int] = None,
        breaker: Optional[CircuitBreaker] = None,
        coverage_tolerance_days: Optional[int] = None,
    ):
        self._timeout = timeout or settings.external_api_timeout
        self._coverage_tolerance_days = (
            settings.history_coverage_tolerance_days
            if coverage_tolerance_days is None
            else coverage_tolerance_days
        )
        self._breaker = breaker or CircuitBreaker(
            failure_threshold=5,
            recovery_timeout=60.0,
            name="yfinance",
            excluded_exceptions=(DataUnavailableError,),
        )
        self._coalescer = RequestCoalescer(max_wait=float(self._timeout))

    def _download_closes_sync(
        self, symbol: str, date_range: DateRange
    ) -> Optional[pd.Series]:
        """Fetch adjusted closes for the window (blocking)."""
        try:
            df = yf.download(
                symbol,
                start=date_range.start.isoformat(),
                # yfinance treats end as exclusive
                end=(date_range.end + timedelta(days=1)).isoformat(),
                interval="1d",
                auto_adjust=True,
                progress=False,
                timeout=self._timeout,
            )
        except (ConnectionError, TimeoutError):
            raise
        except Exception as e:
            logger.warning(f"yfinance download failed for {symbol}: {e}")
            return None

        if df is None or df.empty:
            return None

        # Handle MultiIndex columns (newer yfinance)
        if isinstance(df.columns, pd.MultiIndex):
            if symbol in df.columns.get_level_values(1):
                df = df.xs(symbol, axis=1, level=1)
            else:
                df.columns = df.columns.droplevel(1)

        if "Close" not in df.columns:
            return None
        return df["Close"]

    @with_retry(max_attempts=settings.external_api_retries + 1, base_delay=1.0)
    async def _download_closes(
        self, symbol: str, date_range: DateRange
    ) -> Optional[pd.Series]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            _executor, self._download_closes_sync, symbol, date_range
        )

    async def _fetch(self, symbol: str, date_range: DateRange) -> ReturnAndDrawdown:
        await self._breaker.guard()
        try:
            closes = await self._download_closes(symbol, date_range)
            if closes is None:
                raise DataUnavailableError(
                    message=f"No price history for {symbol} in {date_range.label}",
                    details={"ticker": symbol, "period": date_range.label},
                )
            check_window_coverage(
                closes, date_range, self._coverage_tolerance_days, symbol
            )
            result = compute_return_and_drawdown(closes, symbol)
            self._breaker.record_success()
            return result
        except Exception as e:
            self._breaker.record_failure(e)
            raise

    async def get_return_and_drawdown(
        self, ticker: str, date_range: DateRange
    ) -> ReturnAndDrawdown:
        symbol = ticker.strip().upper()
        symbol = TICKER_ALIASES.get(symbol, symbol)
        key = f"{symbol}:{date_range.start.isoformat()}:{date_range.end.isoformat()}"

        try:
            return await self._coalescer.execute(
                key, lambda: self._fetch(symbol, date_range)
            )
        except (CircuitOpenError, RetryExhaustedError) as e:
            logger.warning(f"yfinance unavailable for {symbol}: {e}")
            raise DataUnavailableError(
                message=f"Price source unavailable for {symbol}",
                details={"ticker": symbol, "reason": str(e)},
            ) from e
