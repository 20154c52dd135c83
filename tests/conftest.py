"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
from typing import AsyncGenerator, Generator, Iterable

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from scenario_scoring.core.exceptions import DataUnavailableError
from scenario_scoring.domain import catalog
from scenario_scoring.domain.analogs import DateRange, analog_ids
from scenario_scoring.scoring.engine import PortfolioScorer, ScoringConfig
from scenario_scoring.services.data_providers.base import ReturnAndDrawdown
from scenario_scoring.services.data_providers.reference import ReferenceReturnsProvider
from scenario_scoring.services.scenario_service import ScenarioScoringService
from scenario_scoring.services.score_cache import AnalogScoreCache


pytest_plugins = ["pytest_asyncio"]


class FakeProvider:
    """In-memory window provider that records every request."""

    name = "fake"

    def __init__(
        self,
        figures: dict[str, tuple[float, float]] | None = None,
        fail: Iterable[str] = (),
        slow: Iterable[str] = (),
        delay: float = 1.0,
    ):
        self.figures = {
            ticker: ReturnAndDrawdown(total_return=ret, drawdown=dd)
            for ticker, (ret, dd) in (figures or {}).items()
        }
        self.fail = set(fail)
        self.slow = set(slow)
        self.delay = delay
        self.calls: list[tuple[str, DateRange]] = []

    async def get_return_and_drawdown(
        self, ticker: str, date_range: DateRange
    ) -> ReturnAndDrawdown:
        self.calls.append((ticker, date_range))
        if ticker in self.slow:
            await asyncio.sleep(self.delay)
        if ticker in self.fail or ticker not in self.figures:
            raise DataUnavailableError(message=f"no data for {ticker}")
        return self.figures[ticker]


class CountingProvider:
    """Wraps a provider and counts requests."""

    def __init__(self, inner):
        self.inner = inner
        self.name = f"counting:{inner.name}"
        self.calls = 0

    async def get_return_and_drawdown(self, ticker, date_range):
        self.calls += 1
        return await self.inner.get_return_and_drawdown(ticker, date_range)


@pytest.fixture(scope="function", autouse=True)
def reset_singletons():
    """Drop process-wide engine and service instances between tests."""
    import scenario_scoring.database.connection as db_conn
    import scenario_scoring.services.scenario_service as scenario_service

    db_conn._engine = None
    db_conn._session_factory = None
    scenario_service._instance = None

    yield

    db_conn._engine = None
    db_conn._session_factory = None
    scenario_service._instance = None


@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite database with all tables created."""
    from scenario_scoring.database import connection
    from scenario_scoring.database.orm import Base

    engine = await connection.init_sqlalchemy_engine("sqlite+aiosqlite://")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await connection.close_sqlalchemy_engine()


@pytest.fixture
def score_cache() -> AnalogScoreCache:
    return AnalogScoreCache(
        version=1,
        portfolio_ids=catalog.scored_portfolio_ids(),
        analog_ids=analog_ids(),
    )


@pytest.fixture
def reference_provider() -> CountingProvider:
    """Deterministic provider backed by the reference figures."""
    return CountingProvider(ReferenceReturnsProvider())


@pytest.fixture
def scorer(reference_provider: CountingProvider) -> PortfolioScorer:
    return PortfolioScorer(provider=reference_provider, config=ScoringConfig())


@pytest.fixture
def service(score_cache: AnalogScoreCache, scorer: PortfolioScorer) -> ScenarioScoringService:
    return ScenarioScoringService(
        cache=score_cache,
        scorer=scorer,
        benchmark=catalog.benchmark_portfolio("SPY"),
        timeout_seconds=5.0,
    )


def _build_app(service: ScenarioScoringService):
    from scenario_scoring.api.app import create_api_app
    from scenario_scoring.api.dependencies import scenario_service, score_cache

    app = create_api_app()
    app.dependency_overrides[scenario_service] = lambda: service
    app.dependency_overrides[score_cache] = lambda: service.cache
    return app


@pytest_asyncio.fixture
async def async_client(
    db_engine, service: ScenarioScoringService
) -> AsyncGenerator[AsyncClient, None]:
    """Async test client wired to the SQLite-backed service."""
    app = _build_app(service)
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Synchronous test client for endpoints that need no database."""
    from scenario_scoring.api.app import create_api_app

    app = create_api_app()
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def make_provider():
    """Factory for FakeProvider instances."""
    return FakeProvider
