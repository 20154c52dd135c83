"""Tests for the offline score cache population."""

from __future__ import annotations

import pytest

from scenario_scoring.core.exceptions import UnknownAnalogError
from scenario_scoring.repositories import analog_score_cache_orm as store
from scenario_scoring.scoring.engine import PortfolioScorer, ScoringConfig
from scenario_scoring.services.cache_population import populate_score_cache
from scenario_scoring.services.scenario_service import ScenarioScoringService


class TestPopulateScoreCache:
    """Tests for populate_score_cache()."""

    @pytest.mark.asyncio
    async def test_populates_every_pair(self, db_engine, service, score_cache):
        summary = await populate_score_cache(service)

        assert summary.written == 20
        assert summary.failed == 0
        assert summary.analogs == score_cache.analog_ids
        assert await score_cache.is_populated()

    @pytest.mark.asyncio
    async def test_populated_cache_is_skipped(self, db_engine, service, reference_provider):
        await populate_score_cache(service)
        calls = reference_provider.calls

        summary = await populate_score_cache(service)

        assert summary.skipped
        assert summary.written == 0
        assert reference_provider.calls == calls

    @pytest.mark.asyncio
    async def test_force_rewrites_in_place(self, db_engine, service):
        await populate_score_cache(service)

        summary = await populate_score_cache(service, force=True)

        assert not summary.skipped
        assert summary.written == 20
        assert await store.count_entries(1) == 20

    @pytest.mark.asyncio
    async def test_single_analog(self, db_engine, service, score_cache):
        summary = await populate_score_cache(service, analog_id="covid-crash")

        assert summary.analogs == ["covid-crash"]
        assert summary.written == 4
        assert (await score_cache.lookup("covid-crash")).found
        assert not await score_cache.is_populated()

    @pytest.mark.asyncio
    async def test_explicit_version(self, db_engine, service, score_cache):
        summary = await populate_score_cache(service, version=3, analog_id="rate-shock")

        assert summary.version == 3
        assert (await score_cache.lookup("rate-shock", version=3)).found
        assert not (await score_cache.lookup("rate-shock", version=1)).found

    @pytest.mark.asyncio
    async def test_unknown_analog(self, db_engine, service):
        with pytest.raises(UnknownAnalogError):
            await populate_score_cache(service, analog_id="not-an-analog")

    @pytest.mark.asyncio
    async def test_failures_are_recorded_and_skipped(
        self, db_engine, score_cache, make_provider
    ):
        service = ScenarioScoringService(
            cache=score_cache,
            scorer=PortfolioScorer(provider=make_provider(), config=ScoringConfig()),
            timeout_seconds=5.0,
        )

        summary = await populate_score_cache(service, analog_id="covid-crash")

        assert summary.written == 0
        assert summary.failed == 4
        assert summary.failures[0]["analog_id"] == "covid-crash"
        assert await store.count_entries(1) == 0

    @pytest.mark.asyncio
    async def test_summary_dict(self, db_engine, service):
        summary = await populate_score_cache(service, analog_id="covid-crash")

        data = summary.to_dict()

        assert data["written"] == 4
        assert data["version"] == 1
        assert set(data) == {
            "version",
            "skipped",
            "written",
            "failed",
            "analogs",
            "failures",
            "duration_ms",
        }
