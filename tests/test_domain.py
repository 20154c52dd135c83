"""Tests for the analog registry, portfolio catalog and weight normalization."""

from __future__ import annotations

from datetime import date

import pytest

from scenario_scoring.domain import catalog
from scenario_scoring.domain.analogs import (
    DateRange,
    analog_ids,
    get_analog,
    list_analogs,
)
from scenario_scoring.domain.portfolio import (
    WEIGHT_TOLERANCE,
    AssetClass,
    Holding,
    normalize_weights,
)


class TestAnalogRegistry:
    """Tests for the static analog registry."""

    def test_get_known_analog(self):
        analog = get_analog("covid-crash")

        assert analog is not None
        assert analog.name == "COVID Crash"
        assert analog.date_range.start == date(2020, 2, 1)
        assert analog.period == "2020-02-01 to 2020-03-31"

    def test_unknown_and_empty_ids_return_none(self):
        assert get_analog("not-an-analog") is None
        assert get_analog("") is None
        assert get_analog(None) is None

    def test_ids_are_unique_and_ordered(self):
        ids = analog_ids()

        assert len(ids) == len(set(ids))
        assert ids[0] == "2008-financial-crisis"
        assert [a.id for a in list_analogs()] == ids

    def test_every_window_is_well_formed(self):
        for analog in list_analogs():
            assert analog.date_range.start < analog.date_range.end


class TestDateRange:
    """Tests for DateRange."""

    def test_rejects_inverted_window(self):
        with pytest.raises(ValueError):
            DateRange(date(2020, 3, 1), date(2020, 2, 1))

    def test_rejects_empty_window(self):
        with pytest.raises(ValueError):
            DateRange(date(2020, 3, 1), date(2020, 3, 1))


class TestCatalog:
    """Tests for the portfolio catalog."""

    def test_scored_portfolios(self):
        assert catalog.scored_portfolio_ids() == [
            "max-growth",
            "growth",
            "moderate",
            "max-income",
        ]

    def test_allocation_weights_sum_to_one_within_tolerance(self):
        for portfolio in catalog.SCORED_PORTFOLIOS:
            total = sum(h.weight for h in portfolio.holdings)
            assert abs(total - 1.0) <= WEIGHT_TOLERANCE

    def test_zero_allocations_have_no_holding(self):
        tickers = {h.ticker for h in catalog.MAX_GROWTH.holdings}

        assert "VNQ" not in tickers
        assert tickers == {"SPY", "SH", "AGG", "DBC", "CASH"}

    def test_time_portfolio_is_live(self):
        portfolio = catalog.get_portfolio("time")

        assert portfolio is catalog.TIME_PORTFOLIO
        assert portfolio.live_holdings
        assert portfolio.holdings == ()

    def test_unknown_portfolio(self):
        assert catalog.get_portfolio("nope") is None

    def test_benchmark_portfolio(self):
        benchmark = catalog.benchmark_portfolio(" spy ")

        assert benchmark.id == "benchmark"
        assert benchmark.holdings == (Holding("SPY", 1.0, AssetClass.STOCKS),)


class TestNormalizeWeights:
    """Tests for normalize_weights()."""

    def test_within_tolerance_is_unchanged(self):
        holdings = [
            Holding("SPY", 0.6, AssetClass.STOCKS),
            Holding("AGG", 0.42, AssetClass.BONDS),
        ]

        assert normalize_weights(holdings) == holdings

    def test_rescales_outside_tolerance(self):
        holdings = [
            Holding("SPY", 0.3, AssetClass.STOCKS),
            Holding("AGG", 0.3, AssetClass.BONDS),
        ]

        result = normalize_weights(holdings)

        assert [h.weight for h in result] == pytest.approx([0.5, 0.5])
        assert sum(h.weight for h in result) == pytest.approx(1.0)
        assert [h.ticker for h in result] == ["SPY", "AGG"]

    def test_zero_total_raises(self):
        with pytest.raises(ValueError):
            normalize_weights([Holding("SPY", 0.0, AssetClass.STOCKS)])

    def test_holding_dict_roundtrip(self):
        holding = Holding("VNQ", 0.25, AssetClass.REAL_ESTATE)

        data = holding.to_dict()

        assert data["asset_class"] == "real-estate"
        assert Holding.from_dict(data) == holding
