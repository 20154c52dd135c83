"""Scenario scoring Pydantic schemas for API requests and responses.

Wire names are camelCase; Python attributes stay snake_case.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from scenario_scoring.core.classification import AssetClassWeight
from scenario_scoring.domain.analogs import HistoricalAnalog
from scenario_scoring.domain.portfolio import Holding, ScoreResult
from scenario_scoring.repositories.analog_score_cache_orm import VersionStats
from scenario_scoring.services.score_cache import AnalogCacheStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScoresByAnalogRequest(CamelModel):
    """Scores-by-analog request. A missing analog id is rejected by the route."""

    analog_id: Optional[str] = Field(default=None, max_length=64)
    version: Optional[int] = Field(default=None, ge=1)

    @field_validator("analog_id", mode="before")
    @classmethod
    def strip_analog_id(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v


class PortfolioScoreRequest(ScoresByAnalogRequest):
    portfolio_id: str = Field(..., min_length=1, max_length=64)


class HoldingSchema(CamelModel):
    ticker: str
    weight: float
    asset_class: str

    @classmethod
    def from_holding(cls, holding: Holding) -> "HoldingSchema":
        return cls(
            ticker=holding.ticker,
            weight=holding.weight,
            asset_class=holding.asset_class.value,
        )


class AssetClassWeightSchema(CamelModel):
    asset_class: str
    weight: float

    @classmethod
    def from_weight(cls, item: AssetClassWeight) -> "AssetClassWeightSchema":
        return cls(asset_class=item.asset_class.value, weight=item.weight)


class PortfolioScoreSchema(CamelModel):
    """One portfolio's score against an analog."""

    portfolio_id: str
    portfolio_name: str
    score: int = Field(..., ge=0, le=100)
    label: str
    color: str
    portfolio_return: float
    benchmark_return: float
    outperformance: float
    portfolio_drawdown: float
    benchmark_drawdown: float
    return_score: float
    drawdown_score: float
    estimated_upside: Optional[float] = None
    estimated_downside: Optional[float] = None
    holdings: List[HoldingSchema] = Field(default_factory=list)
    asset_classes: Optional[List[AssetClassWeightSchema]] = None

    @classmethod
    def from_result(
        cls,
        result: ScoreResult,
        asset_classes: Optional[List[AssetClassWeight]] = None,
    ) -> "PortfolioScoreSchema":
        return cls(
            portfolio_id=result.portfolio_id,
            portfolio_name=result.portfolio_name,
            score=result.score,
            label=result.label,
            color=result.color,
            portfolio_return=result.portfolio_return,
            benchmark_return=result.benchmark_return,
            outperformance=result.outperformance,
            portfolio_drawdown=result.portfolio_drawdown,
            benchmark_drawdown=result.benchmark_drawdown,
            return_score=result.return_score,
            drawdown_score=result.drawdown_score,
            estimated_upside=result.estimated_upside,
            estimated_downside=result.estimated_downside,
            holdings=[HoldingSchema.from_holding(h) for h in result.holdings],
            asset_classes=(
                [AssetClassWeightSchema.from_weight(a) for a in asset_classes]
                if asset_classes is not None
                else None
            ),
        )


class ScoresByAnalogResponse(CamelModel):
    success: bool = True
    analog_id: str
    analog_name: str
    analog_period: str
    source: Literal["cache", "computed"]
    compute_time_ms: int
    portfolios: List[PortfolioScoreSchema]


class PortfolioScoreResponse(CamelModel):
    success: bool = True
    analog_id: str
    analog_name: str
    analog_period: str
    source: Literal["cache", "computed"]
    portfolio: PortfolioScoreSchema


class AnalogSchema(CamelModel):
    id: str
    name: str
    start_date: date
    end_date: date
    period: str
    description: Optional[str] = None

    @classmethod
    def from_analog(cls, analog: HistoricalAnalog) -> "AnalogSchema":
        return cls(
            id=analog.id,
            name=analog.name,
            start_date=analog.date_range.start,
            end_date=analog.date_range.end,
            period=analog.period,
            description=analog.description,
        )


class AnalogListResponse(CamelModel):
    success: bool = True
    analogs: List[AnalogSchema]


class AnalogCacheStatusSchema(CamelModel):
    analog_id: str
    analog_name: str
    count: int
    expected: int
    complete: bool
    last_updated: Optional[datetime] = None

    @classmethod
    def from_status(cls, status: AnalogCacheStatus) -> "AnalogCacheStatusSchema":
        return cls(
            analog_id=status.analog_id,
            analog_name=status.analog_name,
            count=status.count,
            expected=status.expected,
            complete=status.complete,
            last_updated=status.last_updated,
        )


class VersionStatsSchema(CamelModel):
    version: int
    entries: int
    unique_analogs: int
    unique_portfolios: int
    avg_score: float
    last_update: Optional[datetime] = None

    @classmethod
    def from_stats(cls, stats: VersionStats) -> "VersionStatsSchema":
        return cls(
            version=stats.version,
            entries=stats.total_entries,
            unique_analogs=stats.unique_analogs,
            unique_portfolios=stats.unique_portfolios,
            avg_score=stats.avg_score,
            last_update=stats.last_update,
        )


class CacheStatusResponse(CamelModel):
    success: bool = True
    status: Literal["ready", "partial", "empty"]
    current_version: int
    total_entries: int
    expected_entries: int
    analogs: List[AnalogCacheStatusSchema]
    statistics: List[VersionStatsSchema]


class ClearCacheResponse(CamelModel):
    success: bool = True
    message: str
    deleted: int = 0
