"""Scenario scoring endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from scenario_scoring.core.exceptions import BadRequestError
from scenario_scoring.core.logging import get_logger
from scenario_scoring.domain.analogs import list_analogs
from scenario_scoring.schemas.scenarios import (
    AnalogListResponse,
    AnalogSchema,
    PortfolioScoreRequest,
    PortfolioScoreResponse,
    PortfolioScoreSchema,
    ScoresByAnalogRequest,
    ScoresByAnalogResponse,
)
from scenario_scoring.services.scenario_service import (
    ScenarioScoringService,
    asset_class_view,
)

from ..dependencies import scenario_service


router = APIRouter(prefix="/scenarios")

logger = get_logger("api.scenarios")


def _require_analog_id(analog_id: str | None) -> str:
    if not analog_id:
        raise BadRequestError(
            message="analogId is required", details={"field": "analogId"}
        )
    return analog_id


@router.post(
    "/scores-by-analog",
    response_model=ScoresByAnalogResponse,
    summary="Portfolio scores for an analog",
    description="Cached scores when the set is complete, otherwise computed on demand.",
)
async def scores_by_analog(
    request: ScoresByAnalogRequest,
    service: ScenarioScoringService = Depends(scenario_service),
) -> ScoresByAnalogResponse:
    analog_id = _require_analog_id(request.analog_id)
    scores = await service.get_scores_for_analog(analog_id, request.version)

    logger.info(
        f"Served {len(scores.portfolios)} scores for {analog_id} from {scores.source}",
        extra={"analog_id": analog_id, "source": scores.source},
    )
    return ScoresByAnalogResponse(
        analog_id=scores.analog.id,
        analog_name=scores.analog.name,
        analog_period=scores.analog.period,
        source=scores.source,
        compute_time_ms=scores.compute_time_ms,
        portfolios=[
            PortfolioScoreSchema.from_result(r, asset_class_view(r))
            for r in scores.portfolios
        ],
    )


@router.post(
    "/portfolio-score",
    response_model=PortfolioScoreResponse,
    summary="Single portfolio score for an analog",
)
async def portfolio_score(
    request: PortfolioScoreRequest,
    service: ScenarioScoringService = Depends(scenario_service),
) -> PortfolioScoreResponse:
    analog_id = _require_analog_id(request.analog_id)
    result, source = await service.get_portfolio_score(
        analog_id, request.portfolio_id, request.version
    )
    analog = service.resolve_analog(analog_id)
    return PortfolioScoreResponse(
        analog_id=analog.id,
        analog_name=analog.name,
        analog_period=analog.period,
        source=source,
        portfolio=PortfolioScoreSchema.from_result(result, asset_class_view(result)),
    )


@router.get(
    "/analogs",
    response_model=AnalogListResponse,
    summary="List historical analogs",
)
async def analogs() -> AnalogListResponse:
    return AnalogListResponse(analogs=[AnalogSchema.from_analog(a) for a in list_analogs()])
