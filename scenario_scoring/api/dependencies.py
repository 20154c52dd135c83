"""FastAPI dependencies for the scenario services."""

from __future__ import annotations

from scenario_scoring.services.scenario_service import (
    ScenarioScoringService,
    get_scenario_service,
)
from scenario_scoring.services.score_cache import AnalogScoreCache


def scenario_service() -> ScenarioScoringService:
    return get_scenario_service()


def score_cache() -> AnalogScoreCache:
    return get_scenario_service().cache
