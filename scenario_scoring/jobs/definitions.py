"""Built-in job definitions.

Jobs:
- analog_score_cache_populate: score every catalog portfolio against every
  analog and persist the results for the current cache version.
"""

from __future__ import annotations

from typing import Any

from scenario_scoring.core.logging import get_logger
from scenario_scoring.services.cache_population import populate_score_cache
from scenario_scoring.services.scenario_service import get_scenario_service

from .registry import register_job


logger = get_logger("jobs.definitions")

POPULATE_SCORE_CACHE_JOB = "analog_score_cache_populate"


@register_job(POPULATE_SCORE_CACHE_JOB)
async def analog_score_cache_populate_job(
    version: int | None = None,
    analog_id: str | None = None,
    force: bool = False,
) -> dict[str, Any]:
    """Populate the analog score cache; returns the run summary."""
    summary = await populate_score_cache(
        get_scenario_service(),
        version=version,
        analog_id=analog_id,
        force=force,
    )
    if summary.failed:
        logger.warning(
            f"{summary.failed} portfolio scores could not be computed",
            extra={"failures": summary.failures},
        )
    return summary.to_dict()
