"""Celery tasks for background jobs."""

from __future__ import annotations

import asyncio
from typing import Any

import scenario_scoring.jobs.definitions  # noqa: F401 - register jobs
from scenario_scoring.celery_app import celery_app
from scenario_scoring.core.exceptions import JobError, StoreError
from scenario_scoring.core.logging import get_logger
from scenario_scoring.jobs.definitions import POPULATE_SCORE_CACHE_JOB
from scenario_scoring.jobs.executor import execute_job


logger = get_logger("jobs.celery_tasks")

# Per-worker event loop for Celery prefork pool
_worker_loop: asyncio.AbstractEventLoop | None = None


def _get_worker_loop() -> asyncio.AbstractEventLoop:
    """Get or create a persistent event loop for the worker process."""
    global _worker_loop
    if _worker_loop is None or _worker_loop.is_closed():
        _worker_loop = asyncio.new_event_loop()
        asyncio.set_event_loop(_worker_loop)
    return _worker_loop


def _run_async(coro: Any) -> Any:
    """Run a coroutine on the worker's persistent loop.

    Async Valkey and database pools are bound to the loop that created them.
    """
    loop = _get_worker_loop()
    return loop.run_until_complete(coro)


async def _populate(options: dict[str, Any]) -> dict[str, Any]:
    try:
        return await execute_job(POPULATE_SCORE_CACHE_JOB, **options)
    except JobError as exc:
        # Surface store outages unwrapped so Celery autoretry sees them
        if isinstance(exc.__cause__, StoreError):
            raise exc.__cause__ from None
        raise


@celery_app.task(
    name=f"jobs.{POPULATE_SCORE_CACHE_JOB}",
    autoretry_for=(StoreError,),
    retry_backoff=60,
    retry_kwargs={"max_retries": 3},
)
def analog_score_cache_populate_task(
    version: int | None = None,
    analog_id: str | None = None,
    force: bool = False,
) -> dict[str, Any]:
    options = {"version": version, "analog_id": analog_id, "force": force}
    logger.info("Running score cache population", extra=options)
    return _run_async(_populate(options))
