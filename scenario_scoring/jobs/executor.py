"""Job execution with error handling."""

from __future__ import annotations

import inspect
import time
from typing import Any

from scenario_scoring.core.exceptions import JobError
from scenario_scoring.core.logging import get_logger

from .registry import get_job


logger = get_logger("jobs.executor")


async def execute_job(name: str, **options: Any) -> Any:
    """
    Execute a job by name.

    Args:
        name: Job name
        **options: Keyword arguments forwarded to the job

    Returns:
        Whatever the job returns

    Raises:
        JobError: If the job is unknown or fails
    """
    job_func = get_job(name)
    if job_func is None:
        raise JobError(message=f"Unknown job: {name}", error_code="UNKNOWN_JOB")

    start_time = time.monotonic()

    try:
        if inspect.iscoroutinefunction(job_func):
            result = await job_func(**options)
        else:
            result = job_func(**options)

        duration = time.monotonic() - start_time
        logger.info(f"Job {name} executed in {duration:.2f}s")
        return result

    except Exception as e:
        duration = time.monotonic() - start_time
        logger.exception(f"Job {name} failed after {duration:.2f}s")
        raise JobError(
            message=f"Job execution failed: {e!s}",
            error_code="JOB_EXECUTION_FAILED",
            details={"job_name": name, "duration_seconds": duration},
        ) from e
