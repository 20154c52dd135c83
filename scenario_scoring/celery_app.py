"""Celery application setup for background jobs."""

from __future__ import annotations

import os

from celery import Celery
from kombu import Queue

from scenario_scoring.core.config import settings


broker_url = os.getenv("CELERY_BROKER_URL", settings.valkey_url)
result_backend = os.getenv("CELERY_RESULT_BACKEND", broker_url)

celery_app = Celery("scenario_scoring", broker=broker_url, backend=result_backend)

celery_app.conf.update(
    timezone="UTC",
    enable_utc=True,
    broker_connection_retry_on_startup=True,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_track_started=True,
    task_soft_time_limit=int(os.getenv("CELERY_TASK_SOFT_TIME_LIMIT", "1800")),
    task_time_limit=int(os.getenv("CELERY_TASK_TIME_LIMIT", "2100")),
    worker_max_tasks_per_child=int(os.getenv("CELERY_MAX_TASKS_PER_CHILD", "100")),
    task_default_queue="default",
    task_routes={
        "jobs.analog_score_cache_populate": {"queue": "batch"},
    },
    task_queues=(
        Queue("default", routing_key="default"),
        Queue("batch", routing_key="batch"),
    ),
)

celery_app.autodiscover_tasks(["scenario_scoring.jobs"])
