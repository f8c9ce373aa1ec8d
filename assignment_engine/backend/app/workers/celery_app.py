# backend/app/workers/celery_app.py
from __future__ import annotations

import os

from celery import Celery
from celery.signals import setup_logging

from ..config import settings
from ..logging_config import configure_logging

BROKER = settings.celery_broker_url or os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
BACKEND = settings.celery_result_backend or os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/1")

celery_app = Celery(
    "assignment_engine",
    broker=BROKER,
    backend=BACKEND,
    include=["app.workers.import_tasks"],
)

celery_app.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_reject_on_worker_lost=True,
    task_track_started=True,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
)

# bulk item merges get their own queue
celery_app.conf.task_routes = {
    "app.workers.import_tasks.*": {"queue": "imports"},
}


@setup_logging.connect
def _configure_worker_logging(**_kwargs) -> None:
    # same JSON lines as the API instead of celery's default formatter
    configure_logging()
