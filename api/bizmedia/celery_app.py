"""Celery app: dispatches and runs the orphan sweep."""

from celery import Celery

from bizmedia.config import settings

celery_app = Celery(
    "bizmedia",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["bizmedia.tasks.sweep"],
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    # Sweeps touch a whole partition; hand them out one at a time
    worker_prefetch_multiplier=1,
    result_expires=24 * 3600,
)
