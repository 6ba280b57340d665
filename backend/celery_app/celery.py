"""
Celery application configuration.

Initializes and configures the Celery app for background tasks.
"""

from celery import Celery

from app.config import settings
from app.core.sentry import init_sentry

celery_app = Celery(
    "document_metadata",
    broker=settings.CELERY_BROKER_URL or settings.REDIS_URL,
    backend=settings.CELERY_RESULT_BACKEND or settings.REDIS_URL,
    include=["celery_app.tasks.document_tasks"],
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
)

if settings.SYNC_INTERVAL_SECONDS > 0:
    celery_app.conf.beat_schedule = {
        "sync-bucket": {
            "task": "celery_app.tasks.document_tasks.sync_bucket_task",
            "schedule": float(settings.SYNC_INTERVAL_SECONDS),
        },
    }

init_sentry()
