"""Celery application for background tasks (push delivery, counter reconciliation)."""
from celery import Celery

from solfeed.core.config import settings

celery_app = Celery(
    "solfeed",
    broker=settings.CELERY_BROKER_URL,
    include=["solfeed.workers.notifications"],
)
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
    beat_schedule={
        "reconcile-post-counters": {
            "task": "solfeed.workers.notifications.reconcile_post_counters",
            "schedule": float(settings.RECONCILE_INTERVAL_SECONDS),
        },
    },
)
