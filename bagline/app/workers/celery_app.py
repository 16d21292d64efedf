"""Celery application instance.

Start the worker::

    celery -A bagline.app.workers.celery_app worker --loglevel=info
    celery -A bagline.app.workers.celery_app beat --loglevel=info
"""

from __future__ import annotations

from celery import Celery
from celery.schedules import crontab

from bagline.app.core.config import settings

celery = Celery(
    "bagline",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["bagline.app.workers.tasks.reconciliation"],
)

celery.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone=settings.PRODUCTION_TIMEZONE,
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
)

celery.conf.beat_schedule = {
    "reconcile-inventory-nightly": {
        "task": "bagline.app.workers.tasks.reconciliation.reconcile_inventory",
        "schedule": crontab(hour=1, minute=30),  # after the last shift closes
    },
}
