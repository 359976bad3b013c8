"""Celery configuration for background and periodic jobs."""

import ssl

from celery import Celery
from celery.schedules import crontab

from learnhub.core.config import get_settings

settings = get_settings()

redis_url = settings.redis_url
broker_use_ssl = None
backend_use_ssl = None

if redis_url and redis_url.startswith("rediss://"):
    # Managed Redis with self-signed certificates
    broker_use_ssl = {"ssl_cert_reqs": ssl.CERT_NONE}
    backend_use_ssl = {"ssl_cert_reqs": ssl.CERT_NONE}

celery_app = Celery(
    "learnhub",
    broker=redis_url,
    backend=redis_url,
    include=["learnhub.tasks.scheduled_tasks"],
    broker_use_ssl=broker_use_ssl,
    redis_backend_use_ssl=backend_use_ssl,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    result_expires=3600,
    worker_prefetch_multiplier=1,
    task_routes={
        "learnhub.tasks.scheduled_tasks.refresh_transcoding_jobs": {"queue": "media"},
    },
    task_soft_time_limit=300,
    task_time_limit=360,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    beat_schedule={
        "sweep-module-unlocks": {
            "task": "learnhub.tasks.scheduled_tasks.sweep_module_unlocks",
            "schedule": settings.unlock_sweep_interval_minutes * 60,
        },
        "expire-enrollments": {
            "task": "learnhub.tasks.scheduled_tasks.expire_enrollments",
            "schedule": crontab(minute=5),
        },
        "send-payment-reminders": {
            "task": "learnhub.tasks.scheduled_tasks.send_payment_reminders",
            "schedule": crontab(hour=8, minute=0),
        },
        "refresh-transcoding-jobs": {
            "task": "learnhub.tasks.scheduled_tasks.refresh_transcoding_jobs",
            "schedule": 120,
        },
    },
)

celery_app.conf.task_queues = {
    "default": {
        "exchange": "default",
        "routing_key": "default",
    },
    "media": {
        "exchange": "media",
        "routing_key": "media",
    },
}
