"""Celery application configuration."""

from celery import Celery

from merchant.core.config import settings

# Create Celery app
celery_app = Celery(
    "merchant",
    broker=str(settings.redis_url),
    backend=str(settings.redis_url),
    include=[
        "merchant.workers.tasks.notifications",
    ],
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Task safety limits
    task_time_limit=120,
    task_soft_time_limit=90,
    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    # Results are not read by the API
    task_ignore_result=True,
    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=4,
    # Default queue name (must match worker -Q flag)
    task_default_queue="default",
    task_routes={
        "tasks.notifications.*": {"queue": "notifications"},
    },
    # Do not block an API request for long when the broker is down
    broker_connection_timeout=2,
    broker_transport_options={"max_retries": 1},
)


# Task base class with common error handling
class BaseTask(celery_app.Task):  # type: ignore[misc, name-defined]
    """Base task class with retry and exponential backoff."""

    abstract = True
    autoretry_for = (Exception,)
    retry_backoff = True
    retry_backoff_max = 600  # Max 10 minutes between retries
    retry_jitter = True
    max_retries = 3
