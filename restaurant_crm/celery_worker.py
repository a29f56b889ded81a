"""
Celery Worker Configuration
Sets up Celery with Redis as message broker and result backend.

Run with:
    celery -A restaurant_crm.celery_worker worker --loglevel=info
"""

from celery import Celery

from restaurant_crm.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "restaurant_worker",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["restaurant_crm.tasks"],
)

celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Worker settings
    worker_prefetch_multiplier=1,  # Exports are heavy, take one at a time
    worker_concurrency=2,

    # Result settings
    result_expires=3600,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_track_started=True,
    task_soft_time_limit=settings.export_soft_time_limit,
    task_time_limit=settings.export_time_limit,

    broker_connection_retry_on_startup=True,
)


if __name__ == "__main__":
    celery_app.start()
