"""
Campus Delivery: Celery application

Uses Redis as both broker and result backend. Only the order projection
(backend copy of a placed order) runs here.
"""
from celery import Celery

from campus_delivery.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "campus_delivery",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["campus_delivery.tasks.projection"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,           # Only ack after task completes (fault-tolerant)
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    task_track_started=True,
)
