"""
Campus Delivery: Celery tasks (order projection)

The spreadsheet row is the order of record. This task copies an already
placed order to the backend, retrying with exponential backoff so a
temporarily unavailable backend does not lose the copy.
"""
import logging

import httpx

from campus_delivery.core.celery_app import celery_app
from campus_delivery.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


def backoff_delay(retries: int, base_delay: int | None = None) -> int:
    """5s, 10s, 20s, ... for the default base delay."""
    base = settings.PROJECTION_BASE_DELAY_SECONDS if base_delay is None else base_delay
    return base * (2 ** retries)


@celery_app.task(
    name="project_order",
    bind=True,
    max_retries=settings.PROJECTION_MAX_RETRIES,
    acks_late=True,
)
def project_order(self, order: dict):
    try:
        with httpx.Client(base_url=settings.BACKEND_URL, timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
            response = client.post("/submit-order", json=order)
            response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.warning(
            "Order projection attempt %d failed for %s: %s",
            self.request.retries + 1, order.get("email"), exc,
        )
        raise self.retry(exc=exc, countdown=backoff_delay(self.request.retries))

    logger.info("Order for %s projected to backend", order.get("email"))
    return response.status_code
