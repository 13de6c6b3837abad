"""Celery worker configuration.

Runs the periodic sweep that cancels pending bookings whose payment window has
passed, releasing their court slots. Start with:

    celery -A sportbook.worker worker --beat
"""

import asyncio
import logging

from celery import Celery

from sportbook.core.config import settings

logger = logging.getLogger(__name__)

celery_app = Celery(
    "sportbook",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone=settings.venue_timezone,
    enable_utc=True,
    beat_schedule={
        "expire-overdue-bookings": {
            "task": "sportbook.expire_overdue_bookings",
            "schedule": float(settings.expire_sweep_seconds),
        },
    },
)


async def _expire_overdue() -> list[int]:
    # Imported here so the worker does not build an engine until a task runs
    from sportbook.core.database import async_session_factory, engine
    from sportbook.core.unit_of_work import make_uow_factory
    from sportbook.services.lifecycle import BookingLifecycle

    try:
        lifecycle = BookingLifecycle(make_uow_factory(async_session_factory))
        return await lifecycle.expire_overdue()
    finally:
        # Each task gets a fresh event loop; pooled connections cannot be reused across loops
        await engine.dispose()


@celery_app.task(name="sportbook.expire_overdue_bookings")
def expire_overdue_bookings() -> list[int]:
    expired = asyncio.run(_expire_overdue())
    logger.info("Overdue sweep cancelled %d booking(s)", len(expired))
    return expired
