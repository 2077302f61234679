"""Celery tasks: push delivery and periodic counter reconciliation."""
import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from solfeed.core.celery_app import celery_app
from solfeed.core.config import settings
from solfeed.services import counter_service

logger = logging.getLogger(__name__)


@celery_app.task
def send_push_notification(user_id: str, title: str, body: str) -> None:
    # Placeholder: FCM/APNs. The in-app list is the source of truth either way.
    logger.info("Push to user %s: %s - %s", user_id, title, body)


async def _reconcile() -> int:
    # Every task run gets a fresh event loop; connections must not outlive it
    engine = create_async_engine(settings.DATABASE_URL, poolclass=NullPool)
    try:
        async with AsyncSession(engine, expire_on_commit=False) as db:
            corrected = await counter_service.reconcile(db)
            await db.commit()
            return corrected
    finally:
        await engine.dispose()


@celery_app.task
def reconcile_post_counters() -> int:
    corrected = asyncio.run(_reconcile())
    logger.info("Counter reconciliation finished, %d post(s) corrected", corrected)
    return corrected
