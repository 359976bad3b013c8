"""
Periodic Celery tasks.

Each task opens its own engine and event loop, runs one service call
inside a transaction and returns how many rows it touched.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.core.celery_config import celery_app
from learnhub.core.clock import utcnow
from learnhub.core.config import get_settings
from learnhub.core.database import create_engine, create_session_maker
from learnhub.services.enrollment_service import EnrollmentService
from learnhub.services.media_service import MediaConvertClient, TranscodingService
from learnhub.services.notification_service import NotificationService
from learnhub.services.storage_service import StorageService

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_async(coro):
    """Helper to run async code in sync context."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


async def _in_session(work: Callable[[AsyncSession], Awaitable[T]]) -> T:
    """Run work in a fresh engine bound to the current event loop."""
    engine = create_engine(get_settings())
    session_maker = create_session_maker(engine)
    try:
        async with session_maker() as session:
            try:
                result = await work(session)
                await session.commit()
            except Exception:
                await session.rollback()
                raise
        return result
    finally:
        await engine.dispose()


@celery_app.task
def sweep_module_unlocks() -> int:
    """Notify enrolled users about modules that became available."""
    now = utcnow()
    count = run_async(_in_session(lambda db: NotificationService(db).sweep_module_unlocks(now)))
    logger.info("Unlock sweep sent %d notification(s)", count)
    return count


@celery_app.task
def expire_enrollments() -> int:
    settings = get_settings()
    now = utcnow()
    return run_async(
        _in_session(lambda db: EnrollmentService(db, settings).expire_enrollments(now))
    )


@celery_app.task
def send_payment_reminders() -> int:
    """Remind learners about installments falling due soon."""
    days_ahead = get_settings().payment_reminder_days_ahead
    now = utcnow()
    count = run_async(
        _in_session(lambda db: NotificationService(db).send_payment_reminders(now, days_ahead))
    )
    logger.info("Sent %d payment reminder(s)", count)
    return count


@celery_app.task
def refresh_transcoding_jobs() -> int:
    settings = get_settings()
    storage = StorageService(settings)
    mediaconvert = MediaConvertClient(settings)
    now = utcnow()
    return run_async(
        _in_session(
            lambda db: TranscodingService(db, mediaconvert, storage).refresh_pending(now)
        )
    )
