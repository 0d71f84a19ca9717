"""
Inkwell Backend — Trash Expiry Sweeper
=======================================

What:  Background task that purges trashed notes past the retention window.
Why:   Without it, trash only shrinks when a user opens their trash listing
       (the lazy sweep). Notes of users who never come back would be kept
       forever.
How:   An asyncio task started in the FastAPI lifespan. Every
       TRASH_SWEEP_INTERVAL_SECONDS it opens its own session, runs
       NoteLifecycleService.purge_expired() over all owners, and commits.
When:  First sweep runs immediately at startup, then on the interval.

Failure Handling:
    A failed sweep is logged and rolled back; the loop keeps going and the
    next sweep retries the same notes. The task is cancelled on shutdown.
    Running several replicas is safe: purges are conditional DELETEs, so two
    sweepers racing on a note delete it once and the other skips it.
"""

import asyncio
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from app.config import settings
from app.database import async_session_factory
from app.services.lifecycle_service import NoteLifecycleService, lifecycle_service

logger = logging.getLogger(__name__)


async def sweep_once(service: NoteLifecycleService = lifecycle_service) -> int:
    """Run one expiry sweep in a fresh session. Returns the number purged."""
    async with async_session_factory() as session:
        try:
            purged = await service.purge_expired(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
    return purged


class TrashSweeper:
    """Owns the periodic sweep task."""

    def __init__(self, interval_seconds: Optional[int] = None):
        self.interval_seconds = (
            settings.trash_sweep_interval_seconds
            if interval_seconds is None
            else interval_seconds
        )
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self) -> None:
        while True:
            try:
                purged = await sweep_once()
                logger.debug("Trash sweep finished: %d purged", purged)
            except SQLAlchemyError as e:
                logger.error("Trash sweep failed: %s", str(e))
            except Exception as e:
                logger.error("Unexpected trash sweep error: %s", str(e), exc_info=True)
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self.interval_seconds <= 0:
            logger.info("Trash sweeper disabled (TRASH_SWEEP_INTERVAL_SECONDS=0)")
            return
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="trash-sweeper")
        logger.info("Trash sweeper started (every %ds)", self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Trash sweeper stopped")


trash_sweeper = TrashSweeper()
