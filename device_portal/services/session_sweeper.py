"""
Expired-session sweeper.

A small component owned by the application lifecycle: `start()` is
called on startup, `stop()` on shutdown.  While running it deletes
expired session rows every `SESSION_SWEEP_INTERVAL_SECONDS`.

Lookups already ignore expired rows, so the sweep is pure housekeeping;
deletes are idempotent and safe to race with normal traffic.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from device_portal.services import session_service

logger = logging.getLogger(__name__)


class SessionSweeper:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        interval_seconds: float,
    ):
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> int:
        """Sweep once in a fresh DB session and return the rows removed."""
        async with self.session_factory() as db:
            removed = await session_service.sweep_expired_sessions(db)
            await db.commit()
        if removed:
            logger.info("Swept %d expired session(s).", removed)
        return removed

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Expired-session sweep failed; retrying next interval.")

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="session-sweeper")
        logger.info("Session sweeper started (every %ss).", self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Session sweeper stopped.")
