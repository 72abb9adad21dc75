"""Base class for fixed-interval background sweeps."""

import asyncio

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database import async_session_factory

logger = structlog.get_logger()


class PeriodicWorker:
    """Runs ``tick`` every ``interval_seconds`` until stopped.

    Each tick gets its own database session. A failing tick is logged and
    the loop carries on; the next tick retries. ``stop`` waits for the tick
    in progress to finish.
    """

    name = "periodic-worker"

    def __init__(
        self,
        interval_seconds: float,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        self._interval = interval_seconds
        self._session_factory = session_factory or async_session_factory
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    async def tick(self, session: AsyncSession) -> None:
        raise NotImplementedError

    async def run_once(self) -> None:
        """Execute a single tick in a fresh session, logging any failure."""
        try:
            async with self._session_factory() as session:
                await self.tick(session)
        except Exception:
            logger.exception("Background sweep failed", worker=self.name)

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run(), name=self.name)
        logger.info("Background worker started", worker=self.name)

    async def stop(self) -> None:
        self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None
        logger.info("Background worker stopped", worker=self.name)

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            await self.run_once()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except TimeoutError:
                pass
