# src/core/sync/worker.py
"""Single-flight background sync queue.

SyncWorker is the only caller of the engine's push and pull. At most one
sync runs at a time:

- request_push() is fire-and-forget. It starts a background push when idle,
  or marks one follow-up push as pending when a sync is already running.
  Any number of requests made meanwhile coalesce into that one push.
- push() and pull() are the manual entry points. They raise
  SyncInProgressError instead of waiting when a sync is running.

Background push failures are logged and stay visible only through the
engine's SyncState; they never reach the code that requested the push.
"""

import asyncio
import logging

from src.core.errors import ParseFailure, SyncError, SyncInProgressError
from src.core.sync.engine import ReconciliationEngine
from src.core.sync.models import PullResult

logger = logging.getLogger(__name__)


class SyncWorker:
    """Serializes sync operations for one ReconciliationEngine.

    Example:
        >>> worker = SyncWorker(engine)
        >>> worker.request_push()     # returns immediately
        >>> await worker.drain()      # wait for background work
        >>> result = await worker.pull()
    """

    def __init__(self, engine: ReconciliationEngine) -> None:
        self._engine = engine
        self._lock = asyncio.Lock()
        self._task: asyncio.Task | None = None
        self._pending = False

    @property
    def busy(self) -> bool:
        """True while a sync is running or a background push is queued."""
        return self._lock.locked() or (self._task is not None and not self._task.done())

    def request_push(self) -> bool:
        """Queue a background push without waiting for it.

        Returns:
            True if a push was started or queued, False if there is no
            running event loop to run it on.
        """
        if self._task is not None and not self._task.done():
            self._pending = True
            logger.debug("Sync already scheduled, coalescing push request")
            return True

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, background push skipped")
            return False

        self._task = loop.create_task(self._run_background())
        return True

    async def _run_background(self) -> None:
        while True:
            self._pending = False
            async with self._lock:
                try:
                    await self._engine.push()
                except (SyncError, ParseFailure) as e:
                    logger.warning("Background push failed: %s", e)
                except Exception:
                    logger.exception("Unexpected error in background push")
            if not self._pending:
                break

    async def push(self) -> str:
        """Run a manual push.

        Raises:
            SyncInProgressError: If another sync is running.
            SyncError: Whatever the engine raises.
        """
        if self._lock.locked():
            raise SyncInProgressError("A sync operation is already in progress")
        async with self._lock:
            return await self._engine.push()

    async def pull(self) -> PullResult:
        """Run a manual pull.

        Raises:
            SyncInProgressError: If another sync is running.
            SyncError: Whatever the engine raises.
        """
        if self._lock.locked():
            raise SyncInProgressError("A sync operation is already in progress")
        async with self._lock:
            return await self._engine.pull()

    async def drain(self) -> None:
        """Wait until queued background pushes have finished."""
        while self._task is not None and not self._task.done():
            await asyncio.shield(self._task)

    async def shutdown(self) -> None:
        """Finish background work before the application exits."""
        await self.drain()
        logger.info("Sync worker stopped")
