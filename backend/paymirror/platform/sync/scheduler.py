"""Periodic background reconciliation."""

import asyncio
from typing import Optional

from paymirror.core.exceptions import MirrorSyncError
from paymirror.core.logging import LoggerConfigurator
from paymirror.platform.sync.reconciler import Reconciler

logger = LoggerConfigurator.configure_logger(__name__, dimensions={"component": "scheduler"})


class PeriodicSync:
    """Runs a full sync every ``interval_seconds`` until stopped.

    Runs never overlap with each other or with a manually triggered sync, since
    ``Reconciler.sync`` holds the reconciler's lock.
    """

    def __init__(self, reconciler: Reconciler, interval_seconds: float):
        """Initialize the scheduler."""
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.reconciler = reconciler
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        """Whether the background task is alive."""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the background task."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="paymirror-periodic-sync")
        logger.info(f"Periodic sync every {self.interval_seconds}s")

    async def stop(self) -> None:
        """Cancel the background task, interrupting a sync in progress."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.reconciler.sync()
            except MirrorSyncError as e:
                logger.warning(f"Periodic sync incomplete: {e}")
            except Exception as e:
                logger.error(f"Periodic sync failed: {e}", exc_info=True)
