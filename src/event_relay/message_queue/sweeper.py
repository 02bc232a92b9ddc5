"""
Module: sweeper.py
Description: Periodic lease sweep for the queue.

Runs QueueClient.sweep() on its own schedule, independent of request
handling, so poison messages whose lease lapsed are dead-lettered even
when no consumer is dequeuing. Failures are logged and the loop keeps
running.
"""

import asyncio
from typing import Optional

from event_relay.errors import StoreUnavailable
from event_relay.message_queue.client import QueueClient
from event_relay.models.message import SweepResult
from event_relay.utils.logger import get_logger

logger = get_logger(__name__)


class LeaseSweeper:
    """
    Background task calling QueueClient.sweep() every ``interval`` seconds.

    Example:
        >>> sweeper = LeaseSweeper(client, interval=5.0)
        >>> sweeper.start()
        >>> await sweeper.stop()
    """

    def __init__(self, client: QueueClient, interval: float = 5.0):
        if interval <= 0:
            raise ValueError("interval must be positive")

        self.client = client
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the sweep loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info("Lease sweeper started", interval_seconds=self.interval)

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Lease sweeper stopped")

    async def run_once(self) -> Optional[SweepResult]:
        """Run one sweep, returning None if the store was unavailable."""
        try:
            return await self.client.sweep()
        except StoreUnavailable as e:
            logger.warning("Lease sweep skipped, store unavailable", error=str(e))
            return None
        except Exception as e:
            logger.error(
                "Lease sweep failed",
                error=str(e),
                error_type=type(e).__name__
            )
            return None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.run_once()
