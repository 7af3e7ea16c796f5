"""Periodic heartbeat sweep over every open connection."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .connections import Connection, ConnectionRegistry

TeardownCallable = Callable[[Connection], Awaitable[None]]

logger = logging.getLogger(__name__)


class LivenessMonitor:
    """Probe connections on a fixed interval and tear down the ones that went quiet.

    A connection is reaped when it has not answered the probe sent on the
    previous cycle; the monitor never waits for a response.
    """

    def __init__(self, registry: ConnectionRegistry, teardown: TeardownCallable, interval: float = 30.0) -> None:
        self._registry = registry
        self._teardown = teardown
        self._interval = interval
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep(self) -> list[Connection]:
        """Run one probe-and-reap cycle."""

        reaped = await self._registry.probe_and_reap()
        for connection in reaped:
            await self._teardown(connection)
        return reaped

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="liveness-monitor")
        logger.info("Liveness monitor started (every %.1fs)", self._interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Liveness monitor stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.sweep()
            except Exception:  # noqa: BLE001 - keep sweeping on the next tick
                logger.exception("Liveness sweep failed")
