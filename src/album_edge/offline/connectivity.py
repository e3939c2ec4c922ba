from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class ConnectivityMonitor:
    """
    Periodically probes the origin and fires ``on_restored`` when it becomes reachable.

    The first successful probe after start counts as a restoration, so work left
    pending by a previous process is resumed.
    """

    def __init__(
        self,
        *,
        probe: Callable[[], Awaitable[bool]],
        on_restored: Callable[[], Awaitable[None]],
        interval_seconds: float,
    ) -> None:
        self._probe = probe
        self._on_restored = on_restored
        self._interval_seconds = interval_seconds
        self._online: Optional[bool] = None
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()

    @property
    def online(self) -> Optional[bool]:
        return self._online

    def start(self) -> None:
        if self._task and not self._task.done():
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._loop(), name="connectivity-monitor")

    async def stop(self) -> None:
        if not self._task:
            return
        self._stop_event.set()
        await self._task
        self._task = None

    async def tick(self) -> bool:
        """Run one probe. Returns True when this probe observed a restoration."""
        try:
            reachable = await self._probe()
        except Exception:
            logger.exception("Connectivity probe failed unexpectedly.")
            reachable = False

        previous = self._online
        self._online = reachable
        if not reachable:
            if previous is not False:
                logger.info("Origin unreachable. previously_online=%s", previous)
            return False
        if previous is True:
            return False

        logger.info("Connectivity restored. previously_online=%s", previous)
        await self._on_restored()
        return True

    async def _loop(self) -> None:
        while not self._stop_event.is_set():
            started = time.monotonic()
            try:
                await self.tick()
            except Exception:
                logger.exception("Connectivity restoration handler failed.")
            elapsed = time.monotonic() - started
            sleep_seconds = max(0.0, self._interval_seconds - elapsed)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=sleep_seconds)
            except asyncio.TimeoutError:
                continue
