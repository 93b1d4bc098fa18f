"""Cooperative polling schedule for the chat widget.

Two mutually exclusive cadences: foreground (view open, immediate first poll)
and background (view closed, unread counting only). The next tick is
scheduled only after the current poll has completed, and a cadence switch
never cancels a poll that is already in flight; the next tick waits for it.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Literal, Optional

from ..core.config import get_settings
from .timers import TimerHandle

logger = logging.getLogger(__name__)

Cadence = Literal["foreground", "background"]


class PollingScheduler:
    """Runs ``poll`` on a chained-timeout cadence while ``has_identity()`` holds.

    Must be started from within a running event loop.
    """

    def __init__(
        self,
        poll: Callable[[], Awaitable[Any]],
        has_identity: Callable[[], bool],
        foreground_seconds: Optional[float] = None,
        background_seconds: Optional[float] = None,
    ):
        settings = get_settings()
        self._poll = poll
        self._has_identity = has_identity
        self.foreground_seconds = (
            foreground_seconds if foreground_seconds is not None else settings.foreground_poll_seconds
        )
        self.background_seconds = (
            background_seconds if background_seconds is not None else settings.background_poll_seconds
        )
        self.cadence: Optional[Cadence] = None
        self._timer: Optional[TimerHandle] = None
        self._in_flight: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self._timer is not None and self._timer.active

    @property
    def in_flight(self) -> bool:
        return self._in_flight is not None and not self._in_flight.done()

    def start_foreground(self) -> TimerHandle:
        """Poll now, then every foreground interval. Replaces any running cadence."""
        return self._start("foreground", self.foreground_seconds, immediate=True)

    def start_background(self) -> TimerHandle:
        """Poll every background interval. Replaces any running cadence."""
        return self._start("background", self.background_seconds, immediate=False)

    def cancel(self) -> None:
        """Stop the running cadence. An in-flight poll is left to complete."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self.cadence = None

    def _start(self, cadence: Cadence, interval: float, immediate: bool) -> TimerHandle:
        self.cancel()
        self.cadence = cadence
        self._timer = TimerHandle.start(self._run(interval, immediate), name=f"{cadence}-poll")
        logger.debug("Started %s polling every %.1fs", cadence, interval)
        return self._timer

    async def _run(self, interval: float, immediate: bool) -> None:
        if immediate:
            await self._tick()
        while True:
            await asyncio.sleep(interval)
            await self._tick()

    async def _tick(self) -> None:
        if self.in_flight:
            await asyncio.shield(self._in_flight)
        if not self._has_identity():
            return
        self._in_flight = asyncio.get_running_loop().create_task(self._poll_safely())
        await asyncio.shield(self._in_flight)

    async def _poll_safely(self) -> None:
        try:
            await self._poll()
        except Exception:
            logger.exception("Support chat poll failed, keeping the schedule")
