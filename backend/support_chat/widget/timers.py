"""Owned, cancelable handles for the widget's cooperative timers."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any


class TimerHandle:
    """Wraps the asyncio task driving a timer loop."""

    def __init__(self, task: asyncio.Task):
        self._task = task

    @classmethod
    def start(cls, coro: Coroutine[Any, Any, Any], name: str | None = None) -> "TimerHandle":
        """Schedule ``coro`` on the running loop. Raises RuntimeError without one."""
        return cls(asyncio.get_running_loop().create_task(coro, name=name))

    @property
    def active(self) -> bool:
        return not self._task.done()

    def cancel(self) -> None:
        if self._task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        # A timer that cancels itself just runs off the end of its loop
        if self._task is current:
            return
        self._task.cancel()
