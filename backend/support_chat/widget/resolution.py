"""Resolution state machine for the visitor's conversation.

    ACTIVE   --[resolution marker observed]--> RESOLVED(start)
    RESOLVED --[tick]-->                       RESOLVED(n - 1)
    RESOLVED --[tick, n = 0]-->                RESET --> ACTIVE (no ticket)
    RESOLVED --[continue]-->                   ACTIVE (same ticket)
    RESOLVED --[new request]-->                RESET --> ACTIVE (no ticket)

Runs entirely client-side; the server only ever sees the marker message.
"""

import asyncio
import logging
from collections.abc import Callable
from enum import StrEnum
from typing import Optional

from ..core.config import get_settings
from .conversation import Conversation
from .identity_store import LocalIdentityStore
from .timers import TimerHandle

logger = logging.getLogger(__name__)


class ResolutionState(StrEnum):
    ACTIVE = "active"
    RESOLVED = "resolved"
    RESET = "reset"


StateListener = Callable[[ResolutionState, int], None]


class ResolutionStateMachine:
    """Drives the resolved-with-countdown lifecycle over a ``Conversation``."""

    def __init__(
        self,
        conversation: Conversation,
        store: LocalIdentityStore,
        countdown_start: Optional[int] = None,
        tick_seconds: Optional[float] = None,
    ):
        settings = get_settings()
        self.conversation = conversation
        self.store = store
        self.countdown_start = (
            countdown_start if countdown_start is not None else settings.resolution_countdown_start
        )
        self.tick_seconds = (
            tick_seconds if tick_seconds is not None else settings.countdown_tick_seconds
        )
        self.state = ResolutionState.ACTIVE
        self.remaining = 0
        self._countdown: Optional[TimerHandle] = None
        self._listeners: list[StateListener] = []

    @property
    def countdown_active(self) -> bool:
        return self._countdown is not None and self._countdown.active

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def _set_state(self, state: ResolutionState) -> None:
        self.state = state
        self._notify()

    def _notify(self) -> None:
        for listener in self._listeners:
            listener(self.state, self.remaining)

    # ── Countdown ────────────────────────────────────────────────────

    def start_countdown(self) -> None:
        """(Re)start the countdown; a running one is cancelled first."""
        self._cancel_countdown()
        self.remaining = self.countdown_start
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # No running loop: the countdown is driven through tick()
            logger.debug("No event loop, resolution countdown is manual")
            return
        self._countdown = TimerHandle.start(self._run_countdown(), name="resolution-countdown")

    async def _run_countdown(self) -> None:
        while self.state is ResolutionState.RESOLVED and self.remaining > 0:
            await asyncio.sleep(self.tick_seconds)
            self.tick()

    def _cancel_countdown(self) -> None:
        if self._countdown is not None:
            self._countdown.cancel()
            self._countdown = None

    def tick(self) -> None:
        """Advance the countdown by one step; reaching zero resets the conversation."""
        if self.state is not ResolutionState.RESOLVED:
            return
        self.remaining = max(self.remaining - 1, 0)
        self._notify()
        if self.remaining == 0:
            self._reset()

    # ── Transitions ──────────────────────────────────────────────────

    def on_resolution_observed(self) -> bool:
        """Enter RESOLVED if an unhandled marker is visible. Returns True on transition."""
        if self.state is not ResolutionState.ACTIVE:
            return False
        if not self.conversation.has_unhandled_marker():
            return False
        logger.info("Ticket %s resolved by support", self.conversation.ticket_id)
        self.remaining = self.countdown_start
        self._set_state(ResolutionState.RESOLVED)
        self.start_countdown()
        return True

    def continue_subject(self) -> bool:
        """Keep talking on the same ticket: drop the markers and stop the countdown."""
        if self.state is not ResolutionState.RESOLVED:
            return False
        self._cancel_countdown()
        conv = self.conversation
        conv.handled_marker_ids.update(m.id for m in conv.transcript if m.is_resolution_marker)
        conv.transcript = [m for m in conv.transcript if not m.is_resolution_marker]
        self.remaining = 0
        logger.info("Visitor continued resolved ticket %s", conv.ticket_id)
        self._set_state(ResolutionState.ACTIVE)
        return True

    def new_request(self) -> bool:
        """Abandon the resolved ticket right away. A no-op unless RESOLVED."""
        if self.state is not ResolutionState.RESOLVED:
            return False
        self._reset()
        return True

    def _reset(self) -> None:
        self._cancel_countdown()
        self.remaining = 0
        conv = self.conversation
        previous_ticket = conv.ticket_id
        self._set_state(ResolutionState.RESET)

        # Markers of the forgotten ticket must not resolve the next one
        conv.handled_marker_ids.update(m.id for m in conv.transcript if m.is_resolution_marker)
        identity = conv.identity.without_ticket() if conv.identity else None
        conv.restart(identity)
        if identity is not None:
            self.store.save(identity)

        logger.info("Conversation on ticket %s reset to a fresh request", previous_ticket)
        self._set_state(ResolutionState.ACTIVE)

    def cancel(self) -> None:
        """Stop the countdown without changing state (teardown)."""
        self._cancel_countdown()
