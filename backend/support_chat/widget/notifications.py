"""Unread counting and the new-message cue."""

import logging
from collections.abc import Callable
from typing import Optional

logger = logging.getLogger(__name__)


class UnreadNotificationController:
    """Counts operator messages that arrive while the conversation view is closed.

    The cue is best-effort: a failing cue never blocks the counter update.
    """

    def __init__(self, cue: Optional[Callable[[], None]] = None):
        self.cue = cue
        self.unread_count = 0
        self.view_open = False

    def on_new_operator_messages(self, count: int) -> None:
        if count <= 0 or self.view_open:
            return
        self.unread_count += count
        self._play_cue()

    def on_view_opened(self) -> None:
        self.view_open = True
        self.unread_count = 0

    def on_view_closed(self) -> None:
        self.view_open = False

    def _play_cue(self) -> None:
        if self.cue is None:
            return
        try:
            self.cue()
        except Exception:
            logger.debug("Notification cue failed", exc_info=True)
