"""In-memory state of the visitor's current conversation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from ..core.config import get_settings
from ..schemas.identity import VisitorIdentity
from ..schemas.messages import WELCOME_MESSAGE_ID, Message
from ..services.message_codec import system_message


def welcome_message(name: str = "", company_name: str | None = None) -> Message:
    """The client-only banner that opens every conversation."""
    company = company_name or get_settings().company_name
    if name:
        text = f"Hi, {name}! 👋 How can we help you today?"
    else:
        text = f"Hi! 👋 Welcome to {company} support. Fill in your details to start the chat."
    return system_message(WELCOME_MESSAGE_ID, text, datetime.now(UTC))


@dataclass
class Conversation:
    """Transcript and counters mutated by successive reconciliation passes.

    ``generation`` changes whenever the identity or ticket is reset, so a
    reconcile that was in flight across a reset can recognise its result as
    stale.
    """

    identity: VisitorIdentity | None = None
    transcript: list[Message] = field(default_factory=list)
    operator_count: int = 0
    primed: bool = False
    handled_marker_ids: set[str] = field(default_factory=set)
    generation: int = 0

    @property
    def email(self) -> str | None:
        return self.identity.email if self.identity else None

    @property
    def ticket_id(self) -> str | None:
        return self.identity.ticket_id if self.identity else None

    def has_unhandled_marker(self) -> bool:
        return any(
            m.is_resolution_marker and m.id not in self.handled_marker_ids
            for m in self.transcript
        )

    def adopt_ticket(self, ticket_id: str) -> VisitorIdentity | None:
        """Switch to ``ticket_id``; operator counts restart from the new ticket."""
        if self.identity is None or ticket_id == self.identity.ticket_id:
            return self.identity
        self.identity = self.identity.model_copy(update={"ticket_id": ticket_id})
        self.operator_count = 0
        return self.identity

    def restart(self, identity: VisitorIdentity | None) -> None:
        """Start over with a single welcome message for ``identity``."""
        self.identity = identity
        self.transcript = [welcome_message(identity.name if identity else "")]
        self.operator_count = 0
        self.primed = False
        self.generation += 1
