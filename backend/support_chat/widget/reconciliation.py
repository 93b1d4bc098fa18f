"""Reconciliation of server-reported messages into the visitor's transcript.

Merging is a set union on message id that keeps the existing transcript
as-is and appends unseen remote messages in remote order, so running the
same pass twice leaves the transcript unchanged. Any pull or push channel
can feed it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol

from ..schemas.messages import WELCOME_MESSAGE_ID, Message
from .conversation import Conversation
from .identity_store import LocalIdentityStore
from .inbox_client import InboxClient, InboxUnavailableError

logger = logging.getLogger(__name__)


class OperatorMessageListener(Protocol):
    def on_new_operator_messages(self, count: int) -> None: ...


class ResolutionListener(Protocol):
    def on_resolution_observed(self) -> bool: ...


@dataclass
class ReconcileResult:
    messages: list[Message]
    ticket_id: str | None


def _is_welcome(message: Message) -> bool:
    return message.id == WELCOME_MESSAGE_ID and message.sender == "system"


def merge_transcript(
    existing: Sequence[Message],
    remote: Sequence[Message],
    suppressed_ids: Iterable[str] = (),
) -> list[Message]:
    """Append remote messages not yet in ``existing``, preserving remote order.

    The client-only welcome banner never takes part in id comparisons.
    Ids in ``suppressed_ids`` are never (re)added.
    """
    seen = {m.id for m in existing if not _is_welcome(m)}
    seen.update(suppressed_ids)
    merged = list(existing)
    for message in remote:
        if message.id in seen:
            continue
        seen.add(message.id)
        merged.append(message)
    return merged


class ReconciliationEngine:
    """Pulls the visitor's ticket from the inbox and folds it into the conversation."""

    def __init__(
        self,
        client: InboxClient,
        conversation: Conversation,
        store: LocalIdentityStore,
        notifications: OperatorMessageListener,
        resolution: ResolutionListener,
    ):
        self.client = client
        self.conversation = conversation
        self.store = store
        self.notifications = notifications
        self.resolution = resolution

    async def reconcile(self, email: str, ticket_id: str | None = None) -> ReconcileResult | None:
        """Run one reconciliation pass.

        Returns None when the inbox could not be reached (retried on the next
        poll) or when the identity changed while the request was in flight.
        """
        conv = self.conversation
        generation = conv.generation

        try:
            snapshot = await self.client.get_messages(email, ticket_id)
        except InboxUnavailableError as exc:
            logger.warning("Reconcile for %s failed, retrying on next poll: %s", email, exc)
            return None

        if generation != conv.generation or conv.email != email:
            logger.debug("Discarding stale reconcile result for %s", email)
            return None

        if snapshot.ticket_id and snapshot.ticket_id != conv.ticket_id and conv.identity:
            logger.info(
                "Adopting ticket %s for %s (was %s)", snapshot.ticket_id, email, conv.ticket_id
            )
            self.store.save(conv.adopt_ticket(snapshot.ticket_id))

        conv.transcript = merge_transcript(
            conv.transcript, snapshot.messages, conv.handled_marker_ids
        )

        operator_count = sum(1 for m in snapshot.messages if m.sender == "operator")
        if conv.primed and operator_count > conv.operator_count:
            self.notifications.on_new_operator_messages(operator_count - conv.operator_count)
        conv.operator_count = operator_count
        conv.primed = True

        if conv.has_unhandled_marker():
            self.resolution.on_resolution_observed()

        return ReconcileResult(messages=list(conv.transcript), ticket_id=conv.ticket_id)
