"""The visitor-facing support chat widget.

Composes the identity store, reconciliation engine, polling scheduler,
resolution state machine and unread controller behind the actions a chat UI
exposes. Methods that start timers must be called from a running event loop.
"""

import logging
import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from enum import StrEnum
from typing import Optional

from pydantic import ValidationError

from ..core.config import Settings, get_settings
from ..schemas.identity import VisitorIdentity
from ..schemas.messages import Message, MessageKind, RemoteMessage
from ..services.message_codec import encode_body, to_message
from .conversation import Conversation, welcome_message
from .identity_store import LocalIdentityStore
from .inbox_client import InboxClient, InboxUnavailableError
from .notifications import UnreadNotificationController
from .reconciliation import ReconcileResult, ReconciliationEngine
from .resolution import ResolutionState, ResolutionStateMachine
from .scheduler import PollingScheduler

logger = logging.getLogger(__name__)


class WidgetStep(StrEnum):
    FORM = "form"
    CHAT = "chat"


class ChatActionError(Exception):
    """An explicit visitor action failed; shown once as an error notice."""


class ChatWidget:
    """
    Support chat session for one visitor.

    Usage:
        widget = ChatWidget(cue=play_sound)
        widget.mount()
        widget.start_chat("Ana", "ana@example.com")
        await widget.send_message("Hi, I need help with my booking")
        widget.open_view()
        ...
        widget.teardown()
    """

    def __init__(
        self,
        client: Optional[InboxClient] = None,
        store: Optional[LocalIdentityStore] = None,
        settings: Optional[Settings] = None,
        cue: Optional[Callable[[], None]] = None,
        company_id: Optional[str] = None,
    ):
        self.settings = settings or get_settings()
        self.client = client or InboxClient()
        self.store = store or LocalIdentityStore()
        self.company_id = company_id

        self.conversation = Conversation()
        self.notifications = UnreadNotificationController(cue)
        self.resolution = ResolutionStateMachine(
            self.conversation,
            self.store,
            countdown_start=self.settings.resolution_countdown_start,
            tick_seconds=self.settings.countdown_tick_seconds,
        )
        self.resolution.add_listener(self._on_resolution_state)
        self.engine = ReconciliationEngine(
            self.client,
            self.conversation,
            self.store,
            self.notifications,
            self.resolution,
        )
        self.scheduler = PollingScheduler(
            self.poll,
            lambda: self.conversation.email is not None,
            foreground_seconds=self.settings.foreground_poll_seconds,
            background_seconds=self.settings.background_poll_seconds,
        )
        self.step = WidgetStep.FORM

    # ── Read-only views ──────────────────────────────────────────────

    @property
    def transcript(self) -> list[Message]:
        return list(self.conversation.transcript)

    @property
    def identity(self) -> Optional[VisitorIdentity]:
        return self.conversation.identity

    @property
    def unread_count(self) -> int:
        return self.notifications.unread_count

    @property
    def state(self) -> ResolutionState:
        return self.resolution.state

    @property
    def countdown(self) -> int:
        return self.resolution.remaining

    @property
    def view_open(self) -> bool:
        return self.notifications.view_open

    # ── Lifecycle ────────────────────────────────────────────────────

    def mount(self) -> WidgetStep:
        """Restore the stored identity; an active ticket resumes straight into the chat."""
        identity = self.store.load()
        self.conversation.restart(identity)
        if identity is not None and identity.ticket_id:
            self.step = WidgetStep.CHAT
            logger.debug("Resuming support chat on ticket %s", identity.ticket_id)
        else:
            self.step = WidgetStep.FORM
            self.conversation.transcript = [welcome_message()]

        if identity is not None and not self.view_open:
            self.scheduler.start_background()
        return self.step

    def teardown(self) -> None:
        """Cancel every pending timer (polls and countdown)."""
        self.scheduler.cancel()
        self.resolution.cancel()

    # ── Visitor actions ──────────────────────────────────────────────

    def start_chat(self, name: str, email: str, phone: str = "") -> VisitorIdentity:
        """Submit the intake form."""
        name, email, phone = name.strip(), email.strip(), phone.strip()
        if not name or not email:
            raise ChatActionError("Fill in your name and e-mail to continue")

        previous = self.conversation.identity
        ticket_id = previous.ticket_id if previous is not None and previous.email == email else None
        identity = VisitorIdentity(name=name, email=email, phone=phone, ticket_id=ticket_id)

        self.store.save(identity)
        self.conversation.restart(identity)
        self.step = WidgetStep.CHAT
        return identity

    async def send_message(self, text: str) -> Message:
        """Send a visitor message and reconcile right away."""
        text = text.strip()
        if not text:
            raise ChatActionError("Type a message first")
        identity = self.conversation.identity
        if identity is None or self.step is not WidgetStep.CHAT:
            raise ChatActionError("Start the chat before sending messages")

        local = to_message(
            RemoteMessage(
                id=f"local-{uuid.uuid4().hex}",
                sender_type="company",
                message=text,
                created_at=datetime.now(UTC),
            )
        )
        self.conversation.transcript.append(local)
        generation = self.conversation.generation

        try:
            response = await self.client.send_message(
                identity.name,
                identity.email,
                identity.phone,
                text,
                company_id=self.company_id,
                ticket_id=identity.ticket_id,
            )
        except (InboxUnavailableError, ValidationError) as exc:
            self.conversation.transcript = [
                m for m in self.conversation.transcript if m.id != local.id
            ]
            logger.warning("Failed to send support message for %s: %s", identity.email, exc)
            raise ChatActionError("Your message could not be sent. Please try again.") from exc

        if generation != self.conversation.generation:
            return local

        sent = local
        if response.message_id:
            sent = local.model_copy(update={"id": response.message_id})
            known = {m.id for m in self.conversation.transcript}
            self.conversation.transcript = [
                sent if m.id == local.id else m
                for m in self.conversation.transcript
                if not (m.id == local.id and sent.id in known)
            ]

        current = self.conversation.identity
        if current is not None and response.ticket_id != current.ticket_id:
            self.store.save(self.conversation.adopt_ticket(response.ticket_id))

        await self.poll()
        return sent

    async def send_attachment(self, kind: MessageKind, url: str) -> Message:
        """Send an already uploaded media link as a tagged message."""
        if kind in (MessageKind.TEXT, MessageKind.RESOLUTION):
            raise ChatActionError(f"{kind} is not an attachment kind")
        return await self.send_message(encode_body(kind, url))

    def open_view(self) -> None:
        self.notifications.on_view_opened()
        self.scheduler.start_foreground()

    def close_view(self) -> None:
        self.notifications.on_view_closed()
        self.scheduler.start_background()

    def continue_subject(self) -> bool:
        return self.resolution.continue_subject()

    def new_request(self) -> bool:
        return self.resolution.new_request()

    def reset_identity(self) -> None:
        """Forget the visitor entirely and return to an empty intake form."""
        self.resolution.cancel()
        self.store.clear()
        self.conversation.restart(None)
        self.resolution.state = ResolutionState.ACTIVE
        self.step = WidgetStep.FORM

    # ── Sync ─────────────────────────────────────────────────────────

    async def poll(self) -> Optional[ReconcileResult]:
        """One reconciliation pass for the current identity."""
        identity = self.conversation.identity
        if identity is None:
            return None
        return await self.engine.reconcile(identity.email, identity.ticket_id)

    def _on_resolution_state(self, state: ResolutionState, remaining: int) -> None:
        if state is ResolutionState.RESET:
            self.step = WidgetStep.FORM
