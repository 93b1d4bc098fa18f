"""Tests for the ChatWidget session."""

import asyncio
from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest

from support_chat.core.config import Settings
from support_chat.schemas.messages import (
    ContactMessageResponse,
    Message,
    MessageKind,
    RemoteMessage,
)
from support_chat.services.message_codec import to_message
from support_chat.widget.inbox_client import InboxSnapshot, InboxUnavailableError
from support_chat.widget.resolution import ResolutionState
from support_chat.widget.session import ChatActionError, ChatWidget, WidgetStep

T0 = datetime(2026, 1, 1, 10, 0, tzinfo=UTC)


# ── Helpers ──────────────────────────────────────────────────────────


def _settings(**overrides):
    defaults = dict(
        foreground_poll_seconds=3600,
        background_poll_seconds=3600,
        resolution_countdown_start=15,
        countdown_tick_seconds=3600,
        company_name="Corte & Arte",
    )
    defaults.update(overrides)
    return Settings(**defaults)


def _msg(mid, sender="operator", text="hello", marker=False):
    return Message(
        id=mid,
        text=text,
        sender=sender,
        timestamp=T0,
        kind=MessageKind.RESOLUTION if marker else MessageKind.TEXT,
        is_resolution_marker=marker,
    )


@pytest.fixture
def widget(fake_client, store):
    w = ChatWidget(client=fake_client, store=store, settings=_settings(), cue=MagicMock())
    yield w
    w.teardown()


# ── mount ────────────────────────────────────────────────────────────


class TestMount:
    @pytest.mark.asyncio
    async def test_stored_ticket_resumes_chat(self, widget, store, identity):
        store.save(identity)

        step = widget.mount()

        assert step is WidgetStep.CHAT
        assert [m.id for m in widget.transcript] == ["welcome"]
        assert "Ana" in widget.transcript[0].text
        assert widget.scheduler.cadence == "background"

    @pytest.mark.asyncio
    async def test_identity_without_ticket_prefills_form(self, widget, store, identity):
        store.save(identity.without_ticket())

        assert widget.mount() is WidgetStep.FORM
        assert widget.identity.email == "a@b.com"
        assert widget.scheduler.cadence == "background"

    @pytest.mark.asyncio
    async def test_no_identity_shows_form_without_polling(self, widget):
        assert widget.mount() is WidgetStep.FORM
        assert widget.identity is None
        assert widget.scheduler.active is False

    @pytest.mark.asyncio
    async def test_corrupt_identity_shows_form(self, widget, store):
        store.path.write_text("{broken", encoding="utf-8")
        assert widget.mount() is WidgetStep.FORM
        assert widget.identity is None


# ── start_chat ───────────────────────────────────────────────────────


class TestStartChat:
    def test_requires_name_and_email(self, widget):
        with pytest.raises(ChatActionError):
            widget.start_chat("  ", "a@b.com")
        with pytest.raises(ChatActionError):
            widget.start_chat("Ana", "")

    def test_persists_identity_and_greets(self, widget, store):
        identity = widget.start_chat(" Ana ", "a@b.com", "55119")

        assert store.load() == identity
        assert identity.ticket_id is None
        assert widget.step is WidgetStep.CHAT
        assert [m.id for m in widget.transcript] == ["welcome"]

    def test_same_email_keeps_ticket(self, widget, store, identity):
        store.save(identity)
        widget.conversation.restart(store.load())
        assert widget.start_chat("Ana", "a@b.com").ticket_id == "T1"

    def test_other_email_drops_ticket(self, widget, store, identity):
        store.save(identity)
        widget.conversation.restart(store.load())
        assert widget.start_chat("Bea", "bea@b.com").ticket_id is None


# ── send_message ─────────────────────────────────────────────────────


class TestSendMessage:
    @pytest.mark.asyncio
    async def test_send_adopts_ticket_and_reconciles(self, widget, fake_client, store):
        widget.start_chat("Ana", "a@b.com")
        fake_client.send_message.return_value = ContactMessageResponse(
            ticket_id="T9", message_id="srv-1"
        )
        fake_client.get_messages.return_value = InboxSnapshot(
            ticket_id="T9",
            messages=[_msg("srv-1", sender="visitor", text="Need help"), _msg("m1")],
        )

        sent = await widget.send_message("Need help")

        assert sent.id == "srv-1"
        assert [m.id for m in widget.transcript] == ["welcome", "srv-1", "m1"]
        assert store.load().ticket_id == "T9"
        fake_client.get_messages.assert_awaited_with("a@b.com", "T9")

    @pytest.mark.asyncio
    async def test_without_server_id_keeps_local_message(self, widget, fake_client):
        widget.start_chat("Ana", "a@b.com")
        fake_client.send_message.return_value = ContactMessageResponse(ticket_id="T1")

        sent = await widget.send_message("Hello")

        assert sent.id.startswith("local-")
        assert [m.text for m in widget.transcript][-1] == "Hello"

    @pytest.mark.asyncio
    async def test_failure_raises_notice_and_rolls_back(self, widget, fake_client):
        widget.start_chat("Ana", "a@b.com")
        fake_client.send_message.side_effect = InboxUnavailableError("503")

        with pytest.raises(ChatActionError):
            await widget.send_message("Hello")

        assert [m.id for m in widget.transcript] == ["welcome"]

    @pytest.mark.asyncio
    async def test_requires_started_chat(self, widget):
        with pytest.raises(ChatActionError):
            await widget.send_message("Hello")

    @pytest.mark.asyncio
    async def test_blank_message_rejected(self, widget, fake_client):
        widget.start_chat("Ana", "a@b.com")
        with pytest.raises(ChatActionError):
            await widget.send_message("   ")
        fake_client.send_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_send_attachment_uses_tag(self, widget, fake_client):
        widget.start_chat("Ana", "a@b.com")

        sent = await widget.send_attachment(MessageKind.IMAGE, "https://cdn.example.com/a.png")

        assert fake_client.send_message.await_args.args[3] == "[IMAGE]https://cdn.example.com/a.png"
        assert sent.kind is MessageKind.IMAGE
        assert sent.attachment.url == "https://cdn.example.com/a.png"

    @pytest.mark.asyncio
    async def test_resolution_kind_is_not_an_attachment(self, widget):
        widget.start_chat("Ana", "a@b.com")
        with pytest.raises(ChatActionError):
            await widget.send_attachment(MessageKind.RESOLUTION, "x")


# ── view / unread ────────────────────────────────────────────────────


class TestViewAndUnread:
    @pytest.mark.asyncio
    async def test_closed_view_counts_new_operator_messages(self, widget, fake_client, store, identity):
        store.save(identity)
        widget.mount()
        fake_client.get_messages.return_value = InboxSnapshot(ticket_id="T1", messages=[_msg("m1")])
        await widget.poll()
        fake_client.get_messages.return_value = InboxSnapshot(
            ticket_id="T1", messages=[_msg("m1"), _msg("m2")]
        )
        await widget.poll()

        assert widget.unread_count == 1
        widget.notifications.cue.assert_called_once()

    @pytest.mark.asyncio
    async def test_open_view_resets_and_suppresses(self, widget, fake_client, store, identity):
        store.save(identity)
        widget.mount()
        widget.notifications.unread_count = 4

        widget.open_view()
        assert widget.unread_count == 0
        assert widget.scheduler.cadence == "foreground"

        fake_client.get_messages.return_value = InboxSnapshot(ticket_id="T1", messages=[_msg("m1")])
        await widget.poll()
        fake_client.get_messages.return_value = InboxSnapshot(
            ticket_id="T1", messages=[_msg("m1"), _msg("m2"), _msg("m3")]
        )
        await widget.poll()

        assert widget.unread_count == 0
        widget.notifications.cue.assert_not_called()

    @pytest.mark.asyncio
    async def test_close_view_switches_to_background(self, widget, store, identity):
        store.save(identity)
        widget.mount()
        widget.open_view()
        widget.close_view()
        assert widget.scheduler.cadence == "background"
        assert widget.view_open is False


# ── resolution through the widget ────────────────────────────────────


class TestResolutionFlow:
    @pytest.mark.asyncio
    async def test_resolution_then_continue(self, widget, fake_client, store, identity):
        store.save(identity)
        widget.mount()
        fake_client.get_messages.return_value = InboxSnapshot(
            ticket_id="T1", messages=[_msg("m1"), _msg("r1", marker=True)]
        )

        await widget.poll()
        assert widget.state is ResolutionState.RESOLVED
        assert widget.countdown == 15

        assert widget.continue_subject() is True
        await widget.poll()

        assert widget.state is ResolutionState.ACTIVE
        assert widget.identity.ticket_id == "T1"
        assert [m.id for m in widget.transcript] == ["welcome", "m1"]

    @pytest.mark.asyncio
    async def test_new_request_returns_to_intake(self, widget, fake_client, store, identity):
        store.save(identity)
        widget.mount()
        fake_client.get_messages.return_value = InboxSnapshot(
            ticket_id="T1", messages=[_msg("r1", marker=True)]
        )
        await widget.poll()

        assert widget.new_request() is True

        assert widget.step is WidgetStep.FORM
        assert widget.identity.ticket_id is None
        assert store.load().email == "a@b.com"
        assert [m.id for m in widget.transcript] == ["welcome"]

    @pytest.mark.asyncio
    async def test_visitor_typed_sentinel_stays_active(self, widget, fake_client):
        widget.start_chat("Ana", "a@b.com")
        fake_client.send_message.return_value = ContactMessageResponse(
            ticket_id="T1", message_id="v1"
        )
        echoed = RemoteMessage(
            id="v1", sender_type="company", message="[RESOLVED] my own text", created_at=T0
        )
        fake_client.get_messages.return_value = InboxSnapshot(
            ticket_id="T1", messages=[to_message(echoed)]
        )

        await widget.send_message("[RESOLVED] my own text")

        assert widget.state is ResolutionState.ACTIVE
        assert [(m.sender, m.text) for m in widget.transcript][1:] == [
            ("visitor", "[RESOLVED] my own text")
        ]
        assert not any(m.is_resolution_marker for m in widget.transcript)

    @pytest.mark.asyncio
    async def test_continue_then_send_keeps_ticket(self, widget, fake_client, store, identity):
        store.save(identity)
        widget.mount()
        fake_client.get_messages.return_value = InboxSnapshot(
            ticket_id="T1", messages=[_msg("m1"), _msg("r1", marker=True)]
        )
        await widget.poll()
        widget.continue_subject()

        fake_client.send_message.return_value = ContactMessageResponse(
            ticket_id="T1", message_id="v2"
        )
        fake_client.get_messages.return_value = InboxSnapshot(
            ticket_id="T1",
            messages=[
                _msg("m1"),
                _msg("r1", marker=True),
                _msg("v2", sender="visitor", text="still broken"),
            ],
        )
        await widget.send_message("still broken")

        assert fake_client.send_message.await_args.kwargs["ticket_id"] == "T1"
        assert widget.identity.ticket_id == "T1"
        assert store.load().ticket_id == "T1"
        assert widget.state is ResolutionState.ACTIVE
        assert [m.id for m in widget.transcript] == ["welcome", "m1", "v2"]

    @pytest.mark.asyncio
    async def test_countdown_expiry_resets(self, fake_client, store, identity):
        widget = ChatWidget(
            client=fake_client,
            store=store,
            settings=_settings(resolution_countdown_start=2, countdown_tick_seconds=0.01),
        )
        store.save(identity)
        widget.mount()
        fake_client.get_messages.return_value = InboxSnapshot(
            ticket_id="T1", messages=[_msg("r1", marker=True)]
        )
        await widget.poll()
        fake_client.get_messages.return_value = InboxSnapshot(ticket_id=None, messages=[])

        for _ in range(100):
            if widget.state is ResolutionState.ACTIVE:
                break
            await asyncio.sleep(0.01)

        assert widget.identity.ticket_id is None
        assert store.load().ticket_id is None
        widget.teardown()


# ── teardown / reset_identity ────────────────────────────────────────


class TestTeardown:
    @pytest.mark.asyncio
    async def test_teardown_cancels_all_timers(self, widget, fake_client, store, identity):
        store.save(identity)
        widget.mount()
        fake_client.get_messages.return_value = InboxSnapshot(
            ticket_id="T1", messages=[_msg("r1", marker=True)]
        )
        await widget.poll()
        assert widget.resolution.countdown_active is True

        widget.teardown()
        await asyncio.sleep(0)

        assert widget.scheduler.active is False
        assert widget.resolution.countdown_active is False

    @pytest.mark.asyncio
    async def test_reset_identity_forgets_visitor(self, widget, store, identity):
        store.save(identity)
        widget.mount()

        widget.reset_identity()

        assert store.load() is None
        assert widget.identity is None
        assert widget.step is WidgetStep.FORM
