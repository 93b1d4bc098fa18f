"""Shared fixtures for widget tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from support_chat.schemas.identity import VisitorIdentity
from support_chat.schemas.messages import ContactMessageResponse
from support_chat.widget.conversation import Conversation
from support_chat.widget.identity_store import LocalIdentityStore
from support_chat.widget.inbox_client import InboxSnapshot
from support_chat.widget.resolution import ResolutionStateMachine


@pytest.fixture
def store(tmp_path):
    """Identity store backed by a throwaway local storage file."""
    return LocalIdentityStore(path=tmp_path / "local_storage.json", key="support_chat_visitor")


@pytest.fixture
def identity():
    return VisitorIdentity(name="Ana", email="a@b.com", phone="5511999990000", ticket_id="T1")


@pytest.fixture
def fake_client():
    """Inbox client double. Set ``get_messages.return_value`` per test."""
    client = MagicMock()
    client.get_messages = AsyncMock(return_value=InboxSnapshot())
    client.send_message = AsyncMock(return_value=ContactMessageResponse(ticket_id="T1"))
    return client


@pytest.fixture
def conversation(identity):
    conv = Conversation()
    conv.restart(identity)
    return conv


@pytest.fixture
def resolution(conversation, store):
    """State machine with a 15-step countdown driven manually via tick()."""
    return ResolutionStateMachine(conversation, store, countdown_start=15, tick_seconds=3600)
