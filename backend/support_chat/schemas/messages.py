"""Pydantic models for chat messages, on the wire and in the widget transcript."""

from datetime import datetime
from enum import StrEnum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Sender = Literal["visitor", "system", "operator"]
SenderType = Literal["company", "admin"]

WELCOME_MESSAGE_ID = "welcome"


class MessageKind(StrEnum):
    """Decoded kind of a message body."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    FILE = "file"
    AUDIO = "audio"
    RESOLUTION = "resolution"


class Attachment(BaseModel):
    """A media link carried by a message. The URL is never fetched here."""

    model_config = ConfigDict(frozen=True)

    kind: MessageKind
    url: str


class MessageBody(BaseModel):
    """Tagged variant decoded from raw message text."""

    model_config = ConfigDict(frozen=True)

    kind: MessageKind = MessageKind.TEXT
    payload: str = ""


class Message(BaseModel):
    """A single transcript entry (visitor, operator, or client-only system)."""

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    sender: Sender
    timestamp: datetime
    kind: MessageKind = MessageKind.TEXT
    attachment: Optional[Attachment] = None
    is_resolution_marker: bool = False


class RemoteMessage(BaseModel):
    """A support message row as reported by the inbox adapter."""

    id: str
    sender_type: SenderType
    message: str
    created_at: datetime


class ChatMessagesRequest(BaseModel):
    """Request body for POST /chat/messages."""

    email: str = Field(min_length=3, max_length=320)
    ticket_id: Optional[str] = Field(default=None, max_length=64)


class ChatMessagesResponse(BaseModel):
    """Messages for the visitor's current ticket, oldest first."""

    success: bool = True
    ticket_id: Optional[str] = None
    messages: list[RemoteMessage] = []


class ContactMessageRequest(BaseModel):
    """Request body for POST /chat/contact-message."""

    name: str = Field(min_length=1, max_length=200)
    email: str = Field(min_length=3, max_length=320)
    phone: Optional[str] = Field(default=None, max_length=40)
    message: str = Field(min_length=1, max_length=10000)
    source: str = Field(default="chat_widget", max_length=50)
    company_id: Optional[str] = Field(default=None, max_length=64)
    ticket_id: Optional[str] = Field(default=None, max_length=64)


class ContactMessageResponse(BaseModel):
    """Ticket the visitor message was filed under."""

    success: bool = True
    ticket_id: str
    message_id: Optional[str] = None
