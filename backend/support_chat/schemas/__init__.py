"""Schemas module - Pydantic models for API request/response validation."""

from .identity import VisitorIdentity
from .messages import (
    WELCOME_MESSAGE_ID,
    Attachment,
    ChatMessagesRequest,
    ChatMessagesResponse,
    ContactMessageRequest,
    ContactMessageResponse,
    Message,
    MessageBody,
    MessageKind,
    RemoteMessage,
    Sender,
    SenderType,
)
from .tickets import (
    ContactMessage,
    OperatorMessageRequest,
    Priority,
    ReplyResult,
    ResolveTicketRequest,
    SupportMessageRecord,
    SupportTicket,
    TicketDetails,
    TicketStats,
    TicketStatus,
    UpdateStatusRequest,
)

__all__ = [
    # Identity
    "VisitorIdentity",
    # Messages
    "WELCOME_MESSAGE_ID",
    "Attachment",
    "ChatMessagesRequest",
    "ChatMessagesResponse",
    "ContactMessageRequest",
    "ContactMessageResponse",
    "Message",
    "MessageBody",
    "MessageKind",
    "RemoteMessage",
    "Sender",
    "SenderType",
    # Tickets
    "ContactMessage",
    "OperatorMessageRequest",
    "Priority",
    "ReplyResult",
    "ResolveTicketRequest",
    "SupportMessageRecord",
    "SupportTicket",
    "TicketDetails",
    "TicketStats",
    "TicketStatus",
    "UpdateStatusRequest",
]
