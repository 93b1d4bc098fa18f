from typing import List, Literal, Optional
from pydantic import BaseModel, Field

from .messages import SenderType

TicketStatus = Literal["open", "in_progress", "resolved"]
Priority = Literal["low", "normal", "high", "urgent"]


class SupportTicket(BaseModel):
    """
    A support ticket grouping one visitor's conversation with the support team.

    At most one non-resolved ticket exists per contact email; the email-only
    lookup never returns a resolved ticket.
    """
    id: str
    subject: str = Field(max_length=500)
    description: str = Field(default="", max_length=10000)
    status: TicketStatus = "open"
    priority: Priority = "normal"
    category: str = "chat"
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    company_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    resolved_at: Optional[str] = None
    unread_count: int = 0


class SupportMessageRecord(BaseModel):
    """A ``support_messages`` row as the operator inbox sees it."""
    id: str
    ticket_id: str
    sender_type: SenderType
    message: str
    created_at: str
    is_read: bool = False


class TicketDetails(BaseModel):
    """A ticket together with its full message history."""
    ticket: SupportTicket
    messages: List[SupportMessageRecord] = []


class TicketStats(BaseModel):
    """Ticket counts per status for the inbox dashboard."""
    open: int = 0
    in_progress: int = 0
    resolved: int = 0
    total: int = 0


class ContactMessage(BaseModel):
    """A visitor submission logged by the chat widget."""
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    message: str
    source: str = "chat_widget"
    company_id: Optional[str] = None
    ticket_id: Optional[str] = None
    is_read: bool = False
    read_at: Optional[str] = None
    created_at: Optional[str] = None


class OperatorMessageRequest(BaseModel):
    """Request payload for an operator reply."""
    message: str = Field(min_length=1, max_length=10000)


class ResolveTicketRequest(BaseModel):
    """Request payload for resolving a ticket."""
    note: str = Field(default="", max_length=2000)


class UpdateStatusRequest(BaseModel):
    """Request payload for a manual status change."""
    status: TicketStatus


class ReplyResult(BaseModel):
    """Outcome of an operator reply: the ticket it landed on and the stored message."""
    ticket_id: str
    message: SupportMessageRecord
    created_ticket: bool = False
