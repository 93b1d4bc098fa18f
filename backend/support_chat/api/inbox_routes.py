"""Operator inbox endpoints.

Ticket list and stats, ticket conversation, operator replies, resolution,
and the log of contact messages submitted through the widget.
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException, Path, Query
from postgrest.exceptions import APIError

from ..schemas.tickets import (
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
from ..services import inbox_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/inbox", tags=["inbox"])


def _translate(exc: Exception, what: str) -> HTTPException:
    """Map a service error to an HTTP error, logging it."""
    if isinstance(exc, LookupError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, APIError):
        logger.exception("Supabase error %s", what)
        return HTTPException(status_code=502, detail="Database error")
    logger.exception("Unexpected error %s", what)
    return HTTPException(status_code=500, detail="Internal server error")


# ── Tickets ──────────────────────────────────────────────────────────


@router.get("/tickets", response_model=List[SupportTicket])
async def get_tickets(
    status: TicketStatus | None = Query(default=None),
    priority: Priority | None = Query(default=None),
    search: str | None = Query(default=None, max_length=200),
):
    """List support tickets, newest first."""
    try:
        return inbox_service.list_tickets(status=status, priority=priority, search=search)
    except Exception as exc:
        raise _translate(exc, "listing tickets") from exc


@router.get("/stats", response_model=TicketStats)
async def get_stats():
    """Ticket counts per status."""
    try:
        return inbox_service.get_ticket_stats()
    except Exception as exc:
        raise _translate(exc, "computing ticket stats") from exc


@router.get("/tickets/{ticket_id}", response_model=TicketDetails)
async def get_ticket(ticket_id: str = Path(min_length=1, max_length=64)):
    """A ticket with its conversation; visitor messages are marked read."""
    try:
        return inbox_service.get_ticket_details(ticket_id)
    except Exception as exc:
        raise _translate(exc, f"loading ticket {ticket_id}") from exc


@router.post("/tickets/{ticket_id}/messages", response_model=SupportMessageRecord)
async def post_ticket_message(
    body: OperatorMessageRequest,
    ticket_id: str = Path(min_length=1, max_length=64),
):
    """Send an operator message on a ticket."""
    try:
        return inbox_service.send_ticket_message(ticket_id, body.message)
    except Exception as exc:
        raise _translate(exc, f"sending message on ticket {ticket_id}") from exc


@router.post("/tickets/{ticket_id}/resolve", response_model=SupportTicket)
async def resolve_ticket(
    body: ResolveTicketRequest = ResolveTicketRequest(),
    ticket_id: str = Path(min_length=1, max_length=64),
):
    """Resolve a ticket; the visitor's widget sees the resolution marker on its next poll."""
    try:
        return inbox_service.resolve_ticket(ticket_id, body.note)
    except Exception as exc:
        raise _translate(exc, f"resolving ticket {ticket_id}") from exc


@router.post("/tickets/{ticket_id}/status", response_model=SupportTicket)
async def update_status(
    body: UpdateStatusRequest,
    ticket_id: str = Path(min_length=1, max_length=64),
):
    """Change a ticket's status."""
    try:
        return inbox_service.update_ticket_status(ticket_id, body.status)
    except Exception as exc:
        raise _translate(exc, f"updating status of ticket {ticket_id}") from exc


# ── Contact messages ─────────────────────────────────────────────────


@router.get("/contacts", response_model=List[ContactMessage])
async def get_contacts(
    unread_only: bool = Query(default=False),
    search: str | None = Query(default=None, max_length=200),
):
    """List contact messages submitted through the widget."""
    try:
        return inbox_service.list_contact_messages(unread_only=unread_only, search=search)
    except Exception as exc:
        raise _translate(exc, "listing contact messages") from exc


@router.post("/contacts/{contact_id}/reply", response_model=ReplyResult)
async def reply_to_contact(
    body: OperatorMessageRequest,
    contact_id: str = Path(min_length=1, max_length=64),
):
    """Reply to a contact message, opening a ticket on the first reply."""
    try:
        return inbox_service.reply_to_contact(contact_id, body.message)
    except Exception as exc:
        raise _translate(exc, f"replying to contact {contact_id}") from exc


@router.post("/contacts/{contact_id}/read")
async def mark_contact_read(contact_id: str = Path(min_length=1, max_length=64)):
    """Mark a contact message as read."""
    try:
        inbox_service.mark_contact_read(contact_id)
    except Exception as exc:
        raise _translate(exc, f"marking contact {contact_id} read") from exc
    return {"success": True}
