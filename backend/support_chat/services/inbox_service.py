"""Operator inbox backed by Supabase.

Serves both sides of the support channel:

- the chat widget, which polls ``fetch_chat_messages`` and submits through
  ``receive_contact_message``;
- the operator inbox, which lists tickets, replies, and resolves them.

Resolution is recorded the way the widget understands it: an operator message
carrying the resolution sentinel, plus the ticket status. The server has no
notion of the widget's post-resolution reset.
"""

import logging
from collections import Counter
from datetime import UTC, datetime
from typing import Optional, cast

from postgrest.exceptions import APIError

from ..db.client import get_supabase
from ..schemas.messages import (
    ChatMessagesResponse,
    ContactMessageRequest,
    ContactMessageResponse,
    MessageKind,
    RemoteMessage,
)
from ..schemas.tickets import (
    ContactMessage,
    Priority,
    ReplyResult,
    SupportMessageRecord,
    SupportTicket,
    TicketDetails,
    TicketStats,
    TicketStatus,
)
from . import operator_alerts
from .message_codec import encode_body

logger = logging.getLogger(__name__)

_MESSAGE_COLUMNS = "id, ticket_id, sender_type, message, created_at, is_read"
_SUBJECT_PREVIEW_CHARS = 80
_AUDIT_PREVIEW_CHARS = 100
DEFAULT_RESOLUTION_NOTE = "Your request has been marked as resolved."


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _subject_from(message: str) -> str:
    first_line = message.strip().splitlines()[0] if message.strip() else "Chat request"
    if len(first_line) > _SUBJECT_PREVIEW_CHARS:
        return first_line[: _SUBJECT_PREVIEW_CHARS - 3] + "..."
    return first_line


# ── Lookups ──────────────────────────────────────────────────────────


def _get_ticket_row(ticket_id: str) -> Optional[dict]:
    sb = get_supabase()
    result = sb.table("support_tickets").select("*").eq("id", ticket_id).limit(1).execute()
    rows = cast(list[dict], result.data or [])
    return rows[0] if rows else None


def _require_ticket_row(ticket_id: str) -> dict:
    row = _get_ticket_row(ticket_id)
    if row is None:
        raise LookupError(f"Ticket {ticket_id} not found")
    return row


def _find_open_ticket_row(email: str) -> Optional[dict]:
    """Most recent non-resolved ticket for an email, if any."""
    sb = get_supabase()
    result = (
        sb.table("support_tickets")
        .select("*")
        .eq("contact_email", _normalize_email(email))
        .neq("status", "resolved")
        .order("created_at", desc=True)
        .limit(1)
        .execute()
    )
    rows = cast(list[dict], result.data or [])
    return rows[0] if rows else None


def _list_message_rows(ticket_id: str) -> list[dict]:
    sb = get_supabase()
    result = (
        sb.table("support_messages")
        .select(_MESSAGE_COLUMNS)
        .eq("ticket_id", ticket_id)
        .order("created_at")
        .execute()
    )
    return cast(list[dict], result.data or [])


def _create_ticket_row(
    name: str,
    email: str,
    message: str,
    company_id: Optional[str] = None,
    priority: Priority = "normal",
) -> dict:
    sb = get_supabase()
    now = _now()
    result = (
        sb.table("support_tickets")
        .insert(
            {
                "subject": _subject_from(message),
                "description": message,
                "status": "open",
                "priority": priority,
                "category": "chat",
                "contact_name": name,
                "contact_email": _normalize_email(email),
                "company_id": company_id,
                "created_at": now,
                "updated_at": now,
            }
        )
        .execute()
    )
    row = cast(list[dict], result.data)[0]
    logger.info("Created support ticket %s for %s", row["id"], row["contact_email"])
    return row


def _append_message(ticket_id: str, sender_type: str, text: str) -> SupportMessageRecord:
    sb = get_supabase()
    now = _now()
    result = (
        sb.table("support_messages")
        .insert(
            {
                "ticket_id": ticket_id,
                "sender_type": sender_type,
                "message": text,
                "is_read": sender_type == "admin",
                "created_at": now,
            }
        )
        .execute()
    )
    row = cast(list[dict], result.data)[0]
    sb.table("support_tickets").update({"updated_at": now}).eq("id", ticket_id).execute()
    return SupportMessageRecord(**row)


# ── Widget-facing ────────────────────────────────────────────────────


def _owned_ticket_row(ticket_id: Optional[str], email: str) -> Optional[dict]:
    """The ticket ``ticket_id`` if it exists and belongs to ``email``, in any status."""
    if not ticket_id:
        return None
    row = _get_ticket_row(ticket_id)
    if row is not None and row.get("contact_email") != _normalize_email(email):
        logger.warning("Ticket %s requested by a different email, ignoring", ticket_id)
        return None
    return row


def _reopen_ticket(row: dict) -> dict:
    update = {"status": "open", "resolved_at": None, "updated_at": _now()}
    get_supabase().table("support_tickets").update(update).eq("id", row["id"]).execute()
    logger.info("Reopened support ticket %s on a new visitor message", row["id"])
    return {**row, **update}


def _audit(action: str, details: dict) -> None:
    """Append to the operator audit log. A failed write is logged, not raised."""
    try:
        get_supabase().table("super_admin_audit_log").insert(
            {"action": action, "details": details}
        ).execute()
    except APIError:
        logger.exception("Failed to write audit entry %s", action)


def fetch_chat_messages(email: str, ticket_id: Optional[str] = None) -> ChatMessagesResponse:
    """Return the messages of the visitor's ticket, oldest first.

    An explicit ``ticket_id`` is honoured even when the ticket is resolved, so
    the widget can observe the resolution marker. When it is unknown or belongs
    to another email, the lookup falls back to the email's open ticket.
    """
    ticket_row = _owned_ticket_row(ticket_id, email) or _find_open_ticket_row(email)
    if ticket_row is None:
        return ChatMessagesResponse(ticket_id=None, messages=[])

    messages = [RemoteMessage(**row) for row in _list_message_rows(ticket_row["id"])]
    return ChatMessagesResponse(ticket_id=ticket_row["id"], messages=messages)


def receive_contact_message(request: ContactMessageRequest) -> ContactMessageResponse:
    """File a visitor message.

    An explicit ``ticket_id`` owned by the same email is continued, and reopened
    if it was resolved. Otherwise the message goes to the email's open ticket,
    which is created lazily.
    """
    ticket_row = _owned_ticket_row(request.ticket_id, request.email)
    if ticket_row is not None and ticket_row.get("status") == "resolved":
        ticket_row = _reopen_ticket(ticket_row)
    if ticket_row is None:
        ticket_row = _find_open_ticket_row(request.email)
    if ticket_row is None:
        ticket_row = _create_ticket_row(
            name=request.name,
            email=request.email,
            message=request.message,
            company_id=request.company_id,
        )
    ticket_id = ticket_row["id"]

    stored = _append_message(ticket_id, "company", request.message)

    sb = get_supabase()
    sb.table("contact_messages").insert(
        {
            "name": request.name,
            "email": _normalize_email(request.email),
            "phone": request.phone or None,
            "message": request.message,
            "source": request.source or "chat_widget",
            "company_id": request.company_id,
            "ticket_id": ticket_id,
            "is_read": False,
            "created_at": _now(),
        }
    ).execute()

    operator_alerts.notify_new_contact_message(request, ticket_id)
    _audit(
        "contact_message_received",
        {
            "name": request.name,
            "email": _normalize_email(request.email),
            "phone": request.phone or None,
            "source": request.source or "chat_widget",
            "ticket_id": ticket_id,
            "message_preview": request.message[:_AUDIT_PREVIEW_CHARS],
        },
    )

    logger.info("Contact message received for ticket %s (source=%s)", ticket_id, request.source)
    return ContactMessageResponse(ticket_id=ticket_id, message_id=stored.id)


# ── Operator-facing ──────────────────────────────────────────────────


def list_tickets(
    status: Optional[TicketStatus] = None,
    priority: Optional[Priority] = None,
    search: Optional[str] = None,
) -> list[SupportTicket]:
    """List tickets, newest first, with per-ticket unread visitor message counts."""
    sb = get_supabase()
    query = sb.table("support_tickets").select("*")
    if status:
        query = query.eq("status", status)
    if priority:
        query = query.eq("priority", priority)
    rows = cast(list[dict], query.order("created_at", desc=True).execute().data or [])

    if search:
        needle = search.strip().lower()
        rows = [
            row for row in rows
            if needle in (row.get("subject") or "").lower()
            or needle in (row.get("contact_name") or "").lower()
            or needle in (row.get("contact_email") or "").lower()
        ]

    unread: Counter[str] = Counter()
    if rows:
        unread_result = (
            sb.table("support_messages")
            .select("ticket_id")
            .eq("sender_type", "company")
            .eq("is_read", False)
            .in_("ticket_id", [row["id"] for row in rows])
            .execute()
        )
        unread.update(r["ticket_id"] for r in cast(list[dict], unread_result.data or []))

    return [SupportTicket(**row, unread_count=unread[row["id"]]) for row in rows]


def get_ticket_stats() -> TicketStats:
    """Count tickets per status."""
    sb = get_supabase()
    rows = cast(list[dict], sb.table("support_tickets").select("status").execute().data or [])
    counts = Counter(row.get("status") for row in rows)
    return TicketStats(
        open=counts["open"],
        in_progress=counts["in_progress"],
        resolved=counts["resolved"],
        total=len(rows),
    )


def get_ticket_details(ticket_id: str) -> TicketDetails:
    """Return a ticket with its messages and mark the visitor's messages as read."""
    row = _require_ticket_row(ticket_id)
    messages = [SupportMessageRecord(**m) for m in _list_message_rows(ticket_id)]

    sb = get_supabase()
    sb.table("support_messages").update({"is_read": True}).eq("ticket_id", ticket_id).eq(
        "sender_type", "company"
    ).eq("is_read", False).execute()

    return TicketDetails(ticket=SupportTicket(**row), messages=messages)


def send_ticket_message(ticket_id: str, message: str) -> SupportMessageRecord:
    """Append an operator message; an ``open`` ticket moves to ``in_progress``."""
    row = _require_ticket_row(ticket_id)
    stored = _append_message(ticket_id, "admin", message)
    if row.get("status") == "open":
        get_supabase().table("support_tickets").update({"status": "in_progress"}).eq(
            "id", ticket_id
        ).execute()
    return stored


def reply_to_contact(contact_id: str, message: str) -> ReplyResult:
    """Reply to a logged contact message, creating its ticket on the first reply."""
    sb = get_supabase()
    result = sb.table("contact_messages").select("*").eq("id", contact_id).limit(1).execute()
    rows = cast(list[dict], result.data or [])
    if not rows:
        raise LookupError(f"Contact message {contact_id} not found")
    contact = ContactMessage(**rows[0])

    ticket_row = None
    if contact.ticket_id:
        ticket_row = _get_ticket_row(contact.ticket_id)
        if ticket_row is not None and ticket_row.get("status") == "resolved":
            ticket_row = None
    if ticket_row is None:
        ticket_row = _find_open_ticket_row(contact.email)

    created = False
    if ticket_row is None:
        ticket_row = _create_ticket_row(
            name=contact.name,
            email=contact.email,
            message=contact.message,
            company_id=contact.company_id,
        )
        # The visitor's original text opens the thread
        _append_message(ticket_row["id"], "company", contact.message)
        created = True

    ticket_id = ticket_row["id"]
    sb.table("contact_messages").update(
        {"ticket_id": ticket_id, "is_read": True, "read_at": _now()}
    ).eq("id", contact_id).execute()

    stored = send_ticket_message(ticket_id, message)
    return ReplyResult(ticket_id=ticket_id, message=stored, created_ticket=created)


def resolve_ticket(ticket_id: str, note: str = "") -> SupportTicket:
    """Append the resolution marker and mark the ticket resolved.

    Resolving an already resolved ticket changes nothing.
    """
    row = _require_ticket_row(ticket_id)
    if row.get("status") == "resolved":
        logger.info("Ticket %s already resolved", ticket_id)
        return SupportTicket(**row)

    _append_message(
        ticket_id, "admin", encode_body(MessageKind.RESOLUTION, note or DEFAULT_RESOLUTION_NOTE)
    )
    now = _now()
    update = {"status": "resolved", "resolved_at": now, "updated_at": now}
    get_supabase().table("support_tickets").update(update).eq("id", ticket_id).execute()

    logger.info("Resolved support ticket %s", ticket_id)
    return SupportTicket(**{**row, **update})


def update_ticket_status(ticket_id: str, status: TicketStatus) -> SupportTicket:
    """Change a ticket's status. Moving to ``resolved`` goes through ``resolve_ticket``."""
    if status == "resolved":
        return resolve_ticket(ticket_id)

    row = _require_ticket_row(ticket_id)
    update = {"status": status, "resolved_at": None, "updated_at": _now()}
    get_supabase().table("support_tickets").update(update).eq("id", ticket_id).execute()
    return SupportTicket(**{**row, **update})


def list_contact_messages(
    unread_only: bool = False,
    search: Optional[str] = None,
) -> list[ContactMessage]:
    """List logged contact messages, newest first."""
    sb = get_supabase()
    query = sb.table("contact_messages").select("*")
    if unread_only:
        query = query.eq("is_read", False)
    rows = cast(list[dict], query.order("created_at", desc=True).execute().data or [])

    if search:
        needle = search.strip().lower()
        rows = [
            row for row in rows
            if needle in (row.get("name") or "").lower()
            or needle in (row.get("email") or "").lower()
            or needle in (row.get("message") or "").lower()
        ]
    return [ContactMessage(**row) for row in rows]


def mark_contact_read(message_id: str) -> None:
    """Mark a contact message as read."""
    get_supabase().table("contact_messages").update(
        {"is_read": True, "read_at": _now()}
    ).eq("id", message_id).execute()
