"""Widget-facing chat endpoints.

The two calls the support widget makes: fetch the messages of the visitor's
ticket, and submit a new visitor message.
"""

import logging

from fastapi import APIRouter, HTTPException
from postgrest.exceptions import APIError

from ..schemas.messages import (
    ChatMessagesRequest,
    ChatMessagesResponse,
    ContactMessageRequest,
    ContactMessageResponse,
)
from ..services import inbox_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("/messages", response_model=ChatMessagesResponse)
async def get_chat_messages(body: ChatMessagesRequest) -> ChatMessagesResponse:
    """Return the messages of the visitor's ticket, oldest first."""
    try:
        return inbox_service.fetch_chat_messages(body.email, body.ticket_id)
    except APIError as exc:
        logger.exception("Supabase error fetching chat messages")
        raise HTTPException(status_code=502, detail="Database error") from exc
    except Exception as exc:
        logger.exception("Unexpected error fetching chat messages")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.post("/contact-message", response_model=ContactMessageResponse)
async def post_contact_message(body: ContactMessageRequest) -> ContactMessageResponse:
    """File a visitor message, creating the ticket if the visitor has none open."""
    try:
        return inbox_service.receive_contact_message(body)
    except APIError as exc:
        logger.exception("Supabase error storing contact message")
        raise HTTPException(status_code=502, detail="Database error") from exc
    except Exception as exc:
        logger.exception("Unexpected error storing contact message")
        raise HTTPException(status_code=500, detail="Internal server error") from exc
