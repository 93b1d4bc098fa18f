"""HTTP client for the operator inbox adapter.

Each call is one JSON request/response. Rows are decoded into transcript
messages here, once, so nothing downstream handles raw wire tags.
"""

from typing import Optional

import httpx
from pydantic import BaseModel, ValidationError

from ..core.config import get_settings
from ..schemas.messages import (
    ChatMessagesRequest,
    ChatMessagesResponse,
    ContactMessageRequest,
    ContactMessageResponse,
    Message,
)
from ..services.message_codec import to_message


class InboxUnavailableError(Exception):
    """The inbox adapter could not be reached or answered unexpectedly."""


class InboxSnapshot(BaseModel):
    """Decoded result of a ``get_messages`` call."""
    ticket_id: Optional[str] = None
    messages: list[Message] = []


class InboxClient:
    """
    Async client for the widget-facing inbox endpoints.

    Usage:
        client = InboxClient()
        snapshot = await client.get_messages("visitor@example.com")
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self._transport = transport

    async def _post(self, path: str, payload: BaseModel) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}{path}",
                    json=payload.model_dump(mode="json"),
                )
                response.raise_for_status()
                return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise InboxUnavailableError(f"POST {path} failed: {exc}") from exc

    async def get_messages(self, email: str, ticket_id: Optional[str] = None) -> InboxSnapshot:
        """Fetch all messages of the visitor's ticket, oldest first."""
        data = await self._post(
            "/chat/messages",
            ChatMessagesRequest(email=email, ticket_id=ticket_id),
        )
        try:
            response = ChatMessagesResponse.model_validate(data)
        except ValidationError as exc:
            raise InboxUnavailableError(f"Malformed messages payload: {exc}") from exc
        return InboxSnapshot(
            ticket_id=response.ticket_id,
            messages=[to_message(record) for record in response.messages],
        )

    async def send_message(
        self,
        name: str,
        email: str,
        phone: str,
        message: str,
        source: str = "chat_widget",
        company_id: Optional[str] = None,
        ticket_id: Optional[str] = None,
    ) -> ContactMessageResponse:
        """Submit a visitor message.

        With a ``ticket_id`` the message continues that ticket; otherwise the
        server files it under the open ticket for the email, creating one lazily.
        """
        data = await self._post(
            "/chat/contact-message",
            ContactMessageRequest(
                name=name,
                email=email,
                phone=phone or None,
                message=message,
                source=source,
                company_id=company_id,
                ticket_id=ticket_id,
            ),
        )
        try:
            return ContactMessageResponse.model_validate(data)
        except ValidationError as exc:
            raise InboxUnavailableError(f"Malformed contact-message payload: {exc}") from exc
