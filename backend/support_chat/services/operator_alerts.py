"""E-mail alert to the support team when a visitor writes in.

Best-effort: a failed alert is logged and never fails the visitor's request.
"""

import html
import logging

import httpx

from ..core.config import get_settings
from ..schemas.messages import ContactMessageRequest

logger = logging.getLogger(__name__)


def _render(request: ContactMessageRequest, ticket_id: str) -> str:
    rows = [
        ("Name", request.name),
        ("E-mail", request.email),
        ("Phone", request.phone or "-"),
        ("Source", request.source),
        ("Ticket", ticket_id),
    ]
    details = "".join(
        f"<p><strong>{label}:</strong> {html.escape(value)}</p>" for label, value in rows
    )
    message = html.escape(request.message).replace("\n", "<br>")
    return (
        f"<h2>New contact message</h2>{details}"
        f"<blockquote>{message}</blockquote>"
        f'<p><a href="mailto:{html.escape(request.email)}">Reply by e-mail</a></p>'
    )


def notify_new_contact_message(request: ContactMessageRequest, ticket_id: str) -> bool:
    """Send the alert e-mail. Returns True if it was accepted by the provider."""
    settings = get_settings()
    if not settings.resend_api_key or not settings.support_notification_email:
        logger.debug("Operator e-mail alerts not configured, skipping")
        return False

    payload = {
        "from": settings.notification_sender,
        "to": [settings.support_notification_email],
        "subject": f"New contact message - {request.name}",
        "html": _render(request, ticket_id),
    }
    try:
        response = httpx.post(
            settings.resend_api_url,
            json=payload,
            headers={"Authorization": f"Bearer {settings.resend_api_key}"},
            timeout=settings.request_timeout_seconds,
        )
        response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.warning("Operator alert for ticket %s failed: %s", ticket_id, exc)
        return False

    logger.info("Operator alert sent for ticket %s", ticket_id)
    return True
