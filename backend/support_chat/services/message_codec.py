"""Codec for the tags embedded in support message text.

Message rows carry plain text. Two conventions ride on top of it:

- a resolution sentinel prefix, appended by the operator inbox when a ticket
  is resolved, whose remainder is an optional closing note;
- attachment prefixes (``[IMAGE]``, ``[VIDEO]``, ``[FILE]``, ``[AUDIO]``)
  followed by a storage URL.

The widget decodes each row exactly once, at the client boundary, into a
``MessageBody``; nothing downstream looks at the raw tags again.
"""

from datetime import datetime

from ..schemas.messages import (
    Attachment,
    Message,
    MessageBody,
    MessageKind,
    RemoteMessage,
    Sender,
)

RESOLUTION_SENTINEL = "[RESOLVED]"

ATTACHMENT_TAGS: dict[MessageKind, str] = {
    MessageKind.IMAGE: "[IMAGE]",
    MessageKind.VIDEO: "[VIDEO]",
    MessageKind.FILE: "[FILE]",
    MessageKind.AUDIO: "[AUDIO]",
}

_SENDER_MAP: dict[str, Sender] = {
    "company": "visitor",
    "admin": "operator",
}


def decode_body(raw: str) -> MessageBody:
    """Split raw message text into its kind and display payload."""
    text = raw or ""
    if text.startswith(RESOLUTION_SENTINEL):
        return MessageBody(
            kind=MessageKind.RESOLUTION,
            payload=text[len(RESOLUTION_SENTINEL):].strip(),
        )
    for kind, tag in ATTACHMENT_TAGS.items():
        if text.startswith(tag):
            return MessageBody(kind=kind, payload=text[len(tag):].strip())
    return MessageBody(kind=MessageKind.TEXT, payload=text)


def encode_body(kind: MessageKind, payload: str = "") -> str:
    """Inverse of ``decode_body``."""
    if kind is MessageKind.RESOLUTION:
        return f"{RESOLUTION_SENTINEL} {payload}".rstrip()
    if kind in ATTACHMENT_TAGS:
        return f"{ATTACHMENT_TAGS[kind]}{payload}"
    return payload


def to_message(record: RemoteMessage) -> Message:
    """Map an adapter row onto a transcript message.

    Only operator rows can carry the resolution sentinel; a visitor who types
    it gets their text back verbatim.
    """
    body = decode_body(record.message)
    if body.kind is MessageKind.RESOLUTION and record.sender_type != "admin":
        body = MessageBody(kind=MessageKind.TEXT, payload=record.message)
    attachment = None
    if body.kind in ATTACHMENT_TAGS:
        attachment = Attachment(kind=body.kind, url=body.payload)
    return Message(
        id=record.id,
        text=body.payload,
        sender=_SENDER_MAP[record.sender_type],
        timestamp=record.created_at,
        kind=body.kind,
        attachment=attachment,
        is_resolution_marker=body.kind is MessageKind.RESOLUTION,
    )


def system_message(message_id: str, text: str, timestamp: datetime) -> Message:
    """Build a client-only system message (never sent to the server)."""
    return Message(id=message_id, text=text, sender="system", timestamp=timestamp)
