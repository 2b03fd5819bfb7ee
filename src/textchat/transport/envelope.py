"""
Envelope construction and parsing for chat payloads.
"""

import uuid
from datetime import timezone
from typing import Optional

from pydantic import ValidationError

from textchat.models.envelope import MessageEnvelope, MessageMetadata, MessageSource, TextMessagePayload
from textchat.models.events import TEXT_CHAT_SIGNAL
from textchat.models.message import TextMessage


def build_envelope(message: TextMessage) -> MessageEnvelope:
    """Wrap an outgoing message for the wire."""
    return MessageEnvelope(
        metadata=MessageMetadata(
            event_id=str(uuid.uuid4()),
            timestamp=message.timestamp.astimezone(timezone.utc).isoformat(),
            source=MessageSource(connection_id=message.sender_id, alias=message.sender_alias),
        ),
        type=TEXT_CHAT_SIGNAL,
        payload=TextMessagePayload(
            message_id=message.message_id,
            text=message.text,
            data=message.data,
        ),
    )


def encode_message(message: TextMessage) -> bytes:
    return build_envelope(message).model_dump_json().encode("utf-8")


def parse_envelope(raw: bytes) -> Optional[MessageEnvelope]:
    """Parse an inbound payload. Returns None if it is not an envelope."""
    try:
        return MessageEnvelope.model_validate_json(raw)
    except ValidationError:
        return None
