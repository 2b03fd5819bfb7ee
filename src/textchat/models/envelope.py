"""
Wire envelope for a text chat signal.
"""

from typing import Any, Optional
from pydantic import BaseModel


class MessageSource(BaseModel):
    connection_id: Optional[str] = None
    alias: str = ""


class MessageMetadata(BaseModel):
    event_id: str
    timestamp: str
    source: MessageSource


class TextMessagePayload(BaseModel):
    message_id: Optional[str] = None
    text: str = ""
    data: Optional[dict[str, Any]] = None


class MessageEnvelope(BaseModel):
    metadata: MessageMetadata
    type: str
    payload: TextMessagePayload
