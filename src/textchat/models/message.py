"""
Message records, display classification and session phase.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from textchat.models.connection import ConnectionInfo


class Direction(str, Enum):
    SENT = "sent"
    RECEIVED = "received"


class Classification(str, Enum):
    STANDALONE = "standalone"
    GROUPED_WITH_PREVIOUS = "grouped_with_previous"
    DIVIDER = "divider"  # display rows only, never stored on a message


class SessionPhase(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTING = "disconnecting"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TextMessage(BaseModel):
    """One chat message.

    ``classification`` is derived by the session from the message history;
    whatever a caller puts there is overwritten when the message is appended.
    """

    model_config = ConfigDict(frozen=True)

    message_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    sender_alias: str = ""
    sender_id: Optional[str] = None
    text: str = ""
    timestamp: datetime = Field(default_factory=_utcnow)
    direction: Direction = Direction.SENT
    classification: Classification = Classification.STANDALONE
    data: Optional[dict[str, Any]] = None

    @field_validator("timestamp")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("sender_alias", mode="before")
    @classmethod
    def _no_null_alias(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def is_grouped(self) -> bool:
        return self.classification == Classification.GROUPED_WITH_PREVIOUS


class SessionState(BaseModel):
    """Read-only snapshot of a session, safe to hand to a renderer."""

    model_config = ConfigDict(frozen=True)

    phase: SessionPhase = SessionPhase.DISCONNECTED
    self_connection: Optional[ConnectionInfo] = None
    peers: tuple[ConnectionInfo, ...] = ()
    history: tuple[TextMessage, ...] = ()
