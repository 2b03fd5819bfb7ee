"""Shared fixtures: an in-memory transport and a session wired to it."""

import asyncio
from datetime import datetime, timezone
from typing import Any, Optional

import pytest

from textchat import ConnectionInfo, Credentials, TextChatSession
from textchat.models.message import Direction, TextMessage
from textchat.notifications import ChatNotification
from textchat.transport.envelope import encode_message

CREDS = Credentials(api_key="12345", session_id="1_MX4xMjM0NX5", token="T1==abc")
SELF = ConnectionInfo(id="conn-self", metadata="Alice")
BOB = ConnectionInfo(id="conn-bob", metadata="Bob")
CAROL = ConnectionInfo(id="conn-carol", metadata="Carol")


class FakeTransport:
    """Transport double. Set `gate` to an asyncio.Event to hold connects until it is set."""

    def __init__(self, self_info: ConnectionInfo = SELF):
        self.self_info = self_info
        self.listener: Any = None
        self.gate: Optional[asyncio.Event] = None
        self.connect_error: Optional[Exception] = None
        self.disconnect_error: Optional[Exception] = None
        self.send_error: Optional[Exception] = None
        self.connect_calls: list[Credentials] = []
        self.disconnect_calls = 0
        self.sent: list[bytes] = []

    def set_listener(self, listener: Any) -> None:
        self.listener = listener

    async def begin_connect(self, credentials: Credentials) -> ConnectionInfo:
        self.connect_calls.append(credentials)
        if self.gate is not None:
            await self.gate.wait()
        if self.connect_error is not None:
            raise self.connect_error
        return self.self_info

    async def begin_disconnect(self) -> None:
        self.disconnect_calls += 1
        if self.disconnect_error is not None:
            raise self.disconnect_error

    async def send_payload(self, payload: bytes) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(payload)


def inbound(sender: ConnectionInfo, text: str, alias: Optional[str] = None, **extra: Any) -> bytes:
    """Payload as a remote peer would put it on the wire."""
    return encode_message(TextMessage(
        sender_alias=sender.metadata if alias is None else alias,
        sender_id=sender.id,
        text=text,
        direction=Direction.SENT,
        **extra,
    ))


def now() -> datetime:
    return datetime.now(timezone.utc)


def types(notes: list[ChatNotification]) -> list[str]:
    return [n.type for n in notes]


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def session(transport: FakeTransport) -> TextChatSession:
    return TextChatSession(transport, alias="Alice", credentials=CREDS)


@pytest.fixture
def notes(session: TextChatSession) -> list[ChatNotification]:
    recorded: list[ChatNotification] = []
    session.add_listener(recorded.append)
    return recorded
