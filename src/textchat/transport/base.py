"""
What the session needs from a signaling layer.
"""

from datetime import datetime
from typing import Optional, Protocol

from textchat.config import Credentials
from textchat.models.connection import ConnectionInfo


class TransportListener(Protocol):
    """Inbound callbacks. Transports must invoke these on the session's event loop."""

    def on_peer_joined(self, connection: ConnectionInfo) -> None: ...

    def on_peer_left(self, connection: ConnectionInfo) -> None: ...

    def on_message(self, sender_id: str, payload: bytes, timestamp: datetime) -> None: ...

    def on_connection_lost(self, reason: str) -> None: ...


class Transport(Protocol):
    def set_listener(self, listener: Optional[TransportListener]) -> None: ...

    async def begin_connect(self, credentials: Credentials) -> ConnectionInfo:
        """Connect and return the connection assigned to this endpoint. Raises on failure."""
        ...

    async def begin_disconnect(self) -> None: ...

    async def send_payload(self, payload: bytes) -> None: ...
