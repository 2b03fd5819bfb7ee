"""
Socket.IO signaling transport.

Connection: {base_url}/socket.io/ with auth={api_key, session_id, token}.
Waits for the `ready` event (carrying this endpoint's connection) before
begin_connect() resolves.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import socketio

from textchat.config import Credentials
from textchat.models.connection import ConnectionInfo
from textchat.models.events import TEXT_CHAT_SIGNAL, WireEvent
from textchat.transport.base import TransportListener

logger = logging.getLogger(__name__)

SOCKETIO_PATH = "/socket.io/"


def _connection_from(data: Any) -> Optional[ConnectionInfo]:
    if not isinstance(data, dict):
        return None
    raw = data.get("connection", data)
    if not isinstance(raw, dict) or not raw.get("id"):
        return None
    try:
        return ConnectionInfo.model_validate(raw)
    except ValueError:
        return None


class SocketIOTransport:
    def __init__(
        self,
        base_url: str,
        transports: Optional[list[str]] = None,
        ready_timeout: float = 15.0,
        socketio_path: str = SOCKETIO_PATH,
    ):
        self._base_url = base_url
        self._transports = transports or ["websocket"]
        self._ready_timeout = ready_timeout
        self._socketio_path = socketio_path
        self._sio: Optional[socketio.AsyncClient] = None
        self._listener: Optional[TransportListener] = None
        self._closing = False

    @property
    def connected(self) -> bool:
        return self._sio is not None and self._sio.connected

    def set_listener(self, listener: Optional[TransportListener]) -> None:
        self._listener = listener

    async def begin_connect(self, credentials: Credentials) -> ConnectionInfo:
        if self._sio and self._sio.connected:
            raise RuntimeError("Socket.IO already connected")

        self._closing = False
        sio = socketio.AsyncClient(reconnection=False)
        self._sio = sio
        loop = asyncio.get_running_loop()
        ready: asyncio.Future[ConnectionInfo] = loop.create_future()

        @self._sio.on(WireEvent.READY)
        async def on_ready(data: Any = None) -> None:
            info = _connection_from(data)
            if ready.done():
                return
            if info is None:
                ready.set_exception(ValueError(f"Malformed ready event: {data!r}"))
            else:
                ready.set_result(info)

        @self._sio.on(WireEvent.CONNECTION_CREATED)
        async def on_connection_created(data: Any) -> None:
            info = _connection_from(data)
            if info and self._listener:
                self._listener.on_peer_joined(info)

        @self._sio.on(WireEvent.CONNECTION_DESTROYED)
        async def on_connection_destroyed(data: Any) -> None:
            info = _connection_from(data)
            if info and self._listener:
                self._listener.on_peer_left(info)

        @self._sio.on(WireEvent.SIGNAL)
        async def on_signal(data: Any) -> None:
            if not isinstance(data, dict) or data.get("type") != TEXT_CHAT_SIGNAL:
                return
            sender = _connection_from(data.get("from"))
            payload = data.get("data")
            if sender is None or payload is None:
                logger.warning("Dropping malformed signal: %r", data)
                return
            if isinstance(payload, str):
                payload = payload.encode("utf-8")
            if self._listener:
                self._listener.on_message(sender.id, payload, datetime.now(timezone.utc))

        @self._sio.event
        async def disconnect(reason: str = "") -> None:
            if self._closing or not ready.done() or self._sio is not sio:
                return
            # Reconnection is off, so this client is finished
            self._sio = None
            if self._listener:
                self._listener.on_connection_lost(str(reason) or "transport closed")

        try:
            await self._sio.connect(
                self._base_url,
                auth=credentials.model_dump(),
                transports=self._transports,
                socketio_path=self._socketio_path,
            )
            return await asyncio.wait_for(ready, timeout=self._ready_timeout)
        except asyncio.TimeoutError:
            await self._abandon()
            raise TimeoutError(f"Timed out waiting for 'ready' event after {self._ready_timeout}s")
        except Exception:
            await self._abandon()
            raise

    async def _abandon(self) -> None:
        """Drop a half-open client so the next begin_connect starts clean."""
        self._closing = True
        sio, self._sio = self._sio, None
        if sio is not None and sio.connected:
            await sio.disconnect()

    async def begin_disconnect(self) -> None:
        self._closing = True
        if self._sio:
            await self._sio.disconnect()
            self._sio = None

    async def send_payload(self, payload: bytes) -> None:
        if not self._sio or not self._sio.connected:
            raise RuntimeError("Socket.IO not connected")
        await self._sio.emit(WireEvent.SIGNAL, {"type": TEXT_CHAT_SIGNAL, "data": payload.decode("utf-8")})
