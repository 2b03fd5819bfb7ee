"""
Text chat session controller.

Owns the connection phase, the peer set and the message history, and is the
only writer of any of them. Everything runs on one asyncio event loop:
public calls return immediately, transport round trips run as background
tasks, and results come back as notifications.

Phases:
  disconnected -> connecting -> connected -> disconnecting -> disconnected
  connecting -> disconnected      (connect failed)
  connecting -> disconnecting     (disconnect() arrived while connecting)

The self connection is set only while `connected`. It is cleared as soon
as teardown begins, so a `disconnecting` session already has no self.

Public calls made outside a running event loop never leave a half-made
change. connect() and the send calls report ConnectFailed or SendFailed.
disconnect() finishes locally without telling the transport.

No timeout is applied here. A transport whose connect never completes
leaves the session in `connecting`.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Callable, Coroutine, Iterable, Optional

from textchat.classifier import DisplayRow, classify, display_rows, dividers, needs_divider
from textchat.config import Credentials, TextChatConfig
from textchat.errors import (
    ConfigurationMissing,
    ConnectFailure,
    DeliveryFailed,
    SendRejected,
    TextChatError,
    TransportDisconnected,
)
from textchat.models.connection import ConnectionInfo
from textchat.models.events import NotificationType
from textchat.models.message import (
    Classification,
    Direction,
    SessionPhase,
    SessionState,
    TextMessage,
)
from textchat.notifications import ChatNotification, NotificationHandler, NotificationHub
from textchat.transport.base import Transport
from textchat.transport.envelope import encode_message, parse_envelope

logger = logging.getLogger(__name__)


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


TRANSITIONS: dict[SessionPhase, frozenset[SessionPhase]] = {
    SessionPhase.DISCONNECTED: frozenset({SessionPhase.CONNECTING}),
    SessionPhase.CONNECTING: frozenset({
        SessionPhase.CONNECTED, SessionPhase.DISCONNECTED, SessionPhase.DISCONNECTING,
    }),
    SessionPhase.CONNECTED: frozenset({SessionPhase.DISCONNECTING}),
    SessionPhase.DISCONNECTING: frozenset({SessionPhase.DISCONNECTED}),
}


class TextChatSession:
    def __init__(
        self,
        transport: Transport,
        config: Optional[TextChatConfig] = None,
        *,
        alias: Optional[str] = None,
        credentials: Optional[Credentials] = None,
    ):
        config = config or TextChatConfig()
        overrides: dict[str, Any] = {}
        if alias is not None:
            overrides["alias"] = alias
        if credentials is not None:
            overrides["credentials"] = credentials
        self._config = config.model_copy(update=overrides) if overrides else config

        self._transport = transport
        self._hub = NotificationHub()
        self._phase = SessionPhase.DISCONNECTED
        self._self: Optional[ConnectionInfo] = None
        self._peers: dict[str, ConnectionInfo] = {}
        self._peer_aliases: dict[str, str] = {}
        self._history: list[TextMessage] = []
        self._receiver_alias: Optional[str] = None
        self._connect_handlers: list[NotificationHandler] = []
        self._disconnect_requested = False
        self._tasks: set[asyncio.Task[None]] = set()

        transport.set_listener(self)

    # -- read accessors ------------------------------------------------------

    @property
    def config(self) -> TextChatConfig:
        return self._config

    @property
    def alias(self) -> str:
        return self._config.alias

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def self_connection(self) -> Optional[ConnectionInfo]:
        return self._self

    @property
    def peers(self) -> tuple[ConnectionInfo, ...]:
        return tuple(self._peers.values())

    @property
    def peer_aliases(self) -> list[str]:
        """Display alias of each peer, in join order."""
        return [self._peer_aliases.get(pid) or peer.display_alias() for pid, peer in self._peers.items()]

    @property
    def receiver_alias(self) -> Optional[str]:
        """Alias of the most recent remote sender."""
        return self._receiver_alias

    @property
    def senders(self) -> list[str]:
        """Distinct non-empty sender aliases in order of first appearance."""
        seen: dict[str, None] = {}
        for message in self._history:
            if message.sender_alias:
                seen.setdefault(message.sender_alias, None)
        return list(seen)

    @property
    def history(self) -> tuple[TextMessage, ...]:
        return tuple(self._history)

    @property
    def count(self) -> int:
        return len(self._history)

    @property
    def state(self) -> SessionState:
        return SessionState(
            phase=self._phase,
            self_connection=self._self,
            peers=self.peers,
            history=self.history,
        )

    def divider_before(self, index: int) -> bool:
        """True when a divider renders between history[index - 1] and history[index]."""
        if index <= 0 or index >= len(self._history):
            return False
        return needs_divider(self._history[index - 1], self._history[index], self._config.divider_threshold)

    def dividers(self) -> list[bool]:
        return dividers(self._history, self._config.divider_threshold)

    def display_rows(self) -> list[DisplayRow]:
        return display_rows(self._history, self._config.divider_threshold, self._config.trailing_divider)

    # -- subscribers ---------------------------------------------------------

    def add_listener(self, handler: NotificationHandler) -> Callable[[], None]:
        return self._hub.add_listener(handler)

    def on_notification(self, handler: Optional[NotificationHandler]) -> None:
        self._hub.on_notification(handler)

    async def notifications(self) -> AsyncGenerator[ChatNotification, None]:
        async for notification in self._hub.stream():
            yield notification

    # -- lifecycle -----------------------------------------------------------

    def connect(self, handler: Optional[NotificationHandler] = None) -> None:
        """Start connecting. The optional handler receives the outcome once.

        While a connect is already in flight the handler joins that attempt;
        when already connected (or disconnecting) the call is a no-op.
        """
        if self._phase == SessionPhase.CONNECTING:
            if handler is not None:
                self._connect_handlers.append(handler)
            return
        if self._phase != SessionPhase.DISCONNECTED:
            logger.debug("connect() ignored while %s", self._phase.value)
            return

        credentials = self._config.credentials
        if credentials is None:
            self._emit(
                ChatNotification(
                    NotificationType.CONNECT_FAILED,
                    error=ConfigurationMissing("No credentials configured for this session"),
                ),
                [handler] if handler is not None else [],
            )
            return

        if not _loop_running():
            self._emit(
                ChatNotification(
                    NotificationType.CONNECT_FAILED,
                    error=ConnectFailure("connect() needs a running event loop"),
                ),
                [handler] if handler is not None else [],
            )
            return

        self._disconnect_requested = False
        if handler is not None:
            self._connect_handlers.append(handler)
        self._set_phase(SessionPhase.CONNECTING)
        self._spawn(self._run_connect(credentials))

    def disconnect(self) -> None:
        if self._phase == SessionPhase.CONNECTING:
            # Torn down as soon as the in-flight connect completes
            self._disconnect_requested = True
            return
        if self._phase != SessionPhase.CONNECTED:
            return
        self._self = None
        self._set_phase(SessionPhase.DISCONNECTING)
        if not _loop_running():
            self._finish_disconnect(TransportDisconnected("No running event loop; transport was not notified"))
            return
        self._spawn(self._teardown())

    async def drain(self) -> None:
        """Wait for every background task this session has started."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def aclose(self) -> None:
        self.disconnect()
        await self.drain()
        self._transport.set_listener(None)

    # -- sending -------------------------------------------------------------

    def send_message(self, text: str) -> Optional[TextMessage]:
        """Append a sent message and forward it. Returns the classified message, or None if rejected."""
        me = self._sender(text, None)
        if me is None:
            return None
        return self._send(TextMessage(
            sender_alias=self.alias,
            sender_id=me.id,
            text=text,
            direction=Direction.SENT,
        ))

    def send_custom_message(self, message: TextMessage) -> Optional[TextMessage]:
        """Send a pre-built message, e.g. one carrying structured ``data``."""
        me = self._sender(message.text, message.data)
        if me is None:
            return None
        return self._send(message.model_copy(update={
            "sender_alias": message.sender_alias or self.alias,
            "sender_id": me.id,
            "direction": Direction.SENT,
            "timestamp": datetime.now(timezone.utc),
            "classification": Classification.STANDALONE,
        }))

    def _sender(self, text: str, data: Optional[dict[str, Any]]) -> Optional[ConnectionInfo]:
        """Connection to send as, or None once SendFailed has been emitted."""
        me = self._self
        if self._phase != SessionPhase.CONNECTED or me is None:
            rejection = SendRejected(f"Cannot send while {self._phase.value}")
        elif not text.strip() and not data:
            rejection = SendRejected("Message text is empty")
        elif not _loop_running():
            rejection = SendRejected("No running event loop to deliver on")
        else:
            return me
        self._emit(ChatNotification(NotificationType.SEND_FAILED, error=rejection))
        return None

    def _send(self, message: TextMessage) -> TextMessage:
        appended = self._append(message)
        self._emit(ChatNotification(NotificationType.MESSAGE_SENT, message=appended))
        self._spawn(self._deliver(appended))
        return appended

    async def _deliver(self, message: TextMessage) -> None:
        try:
            await self._transport.send_payload(encode_message(message))
        except Exception as e:
            # The local copy stays in history; shown messages are never retracted
            logger.warning("Delivery failed for message %s: %s", message.message_id, e)
            self._emit(ChatNotification(
                NotificationType.MESSAGE_DELIVERY_FAILED,
                message=message,
                error=DeliveryFailed(str(e) or type(e).__name__, details={"message_id": message.message_id}),
            ))

    # -- transport callbacks -------------------------------------------------

    def on_peer_joined(self, connection: ConnectionInfo) -> None:
        if self._phase not in (SessionPhase.CONNECTING, SessionPhase.CONNECTED):
            return
        if self._self is not None and connection.id == self._self.id:
            return
        if connection.id in self._peers:
            return
        self._peers[connection.id] = connection
        self._emit(ChatNotification(NotificationType.CONNECTION_CREATED, connection=connection))

    def on_peer_left(self, connection: ConnectionInfo) -> None:
        known = self._peers.pop(connection.id, None)
        if known is None:
            return
        self._peer_aliases.pop(connection.id, None)
        self._emit(ChatNotification(NotificationType.CONNECTION_DESTROYED, connection=known))

    def on_message(self, sender_id: str, payload: bytes, timestamp: datetime) -> None:
        if self._phase != SessionPhase.CONNECTED:
            logger.debug("Dropping inbound message while %s", self._phase.value)
            return
        if self._self is not None and sender_id == self._self.id:
            logger.debug("Suppressing echo of own message")
            return

        fields: dict[str, Any] = {"sender_id": sender_id, "timestamp": timestamp, "direction": Direction.RECEIVED}
        envelope = parse_envelope(payload)
        if envelope is not None:
            fields["sender_alias"] = envelope.metadata.source.alias
            fields["text"] = envelope.payload.text
            fields["data"] = envelope.payload.data
            if envelope.payload.message_id:
                fields["message_id"] = envelope.payload.message_id
        else:
            try:
                fields["text"] = payload.decode("utf-8")
            except UnicodeDecodeError:
                logger.warning("Dropping undecodable message from %s", sender_id)
                return
            fields["sender_alias"] = ""

        if not fields["sender_alias"]:
            peer = self._peers.get(sender_id)
            fields["sender_alias"] = peer.metadata if peer is not None else ""
        alias = fields["sender_alias"]
        if alias:
            self._receiver_alias = alias
            if sender_id in self._peers:
                self._peer_aliases[sender_id] = alias

        received = self._append(TextMessage(**fields))
        self._emit(ChatNotification(NotificationType.MESSAGE_RECEIVED, message=received))

    def on_connection_lost(self, reason: str) -> None:
        if self._phase != SessionPhase.CONNECTED:
            return
        logger.warning("Connection lost: %s", reason)
        self._self = None
        self._set_phase(SessionPhase.DISCONNECTING)
        self._finish_disconnect(TransportDisconnected(reason))

    # -- internals -----------------------------------------------------------

    async def _run_connect(self, credentials: Credentials) -> None:
        try:
            info = await self._transport.begin_connect(credentials)
        except Exception as e:
            logger.warning("Connect failed: %s", e)
            self._disconnect_requested = False
            self._set_phase(SessionPhase.DISCONNECTED)
            self._peers.clear()
            self._emit(
                ChatNotification(NotificationType.CONNECT_FAILED, error=ConnectFailure(str(e) or type(e).__name__)),
                self._take_connect_handlers(),
            )
            return

        if self._disconnect_requested:
            self._disconnect_requested = False
            self._set_phase(SessionPhase.DISCONNECTING)
            await self._teardown(self._take_connect_handlers())
            return

        self._self = info
        # A peer announced before the ready event may turn out to be ourselves
        self._peers.pop(info.id, None)
        self._set_phase(SessionPhase.CONNECTED)
        self._emit(ChatNotification(NotificationType.CONNECTED, connection=info), self._take_connect_handlers())

    async def _teardown(self, handlers: Iterable[NotificationHandler] = ()) -> None:
        error: Optional[TextChatError] = None
        try:
            await self._transport.begin_disconnect()
        except Exception as e:
            # Informational only; the local teardown always completes
            logger.warning("Transport disconnect reported an error: %s", e)
            error = TransportDisconnected(str(e) or type(e).__name__)
        self._finish_disconnect(error, handlers)

    def _finish_disconnect(self, error: Optional[TextChatError], handlers: Iterable[NotificationHandler] = ()) -> None:
        self._self = None
        self._peers.clear()
        self._peer_aliases.clear()
        self._set_phase(SessionPhase.DISCONNECTED)
        self._emit(ChatNotification(NotificationType.DISCONNECTED, error=error), handlers)

    def _append(self, message: TextMessage) -> TextMessage:
        index = len(self._history)
        self._history.append(message)
        self._reclassify_from(index)
        return self._history[index]

    def _reclassify_from(self, start: int) -> None:
        kinds = classify(self._history, start, threshold=self._config.divider_threshold)
        for i, kind in enumerate(kinds, start):
            if self._history[i].classification != kind:
                self._history[i] = self._history[i].model_copy(update={"classification": kind})

    def _set_phase(self, phase: SessionPhase) -> None:
        if phase not in TRANSITIONS[self._phase]:
            raise RuntimeError(f"Illegal phase transition {self._phase.value} -> {phase.value}")
        logger.debug("Phase %s -> %s", self._phase.value, phase.value)
        self._phase = phase

    def _take_connect_handlers(self) -> list[NotificationHandler]:
        handlers, self._connect_handlers = self._connect_handlers, []
        return handlers

    def _emit(self, notification: ChatNotification, handlers: Iterable[NotificationHandler] = ()) -> None:
        self._hub.publish(notification)
        for handler in handlers:
            try:
                handler(notification)
            except Exception:
                logger.exception("Connect handler failed for %s", notification.type)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
