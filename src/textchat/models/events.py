"""
Event names: notifications pushed to subscribers and Socket.IO wire events.
"""


class NotificationType:
    CONNECTED = "connected"
    CONNECT_FAILED = "connect_failed"
    DISCONNECTED = "disconnected"
    CONNECTION_CREATED = "connection_created"
    CONNECTION_DESTROYED = "connection_destroyed"
    MESSAGE_SENT = "message_sent"
    MESSAGE_RECEIVED = "message_received"
    SEND_FAILED = "send_failed"
    MESSAGE_DELIVERY_FAILED = "message_delivery_failed"


class WireEvent:
    READY = "ready"
    CONNECTION_CREATED = "connection:created"
    CONNECTION_DESTROYED = "connection:destroyed"
    SIGNAL = "signal"


# Signal type for chat payloads; other signal types on the session are ignored
TEXT_CHAT_SIGNAL = "text-chat"
