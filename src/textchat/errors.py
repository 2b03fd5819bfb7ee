"""
Text chat error types. Carried on notifications, never raised by the session API.
"""

from typing import Any, Optional


class TextChatError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class ConnectFailure(TextChatError):
    """Credential or network rejection while connecting."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("connect_failure", message, details)


class TransportDisconnected(TextChatError):
    """The transport dropped the connection without being asked to."""

    def __init__(self, message: str):
        super().__init__("transport_disconnected", message)


class SendRejected(TextChatError):
    def __init__(self, message: str):
        super().__init__("send_rejected", message)


class DeliveryFailed(TextChatError):
    """The transport accepted a send and then failed it."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("delivery_failed", message, details)


class ConfigurationMissing(TextChatError):
    def __init__(self, message: str):
        super().__init__("configuration_missing", message)
