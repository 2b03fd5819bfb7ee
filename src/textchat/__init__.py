"""
textchat — text chat overlay for real-time sessions.

Tracks the chat connection, exchanges text messages with remote
participants and classifies the message stream for display.
"""

from textchat.session import TextChatSession
from textchat.config import Credentials, TextChatConfig
from textchat.credentials import CredentialsAPI
from textchat.errors import (
    TextChatError,
    ConnectFailure,
    TransportDisconnected,
    SendRejected,
    DeliveryFailed,
    ConfigurationMissing,
)
from textchat.models.connection import ConnectionInfo
from textchat.models.message import Classification, Direction, SessionPhase, SessionState, TextMessage
from textchat.models.events import NotificationType
from textchat.notifications import ChatNotification

__version__ = "0.1.0"
__all__ = [
    "TextChatSession",
    "TextChatConfig",
    "Credentials",
    "CredentialsAPI",
    "TextChatError",
    "ConnectFailure",
    "TransportDisconnected",
    "SendRejected",
    "DeliveryFailed",
    "ConfigurationMissing",
    "ConnectionInfo",
    "Classification",
    "Direction",
    "SessionPhase",
    "SessionState",
    "TextMessage",
    "NotificationType",
    "ChatNotification",
]
