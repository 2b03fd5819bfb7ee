"""
Session configuration, passed explicitly to each session, never global.
"""

from datetime import timedelta
from typing import Optional

from pydantic import BaseModel

DEFAULT_DIVIDER_THRESHOLD = timedelta(minutes=2)


class Credentials(BaseModel):
    """Opaque to the session; forwarded to the transport on connect."""
    api_key: str
    session_id: str
    token: str


class TextChatConfig(BaseModel):
    alias: str = ""
    credentials: Optional[Credentials] = None
    divider_threshold: timedelta = DEFAULT_DIVIDER_THRESHOLD
    trailing_divider: bool = False
