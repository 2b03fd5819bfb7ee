"""
Fetch session credentials from a token server.

The server issues {apiKey, sessionId, token} for a named room; the token's
connection metadata is fixed there and is not modifiable by the client.
"""

from urllib.parse import quote

from textchat.config import Credentials
from textchat.errors import ConfigurationMissing
from textchat.transport.http import HttpClient


class CredentialsAPI:
    def __init__(self, http: HttpClient):
        self._http = http

    async def fetch(self, room: str) -> Credentials:
        try:
            result = await self._http.get(f"/room/{quote(room, safe='')}")
            return Credentials(
                api_key=str(result["apiKey"]),
                session_id=result["sessionId"],
                token=result["token"],
            )
        except Exception as e:
            raise ConfigurationMissing(f"Failed to fetch credentials for room {room!r}: {e}")
