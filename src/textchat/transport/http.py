"""
REST HTTP client for the credential-issuing server.
"""

from typing import Any

import httpx

from textchat.errors import TextChatError

DEFAULT_TOKEN_SERVER = "http://localhost:8080"


class HttpClient:
    def __init__(self, base_url: str = DEFAULT_TOKEN_SERVER, timeout: float = 30.0):
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"User-Agent": "textchat-kit/0.1.0", "Accept": "application/json"},
            timeout=timeout,
        )

    @staticmethod
    def _unwrap(json_data: Any) -> Any:
        """Unwrap { "status": "success", "data": <actual_data> } responses; pass others through."""
        if isinstance(json_data, dict) and "status" in json_data and "data" in json_data:
            return json_data["data"]
        return json_data

    async def get(self, path: str) -> Any:
        resp = await self._client.get(path)
        if resp.status_code >= 400:
            raise TextChatError("http_error", f"HTTP {resp.status_code}: {resp.text[:200]}")
        return self._unwrap(resp.json())

    async def close(self) -> None:
        await self._client.aclose()
