"""Client for the streaming chat function."""
import json
import logging
from typing import AsyncIterator, Dict, List, Optional

import httpx

from app.core.config import settings
from app.services.chat.stream import iter_sse_deltas

logger = logging.getLogger(__name__)


class ChatServiceError(Exception):
    """The chat function answered with an error status or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _error_message(body: bytes, status_code: int) -> str:
    try:
        data = json.loads(body)
    except ValueError:
        data = None
    if isinstance(data, dict) and isinstance(data.get("error"), str):
        return data["error"]
    return f"Chat service error ({status_code})"


class ChatClient:
    """Streams assistant replies from the chat function.

    The function relays an OpenAI-style event stream; `stream()` yields the
    text deltas as they arrive.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
    ):
        self.base_url = (base_url or settings.functions_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.functions_api_key
        self.http_client = http_client
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def stream(self, messages: List[Dict[str, str]]) -> AsyncIterator[str]:
        """Send the conversation and yield reply deltas.

        Raises:
            ChatServiceError: on a non-2xx status or a transport failure
        """
        if self.http_client is not None:
            async for delta in self._stream_with(self.http_client, messages):
                yield delta
            return

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            async for delta in self._stream_with(client, messages):
                yield delta

    async def _stream_with(
        self, client: httpx.AsyncClient, messages: List[Dict[str, str]]
    ) -> AsyncIterator[str]:
        url = f"{self.base_url}/chat"
        try:
            async with client.stream(
                "POST", url, json={"messages": messages}, headers=self._headers()
            ) as response:
                if not response.is_success:
                    body = await response.aread()
                    message = _error_message(body, response.status_code)
                    logger.warning(
                        f"[CHAT CLIENT] Chat function returned {response.status_code}: {message}"
                    )
                    raise ChatServiceError(message, status_code=response.status_code)

                async for delta in iter_sse_deltas(response.aiter_lines()):
                    yield delta
        except httpx.HTTPError as e:
            raise ChatServiceError(f"Chat request failed: {str(e)}") from e
