"""Transaction extraction backends (the NL-understanding collaborator)."""
import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx
from openai import AsyncOpenAI, OpenAIError

from app.core.config import settings
from app.services.dialogue.prompt import get_voice_system_prompt

logger = logging.getLogger(__name__)


class ExtractionError(Exception):
    """The extraction backend failed to produce a reply."""


class TransactionExtractor(ABC):
    """Turns free text into the model's raw (JSON-ish) reply."""

    @abstractmethod
    async def extract(self, text: str) -> str:
        """Return the raw reply for one request. Raises ExtractionError."""
        pass


class OpenAITransactionExtractor(TransactionExtractor):
    """Calls an OpenAI-compatible LLM gateway directly."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        temperature: float = 0.1,
    ):
        self.client = client or AsyncOpenAI(
            api_key=settings.llm_api_key or "missing", base_url=settings.llm_base_url
        )
        self.model = model or settings.voice_model
        self.temperature = temperature

    async def extract(self, text: str) -> str:
        system_prompt = get_voice_system_prompt(settings.assistant_name)
        logger.info(f"[EXTRACTOR] Sending transcript to {self.model}: '{text[:200]}'")
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": text},
                ],
                temperature=self.temperature,
            )
        except OpenAIError as e:
            raise ExtractionError(f"LLM gateway call failed: {str(e)}") from e

        content = ""
        if response.choices:
            content = response.choices[0].message.content or ""
        logger.info(f"[EXTRACTOR] Raw reply: {content[:500]}")
        return content


class VoiceChatClient(TransactionExtractor):
    """Client for the voice-chat function: POST {transcript} -> {response}."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.base_url = (base_url or settings.functions_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.functions_api_key
        self.http_client = http_client
        self.timeout = timeout

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def extract(self, text: str) -> str:
        url = f"{self.base_url}/voice-chat"
        try:
            if self.http_client is not None:
                response = await self.http_client.post(
                    url, json={"transcript": text}, headers=self._headers()
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(
                        url, json={"transcript": text}, headers=self._headers()
                    )
        except httpx.HTTPError as e:
            raise ExtractionError(f"Voice chat request failed: {str(e)}") from e

        if not response.is_success:
            raise ExtractionError(
                f"Voice chat failed with status {response.status_code}: {response.text[:200]}"
            )
        try:
            data = response.json()
        except ValueError as e:
            raise ExtractionError("Voice chat returned a non-JSON body") from e
        reply = data.get("response") if isinstance(data, dict) else None
        return reply if isinstance(reply, str) else ""
