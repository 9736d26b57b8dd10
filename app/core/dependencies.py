"""FastAPI dependencies."""
import httpx
from fastapi import Depends, Query
from openai import AsyncOpenAI
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.database import get_db
from app.services.dialogue.extractor import (
    OpenAITransactionExtractor,
    TransactionExtractor,
    VoiceChatClient,
)
from app.services.ledger.base import Ledger
from app.services.ledger.sql_ledger import SqlLedger


def get_gateway_extractor() -> TransactionExtractor:
    """Transaction extractor backed by the LLM gateway."""
    return OpenAITransactionExtractor()


def get_extractor() -> TransactionExtractor:
    """Transaction extractor used by voice calls."""
    if settings.call_extraction == "voice-chat":
        return VoiceChatClient()
    return get_gateway_extractor()


def get_gateway_client() -> httpx.AsyncClient:
    """HTTP client for streaming calls to the LLM gateway.

    The caller owns the client and must close it once the stream is done.
    """
    return httpx.AsyncClient(
        base_url=settings.llm_base_url.rstrip("/"),
        timeout=httpx.Timeout(60.0, connect=10.0),
    )


def get_speech_client() -> AsyncOpenAI:
    """OpenAI client for Whisper transcription and TTS."""
    return AsyncOpenAI(api_key=settings.openai_api_key or "missing")


def get_ledger(
    user_id: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
) -> Ledger:
    """Ledger of the calling user."""
    return SqlLedger(db, user_id)
