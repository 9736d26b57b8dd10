"""Serverless-style functions used by the voice call and the chat screen."""
import logging
from typing import List, Literal

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel
from starlette.background import BackgroundTask

from app.core.config import settings
from app.core.dependencies import get_gateway_client, get_gateway_extractor
from app.services.dialogue.extractor import ExtractionError, TransactionExtractor
from app.services.dialogue.prompt import get_chat_system_prompt

router = APIRouter()
logger = logging.getLogger(__name__)

RATE_LIMITED = "Too many requests. Please try again in a little while."
CREDITS_EXHAUSTED = "The AI service has run out of credits."
GATEWAY_FAILED = "The AI service ran into a problem."


class VoiceChatRequest(BaseModel):
    transcript: str


class ChatMessageIn(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class ChatRequest(BaseModel):
    messages: List[ChatMessageIn]


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post("/voice-chat")
async def voice_chat(
    body: VoiceChatRequest,
    extractor: TransactionExtractor = Depends(get_gateway_extractor),
):
    """Turn one call transcript into the model's one-line JSON reply."""
    logger.info(f"[VOICE CHAT] Transcript received: '{body.transcript[:200]}'")

    if not settings.llm_api_key:
        logger.error("[VOICE CHAT] LLM_API_KEY is not configured")
        return _error("LLM_API_KEY is not configured", 500)

    try:
        reply = await extractor.extract(body.transcript)
    except ExtractionError as e:
        logger.error(f"[VOICE CHAT] Extraction failed: {str(e)}", exc_info=True)
        return _error(str(e), 500)

    return {"response": reply}


@router.post("/chat")
async def chat(
    body: ChatRequest,
    client: httpx.AsyncClient = Depends(get_gateway_client),
):
    """Relay a streaming chat completion as text/event-stream."""
    logger.info(f"[CHAT] Chat request with {len(body.messages)} message(s)")

    if not settings.llm_api_key:
        await client.aclose()
        logger.error("[CHAT] LLM_API_KEY is not configured")
        return _error("LLM_API_KEY is not configured", 500)

    payload = {
        "model": settings.chat_model,
        "messages": [
            {"role": "system", "content": get_chat_system_prompt(settings.assistant_name)},
            *[message.model_dump() for message in body.messages],
        ],
        "stream": True,
        "temperature": 0.1,
    }
    request = client.build_request(
        "POST",
        "/chat/completions",
        json=payload,
        headers={"Authorization": f"Bearer {settings.llm_api_key}"},
    )

    try:
        response = await client.send(request, stream=True)
    except httpx.HTTPError as e:
        await client.aclose()
        logger.error(f"[CHAT] Gateway request failed: {str(e)}", exc_info=True)
        return _error(GATEWAY_FAILED, 500)

    if not response.is_success:
        error_text = (await response.aread()).decode("utf-8", errors="replace")
        await response.aclose()
        await client.aclose()
        logger.error(f"[CHAT] Gateway error {response.status_code}: {error_text[:500]}")
        if response.status_code == 429:
            return _error(RATE_LIMITED, 429)
        if response.status_code == 402:
            return _error(CREDITS_EXHAUSTED, 402)
        return _error(GATEWAY_FAILED, 500)

    async def close_stream() -> None:
        await response.aclose()
        await client.aclose()

    return StreamingResponse(
        response.aiter_bytes(),
        media_type="text/event-stream",
        background=BackgroundTask(close_stream),
    )
