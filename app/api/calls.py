"""Voice call websocket.

The client streams one binary message per recorded utterance (empty for
silence) and JSON control messages:

- {"type": "played"}: the last audio clip finished playing
- {"type": "mute", "muted": true|false}: omit "muted" to toggle
- {"type": "end"}: hang up

The server sends {"type": "state", ...} snapshots, and each audio clip as a
{"type": "audio", "media_type": ..., "size": ...} header followed by the
binary payload.
"""
import asyncio
import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from openai import AsyncOpenAI

from app.core.dependencies import get_extractor, get_ledger, get_speech_client
from app.services.call_session.orchestrator import CallOrchestrator
from app.services.dialogue.extractor import TransactionExtractor
from app.services.dialogue.resolver import DialogueResolver
from app.services.ledger.base import Ledger
from app.services.speech.audio import AudioChunk, QueueAudioSink, QueueAudioSource
from app.services.speech.capture import WhisperSpeechCapture
from app.services.speech.playback import FallbackSpeechPlayback, OpenAISpeechSynthesizer
from app.services.speech.tone import RingTone

router = APIRouter()
logger = logging.getLogger(__name__)


async def _send_outbox(websocket: WebSocket, outbox: asyncio.Queue) -> None:
    """Forward queued state snapshots and audio until a None sentinel."""
    while True:
        item = await outbox.get()
        if item is None:
            return
        if isinstance(item, AudioChunk):
            await websocket.send_json(
                {"type": "audio", "media_type": item.media_type, "size": len(item.data)}
            )
            await websocket.send_bytes(item.data)
        else:
            await websocket.send_json(item)


@router.websocket("/calls/ws")
async def call_socket(
    websocket: WebSocket,
    ledger: Ledger = Depends(get_ledger),
    extractor: TransactionExtractor = Depends(get_extractor),
    speech_client: AsyncOpenAI = Depends(get_speech_client),
):
    """Run one voice call over a websocket."""
    await websocket.accept()
    logger.info(
        f"[CALL WS] Call connected - Client: "
        f"{websocket.client.host if websocket.client else 'unknown'}"
    )

    outbox: asyncio.Queue = asyncio.Queue()
    source = QueueAudioSource()
    speaker = QueueAudioSink(queue=outbox)

    def publish(session) -> None:
        outbox.put_nowait({"type": "state", **session.model_dump(mode="json")})

    call = CallOrchestrator(
        capture=WhisperSpeechCapture(source, client=speech_client),
        playback=FallbackSpeechPlayback(OpenAISpeechSynthesizer(client=speech_client), speaker),
        resolver=DialogueResolver(extractor),
        ledger=ledger,
        ringer=RingTone(QueueAudioSink(queue=outbox, wait_for_ack=False)),
        on_change=publish,
    )
    sender = asyncio.ensure_future(_send_outbox(websocket, outbox))
    hung_up = False

    await call.start()
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            if message.get("bytes") is not None:
                source.push(message["bytes"])
                continue

            try:
                control = json.loads(message.get("text") or "")
            except ValueError:
                logger.warning(f"[CALL WS] Ignoring malformed control message: {message.get('text')!r}")
                continue
            if not isinstance(control, dict):
                continue

            kind = control.get("type")
            if kind == "played":
                speaker.mark_played()
            elif kind == "mute":
                call.toggle_mute(control.get("muted"))
            elif kind == "end":
                logger.info("[CALL WS] Caller hung up")
                call.end_call()
                await call.wait_closed()
                hung_up = True
                break
            else:
                logger.warning(f"[CALL WS] Unknown control message type: {kind}")
    except WebSocketDisconnect:
        logger.info("[CALL WS] Client disconnected")
    finally:
        await call.aclose()

    if hung_up:
        # Flush the final state before closing
        outbox.put_nowait(None)
        await sender
        await websocket.close()
    else:
        sender.cancel()
        await asyncio.gather(sender, return_exceptions=True)
    logger.info(f"[CALL WS] Call finished after {call.session.duration_seconds}s")
