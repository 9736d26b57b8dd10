"""Speech capture: one utterance per listen cycle."""
import asyncio
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Optional

from openai import AsyncOpenAI
from pydantic import BaseModel

from app.core.config import settings
from app.services.speech.audio import AudioSource

logger = logging.getLogger(__name__)

InterimCallback = Callable[[str], None]


class CaptureOutcome(str, Enum):
    """How a listen cycle ended."""

    FINAL = "final"  # non-empty transcript
    EMPTY = "empty"  # ended naturally, nothing heard
    ABORTED = "aborted"  # stopped on purpose (mute or hang-up)
    ERROR = "error"  # recognizer failure

    def __str__(self) -> str:
        return self.value


class CaptureResult(BaseModel):
    """Result of one listen cycle."""

    outcome: CaptureOutcome
    transcript: str = ""
    error: Optional[str] = None


class SpeechCapture(ABC):
    """Speech-to-text capability owned by the call orchestrator."""

    @abstractmethod
    async def capture(self, on_interim: Optional[InterimCallback] = None) -> CaptureResult:
        """Listen for one utterance. Never raises for recognizer failures."""
        pass

    @abstractmethod
    def abort(self) -> None:
        """Abort the active cycle. Its result will be ABORTED."""
        pass


class WhisperSpeechCapture(SpeechCapture):
    """Records an utterance from an AudioSource and transcribes it with Whisper."""

    def __init__(
        self,
        source: AudioSource,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        language: str = "en",
    ):
        self.source = source
        self.client = client or AsyncOpenAI(api_key=settings.openai_api_key or "missing")
        self.model = model or settings.stt_model
        self.language = language
        self._aborted = False
        self._recording: Optional[asyncio.Future] = None

    async def transcribe(self, audio: bytes, format: str = "wav") -> str:
        """Transcribe raw audio bytes."""
        transcript = await self.client.audio.transcriptions.create(
            model=self.model,
            file=(f"utterance.{format}", audio, f"audio/{format}"),
            language=self.language,
        )
        return transcript.text

    async def capture(self, on_interim: Optional[InterimCallback] = None) -> CaptureResult:
        self._aborted = False
        self._recording = asyncio.ensure_future(self.source.record_utterance())
        try:
            audio = await self._recording
        except asyncio.CancelledError:
            if self._aborted:
                return CaptureResult(outcome=CaptureOutcome.ABORTED)
            raise
        except Exception as e:
            logger.error(f"[CAPTURE] Recording failed: {type(e).__name__}: {str(e)}")
            return CaptureResult(outcome=CaptureOutcome.ERROR, error=str(e))
        finally:
            self._recording = None

        if self._aborted:
            return CaptureResult(outcome=CaptureOutcome.ABORTED)
        if not audio:
            return CaptureResult(outcome=CaptureOutcome.EMPTY)

        try:
            text = (await self.transcribe(audio)).strip()
        except Exception as e:
            logger.error(f"[CAPTURE] Transcription failed: {type(e).__name__}: {str(e)}")
            return CaptureResult(outcome=CaptureOutcome.ERROR, error=str(e))

        if self._aborted:
            return CaptureResult(outcome=CaptureOutcome.ABORTED)
        if not text:
            return CaptureResult(outcome=CaptureOutcome.EMPTY)
        if on_interim is not None:
            on_interim(text)
        return CaptureResult(outcome=CaptureOutcome.FINAL, transcript=text)

    def abort(self) -> None:
        self._aborted = True
        self.source.stop()
        if self._recording is not None and not self._recording.done():
            self._recording.cancel()
