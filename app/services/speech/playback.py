"""Speech playback: hosted text-to-speech with a local fallback."""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

from openai import AsyncOpenAI

from app.core.config import settings
from app.services.speech.audio import MPEG_MEDIA_TYPE, AudioSink

logger = logging.getLogger(__name__)


class SynthesisError(Exception):
    """Text-to-speech synthesis failed."""


class SpeechPlayback(ABC):
    """Text-to-speech capability owned by the call orchestrator."""

    @abstractmethod
    async def speak(self, text: str) -> None:
        """Speak text to completion. Never raises for playback failures."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop speaking; a pending `speak` returns promptly."""
        pass


class LocalSpeech(ABC):
    """Best-effort on-device speech used when hosted TTS fails."""

    @abstractmethod
    async def say(self, text: str) -> None:
        pass

    @abstractmethod
    def cancel(self) -> None:
        pass


class TranscriptOnlySpeech(LocalSpeech):
    """Fallback for devices without a speech engine: logs the text instead."""

    async def say(self, text: str) -> None:
        logger.info(f"[PLAYBACK] (no speech engine) {text}")

    def cancel(self) -> None:
        pass


class OpenAISpeechSynthesizer:
    """Synthesizes speech with OpenAI TTS."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        voice: Optional[str] = None,
        model: Optional[str] = None,
    ):
        self.client = client or AsyncOpenAI(api_key=settings.openai_api_key or "missing")
        self.voice = voice or settings.tts_voice
        self.model = model or settings.tts_model

    async def synthesize(self, text: str) -> bytes:
        """Return MP3 audio for text."""
        try:
            response = await self.client.audio.speech.create(
                model=self.model,
                voice=self.voice,
                input=text,
            )
            return response.content
        except Exception as e:
            raise SynthesisError(f"TTS synthesis failed: {str(e)}") from e


class FallbackSpeechPlayback(SpeechPlayback):
    """Plays hosted TTS audio, falling back to local speech on any failure."""

    def __init__(
        self,
        synthesizer: OpenAISpeechSynthesizer,
        sink: AudioSink,
        fallback: Optional[LocalSpeech] = None,
    ):
        self.synthesizer = synthesizer
        self.sink = sink
        self.fallback = fallback or TranscriptOnlySpeech()
        self._stopped = False

    async def speak(self, text: str) -> None:
        self._stopped = False
        try:
            audio = await self.synthesizer.synthesize(text)
            if self._stopped:
                return
            await self.sink.play(audio, MPEG_MEDIA_TYPE)
            return
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(
                f"[PLAYBACK] Hosted TTS failed, using local speech: "
                f"{type(e).__name__}: {str(e)}"
            )

        if self._stopped:
            return
        try:
            await self.fallback.say(text)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"[PLAYBACK] Local speech failed: {type(e).__name__}: {str(e)}")

    def stop(self) -> None:
        self._stopped = True
        self.sink.stop()
        self.fallback.cancel()
