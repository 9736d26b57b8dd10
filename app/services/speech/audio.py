"""Audio transport seams between the call orchestrator and the client device."""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)

MPEG_MEDIA_TYPE = "audio/mpeg"
PCM_MEDIA_TYPE = "audio/L16"


class AudioChunk(BaseModel):
    """A piece of audio handed to the client for playback."""

    data: bytes
    media_type: str = MPEG_MEDIA_TYPE


class AudioSink(ABC):
    """Plays audio on the caller's device."""

    @abstractmethod
    async def play(self, audio: bytes, media_type: str = MPEG_MEDIA_TYPE) -> None:
        """Play audio, returning once it finished or playback was stopped."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop the current playback."""
        pass


class AudioSource(ABC):
    """Records one utterance from the caller's microphone."""

    @abstractmethod
    async def record_utterance(self) -> bytes:
        """Record until end of speech. Returns empty bytes if nothing was said."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop recording and release the microphone."""
        pass


class QueueAudioSink(AudioSink):
    """Queues audio for a transport (e.g. a websocket writer).

    With `wait_for_ack` set, `play` blocks until the transport calls
    `mark_played` or playback is stopped.
    """

    def __init__(self, queue: Optional[asyncio.Queue] = None, wait_for_ack: bool = True):
        self.queue = queue or asyncio.Queue()
        self.wait_for_ack = wait_for_ack
        self._finished: Optional[asyncio.Event] = None

    async def play(self, audio: bytes, media_type: str = MPEG_MEDIA_TYPE) -> None:
        self._finished = asyncio.Event()
        await self.queue.put(AudioChunk(data=audio, media_type=media_type))
        if self.wait_for_ack:
            await self._finished.wait()

    def mark_played(self) -> None:
        if self._finished is not None:
            self._finished.set()

    def stop(self) -> None:
        self.mark_played()


class QueueAudioSource(AudioSource):
    """Receives complete utterances pushed by a transport.

    Audio is only accepted while a recording is pending; anything pushed
    between cycles (while speaking, muted or after an abort) is dropped.
    """

    def __init__(self):
        self._utterances: asyncio.Queue = asyncio.Queue()
        self._waiter: Optional[asyncio.Future] = None

    @property
    def recording(self) -> bool:
        return self._waiter is not None and not self._waiter.done()

    def push(self, audio: bytes) -> bool:
        """Deliver one recorded utterance (empty bytes for silence).

        Returns False when no recording was pending and the audio was dropped.
        """
        if not self.recording:
            logger.info(f"[AUDIO] Dropping {len(audio)} bytes pushed outside a listen cycle")
            return False
        self._utterances.put_nowait(audio)
        return True

    async def record_utterance(self) -> bytes:
        self._waiter = asyncio.ensure_future(self._utterances.get())
        try:
            return await self._waiter
        finally:
            self._waiter = None

    def stop(self) -> None:
        if self._waiter is not None and not self._waiter.done():
            self._waiter.cancel()
        while not self._utterances.empty():
            self._utterances.get_nowait()
