"""Ring tone played while a call is ringing."""
import asyncio
from typing import Iterator

import numpy as np

from app.services.speech.audio import PCM_MEDIA_TYPE, AudioSink


class RingTone:
    """440 Hz sine tone alternating one period on, one period off."""

    def __init__(
        self,
        sink: AudioSink,
        frequency: float = 440.0,
        gain: float = 0.3,
        sample_rate: int = 16000,
        period_seconds: float = 1.0,
    ):
        self.sink = sink
        self.frequency = frequency
        self.gain = gain
        self.sample_rate = sample_rate
        self.period_seconds = period_seconds

    def tone_frame(self) -> np.ndarray:
        """One period of tone as int16 PCM samples."""
        count = int(self.sample_rate * self.period_seconds)
        t = np.arange(count) / self.sample_rate
        wave = self.gain * np.sin(2 * np.pi * self.frequency * t)
        return (wave * np.iinfo(np.int16).max).astype(np.int16)

    def silence_frame(self) -> np.ndarray:
        return np.zeros(int(self.sample_rate * self.period_seconds), dtype=np.int16)

    def frames(self) -> Iterator[bytes]:
        """Endless on/off cadence as little-endian PCM16 bytes."""
        on = self.tone_frame().astype("<i2").tobytes()
        off = self.silence_frame().astype("<i2").tobytes()
        while True:
            yield on
            yield off

    async def ring(self) -> None:
        """Play the cadence until cancelled."""
        loop = asyncio.get_running_loop()
        started = loop.time()
        for index, frame in enumerate(self.frames()):
            await self.sink.play(frame, PCM_MEDIA_TYPE)
            # keep cadence even when the sink returns before the audio ends
            delay = started + (index + 1) * self.period_seconds - loop.time()
            await asyncio.sleep(max(0.0, delay))
