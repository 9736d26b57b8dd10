"""Call session models."""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.services.dialogue.resolver import Resolution
from app.services.transactions.models import ParsedTransactionRequest, SavedTransaction


class CallState(str, Enum):
    """Lifecycle states of a voice call."""

    IDLE = "idle"
    RINGING = "ringing"
    CONNECTED = "connected"
    LISTENING = "listening"
    PROCESSING = "processing"
    SPEAKING = "speaking"
    ENDED = "ended"

    def __str__(self) -> str:
        return self.value


# At most one of these is active at any time
TURN_STATES = frozenset({CallState.LISTENING, CallState.PROCESSING, CallState.SPEAKING})


class CallSession(BaseModel):
    """Snapshot of one live call. Transitions return updated copies."""

    state: CallState = CallState.IDLE
    duration_seconds: int = 0
    is_muted: bool = False
    transcript: str = ""  # latest recognized text, for display
    clarification_context: Optional[str] = None
    status_text: str = ""
    turns_completed: int = 0

    model_config = ConfigDict(frozen=True)


class EventKind(str, Enum):
    """Inputs to the call state machine."""

    START = "start"
    ANSWERED = "answered"
    LISTEN_DUE = "listen_due"
    INTERIM = "interim"
    TRANSCRIPT = "transcript"
    NO_SPEECH = "no_speech"
    CAPTURE_ABORTED = "capture_aborted"
    RECOGNITION_ERROR = "recognition_error"
    RESOLVED = "resolved"
    SAVED = "saved"
    SAVE_FAILED = "save_failed"
    SPEECH_FINISHED = "speech_finished"
    MUTE = "mute"
    TICK = "tick"
    END = "end"

    def __str__(self) -> str:
        return self.value


class CallEvent(BaseModel):
    """An event plus whichever payload its kind carries."""

    kind: EventKind
    text: str = ""
    muted: bool = False
    resolution: Optional[Resolution] = None
    saved: Optional[SavedTransaction] = None


class EffectKind(str, Enum):
    """Work the driver performs after a transition."""

    START_RING = "start_ring"
    STOP_RING = "stop_ring"
    START_CLOCK = "start_clock"
    STOP_CLOCK = "stop_clock"
    SCHEDULE_ANSWER = "schedule_answer"
    SCHEDULE_LISTEN = "schedule_listen"
    START_CAPTURE = "start_capture"
    ABORT_CAPTURE = "abort_capture"
    RESOLVE = "resolve"
    SAVE = "save"
    SPEAK = "speak"
    STOP_PLAYBACK = "stop_playback"
    CANCEL_TIMERS = "cancel_timers"
    SCHEDULE_CLOSE = "schedule_close"

    def __str__(self) -> str:
        return self.value


class Effect(BaseModel):
    """One unit of driver work."""

    kind: EffectKind
    text: str = ""
    context: Optional[str] = None
    request: Optional[ParsedTransactionRequest] = None
