"""Call state machine.

`transition(session, event)` is pure: it returns the next session snapshot
and the effects the driver must run. Events that do not apply to the current
state are ignored, and nothing changes once the call has ended.
"""
import logging
from typing import Callable, Dict, List, Tuple

from app.services.call_session import constants
from app.services.call_session.models import (
    CallEvent,
    CallSession,
    CallState,
    Effect,
    EffectKind,
    EventKind,
)
from app.services.dialogue.constants import NOT_UNDERSTOOD
from app.services.dialogue.resolver import ResolutionOutcome

logger = logging.getLogger(__name__)

Transition = Tuple[CallSession, List[Effect]]


def _update(session: CallSession, **changes) -> CallSession:
    return session.model_copy(update=changes)


def _speak(session: CallSession, text: str, **changes) -> Transition:
    return (
        _update(
            session,
            state=CallState.SPEAKING,
            status_text=constants.STATUS_SPEAKING,
            **changes,
        ),
        [Effect(kind=EffectKind.SPEAK, text=text)],
    )


def _back_to_connected(session: CallSession, status_text: str) -> Transition:
    """Return to Connected and re-arm the microphone after a short pause."""
    if session.is_muted:
        return _update(session, state=CallState.CONNECTED, status_text=constants.STATUS_MUTED), []
    return (
        _update(session, state=CallState.CONNECTED, status_text=status_text),
        [Effect(kind=EffectKind.SCHEDULE_LISTEN)],
    )


def _start_listening(session: CallSession, **changes) -> Transition:
    return (
        _update(
            session,
            state=CallState.LISTENING,
            status_text=constants.STATUS_LISTENING,
            transcript="",
            **changes,
        ),
        [Effect(kind=EffectKind.START_CAPTURE)],
    )


def _on_start(session: CallSession, event: CallEvent) -> Transition:
    return (
        _update(session, state=CallState.RINGING, status_text=constants.STATUS_RINGING),
        [Effect(kind=EffectKind.START_RING), Effect(kind=EffectKind.SCHEDULE_ANSWER)],
    )


def _on_answered(session: CallSession, event: CallEvent) -> Transition:
    next_session, effects = _speak(session, constants.GREETING)
    return next_session, [
        Effect(kind=EffectKind.STOP_RING),
        Effect(kind=EffectKind.START_CLOCK),
        *effects,
    ]


def _on_listen_due(session: CallSession, event: CallEvent) -> Transition:
    if session.is_muted:
        return _update(session, status_text=constants.STATUS_MUTED), []
    return _start_listening(session)


def _on_interim(session: CallSession, event: CallEvent) -> Transition:
    return _update(session, transcript=event.text), []


def _on_transcript(session: CallSession, event: CallEvent) -> Transition:
    text = event.text.strip()
    if not text:
        return _on_no_speech(session, event)
    return (
        _update(
            session,
            state=CallState.PROCESSING,
            status_text=constants.STATUS_PROCESSING,
            transcript=text,
        ),
        [
            Effect(
                kind=EffectKind.RESOLVE,
                text=text,
                context=session.clarification_context,
            )
        ],
    )


def _on_no_speech(session: CallSession, event: CallEvent) -> Transition:
    return _back_to_connected(session, constants.STATUS_NO_SPEECH)


def _on_recognition_error(session: CallSession, event: CallEvent) -> Transition:
    return _back_to_connected(session, constants.STATUS_RECOGNITION_ERROR)


def _on_resolved(session: CallSession, event: CallEvent) -> Transition:
    resolution = event.resolution
    if resolution is None:
        return _speak(session, NOT_UNDERSTOOD, clarification_context=None)

    if resolution.outcome == ResolutionOutcome.RESOLVED and resolution.request is not None:
        return (
            _update(
                session,
                status_text=constants.STATUS_SAVING,
                clarification_context=resolution.next_context,
            ),
            [Effect(kind=EffectKind.SAVE, request=resolution.request)],
        )

    return _speak(
        session,
        resolution.reply or NOT_UNDERSTOOD,
        clarification_context=resolution.next_context,
    )


def _on_saved(session: CallSession, event: CallEvent) -> Transition:
    if event.saved is None:
        return _on_save_failed(session, event)
    return _speak(
        session,
        constants.confirmation_message(event.saved),
        transcript="",
        turns_completed=session.turns_completed + 1,
    )


def _on_save_failed(session: CallSession, event: CallEvent) -> Transition:
    return _speak(session, constants.SAVE_FAILED)


def _on_speech_finished(session: CallSession, event: CallEvent) -> Transition:
    return _back_to_connected(session, constants.STATUS_CONNECTED)


def _on_mute(session: CallSession, event: CallEvent) -> Transition:
    if event.muted == session.is_muted:
        return session, []

    if event.muted:
        if session.state == CallState.LISTENING:
            return (
                _update(
                    session,
                    is_muted=True,
                    state=CallState.CONNECTED,
                    status_text=constants.STATUS_MUTED,
                    transcript="",
                ),
                [Effect(kind=EffectKind.ABORT_CAPTURE)],
            )
        if session.state == CallState.CONNECTED:
            return _update(session, is_muted=True, status_text=constants.STATUS_MUTED), []
        return _update(session, is_muted=True), []

    if session.state == CallState.CONNECTED:
        return _start_listening(session, is_muted=False)
    return _update(session, is_muted=False), []


def _on_tick(session: CallSession, event: CallEvent) -> Transition:
    if session.state in (CallState.IDLE, CallState.RINGING):
        return session, []
    return _update(session, duration_seconds=session.duration_seconds + 1), []


def _on_end(session: CallSession, event: CallEvent) -> Transition:
    return (
        _update(session, state=CallState.ENDED, status_text=constants.STATUS_ENDED),
        [
            Effect(kind=EffectKind.ABORT_CAPTURE),
            Effect(kind=EffectKind.STOP_PLAYBACK),
            Effect(kind=EffectKind.STOP_RING),
            Effect(kind=EffectKind.STOP_CLOCK),
            Effect(kind=EffectKind.CANCEL_TIMERS),
            Effect(kind=EffectKind.SCHEDULE_CLOSE),
        ],
    )


Handler = Callable[[CallSession, CallEvent], Transition]

# (state, event) -> handler; anything missing is ignored
_TRANSITIONS: Dict[Tuple[CallState, EventKind], Handler] = {
    (CallState.IDLE, EventKind.START): _on_start,
    (CallState.RINGING, EventKind.ANSWERED): _on_answered,
    (CallState.CONNECTED, EventKind.LISTEN_DUE): _on_listen_due,
    (CallState.LISTENING, EventKind.INTERIM): _on_interim,
    (CallState.LISTENING, EventKind.TRANSCRIPT): _on_transcript,
    (CallState.LISTENING, EventKind.NO_SPEECH): _on_no_speech,
    (CallState.LISTENING, EventKind.RECOGNITION_ERROR): _on_recognition_error,
    (CallState.PROCESSING, EventKind.RESOLVED): _on_resolved,
    (CallState.PROCESSING, EventKind.SAVED): _on_saved,
    (CallState.PROCESSING, EventKind.SAVE_FAILED): _on_save_failed,
    (CallState.SPEAKING, EventKind.SPEECH_FINISHED): _on_speech_finished,
}

# Handled the same way from every live state
_ANY_STATE: Dict[EventKind, Handler] = {
    EventKind.MUTE: _on_mute,
    EventKind.TICK: _on_tick,
    EventKind.END: _on_end,
}


def transition(session: CallSession, event: CallEvent) -> Transition:
    """Apply one event to a session snapshot."""
    if session.state == CallState.ENDED:
        return session, []

    handler = _ANY_STATE.get(event.kind) or _TRANSITIONS.get((session.state, event.kind))
    if handler is None:
        logger.debug(f"[CALL MACHINE] Ignoring {event.kind} in state {session.state}")
        return session, []
    return handler(session, event)
