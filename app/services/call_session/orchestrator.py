"""Voice call orchestrator.

Drives the call state machine on asyncio: every transition's effects are run
here, and every asynchronous completion is fed back as an event. Completions
carry the generation they were started under; once the call is ending the
generation moves on and late results are dropped instead of advancing the
call.
"""
import asyncio
import inspect
import logging
from typing import Any, Callable, Coroutine, List, Optional, Sequence, Set

from app.core.config import settings
from app.services.accounts.models import Account
from app.services.call_session.machine import transition
from app.services.call_session.models import (
    CallEvent,
    CallSession,
    CallState,
    Effect,
    EffectKind,
    EventKind,
)
from app.services.dialogue.constants import SERVICE_ERROR
from app.services.dialogue.resolver import DialogueResolver, Resolution, ResolutionOutcome
from app.services.ledger.base import Ledger
from app.services.ledger.recorder import record_transaction
from app.services.speech.capture import CaptureOutcome, CaptureResult, SpeechCapture
from app.services.speech.playback import SpeechPlayback
from app.services.speech.tone import RingTone
from app.services.transactions.models import ParsedTransactionRequest, SavedTransaction

logger = logging.getLogger(__name__)

_CAPTURE_EVENTS = {
    CaptureOutcome.FINAL: EventKind.TRANSCRIPT,
    CaptureOutcome.EMPTY: EventKind.NO_SPEECH,
    CaptureOutcome.ABORTED: EventKind.CAPTURE_ABORTED,
    CaptureOutcome.ERROR: EventKind.RECOGNITION_ERROR,
}


class CallOrchestrator:
    """Runs one voice call from ring to hang-up.

    The orchestrator owns the capture and playback handles for the whole
    call; nothing else may start recognition or playback while it is live.
    """

    def __init__(
        self,
        capture: SpeechCapture,
        playback: SpeechPlayback,
        resolver: DialogueResolver,
        ledger: Ledger,
        accounts: Optional[Sequence[Account]] = None,
        ringer: Optional[RingTone] = None,
        on_change: Optional[Callable[[CallSession], Any]] = None,
        on_close: Optional[Callable[[], Any]] = None,
        ring_seconds: Optional[float] = None,
        relisten_delay_seconds: Optional[float] = None,
        close_delay_seconds: Optional[float] = None,
        clock_interval_seconds: float = 1.0,
    ):
        self.capture = capture
        self.playback = playback
        self.resolver = resolver
        self.ledger = ledger
        self.accounts: Optional[List[Account]] = list(accounts) if accounts is not None else None
        self.ringer = ringer
        self.on_change = on_change
        self.on_close = on_close
        self.ring_seconds = settings.ring_seconds if ring_seconds is None else ring_seconds
        self.relisten_delay_seconds = (
            settings.relisten_delay_seconds
            if relisten_delay_seconds is None
            else relisten_delay_seconds
        )
        self.close_delay_seconds = (
            settings.close_delay_seconds if close_delay_seconds is None else close_delay_seconds
        )
        self.clock_interval_seconds = clock_interval_seconds

        self.session = CallSession()
        self._generation = 0
        self._ending = False
        self._tasks: Set[asyncio.Task] = set()
        self._timers: Set[asyncio.Task] = set()
        self._ring_task: Optional[asyncio.Task] = None
        self._clock_task: Optional[asyncio.Task] = None
        self._capture_task: Optional[asyncio.Task] = None
        self._capture_cycle = 0
        self._closed = asyncio.Event()

    @property
    def state(self) -> CallState:
        return self.session.state

    # Public controls

    async def start(self) -> None:
        """Place the call (Idle -> Ringing)."""
        self.dispatch(CallEvent(kind=EventKind.START))

    def toggle_mute(self, muted: Optional[bool] = None) -> None:
        """Mute or unmute; flips the current setting when `muted` is None."""
        if muted is None:
            muted = not self.session.is_muted
        self.dispatch(CallEvent(kind=EventKind.MUTE, muted=muted))

    def end_call(self) -> None:
        """Hang up. Pending operations are cancelled or their results dropped."""
        if self.session.state == CallState.ENDED:
            return
        # Mark ending before any cancellation so aborted callbacks see it
        self._ending = True
        self._generation += 1
        self.dispatch(CallEvent(kind=EventKind.END))

    async def aclose(self) -> None:
        """Forced teardown: end immediately and wait for background work."""
        self.end_call()
        tasks = [task for task in self._tasks if task is not asyncio.current_task()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._closed.set()

    async def wait_closed(self) -> None:
        """Wait until the call screen may be closed."""
        await self._closed.wait()

    # State machine plumbing

    def dispatch(self, event: CallEvent) -> None:
        previous = self.session
        self.session, effects = transition(previous, event)

        if self.session.state != previous.state:
            logger.info(
                f"[CALL] {previous.state} -> {self.session.state} on {event.kind} "
                f"({self.session.status_text})"
            )
        if self.on_change is not None and self.session != previous:
            self.on_change(self.session)

        for effect in effects:
            self._run_effect(effect)

    def _is_live(self, generation: int) -> bool:
        return not self._ending and generation == self._generation

    def _deliver(self, generation: int, event: CallEvent) -> None:
        if not self._is_live(generation):
            logger.debug(f"[CALL] Dropping stale {event.kind} from generation {generation}")
            return
        self.dispatch(event)

    def _spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _schedule(self, delay: float, event: CallEvent) -> None:
        generation = self._generation

        async def fire() -> None:
            await asyncio.sleep(delay)
            self._deliver(generation, event)

        timer = self._spawn(fire())
        self._timers.add(timer)
        timer.add_done_callback(self._timers.discard)

    @staticmethod
    def _cancel(task: Optional[asyncio.Task]) -> None:
        if task is not None and not task.done():
            task.cancel()

    def _run_effect(self, effect: Effect) -> None:
        generation = self._generation
        kind = effect.kind

        if kind == EffectKind.START_RING:
            if self.ringer is not None:
                self._ring_task = self._spawn(self.ringer.ring())
        elif kind == EffectKind.STOP_RING:
            self._cancel(self._ring_task)
            self._ring_task = None
        elif kind == EffectKind.START_CLOCK:
            self._clock_task = self._spawn(self._run_clock(generation))
        elif kind == EffectKind.STOP_CLOCK:
            self._cancel(self._clock_task)
            self._clock_task = None
        elif kind == EffectKind.SCHEDULE_ANSWER:
            self._schedule(self.ring_seconds, CallEvent(kind=EventKind.ANSWERED))
        elif kind == EffectKind.SCHEDULE_LISTEN:
            self._schedule(self.relisten_delay_seconds, CallEvent(kind=EventKind.LISTEN_DUE))
        elif kind == EffectKind.START_CAPTURE:
            previous = self._capture_task
            if previous is not None and previous.done():
                previous = None
            self._capture_cycle += 1
            self._capture_task = self._spawn(
                self._listen(generation, self._capture_cycle, previous)
            )
        elif kind == EffectKind.ABORT_CAPTURE:
            self._capture_cycle += 1
            if self._capture_task is not None and not self._capture_task.done():
                self.capture.abort()
        elif kind == EffectKind.RESOLVE:
            self._spawn(self._resolve(generation, effect.text, effect.context))
        elif kind == EffectKind.SAVE:
            if effect.request is not None:
                self._spawn(self._save(generation, effect.request))
        elif kind == EffectKind.SPEAK:
            self._spawn(self._speak(generation, effect.text))
        elif kind == EffectKind.STOP_PLAYBACK:
            self.playback.stop()
        elif kind == EffectKind.CANCEL_TIMERS:
            for timer in list(self._timers):
                timer.cancel()
        elif kind == EffectKind.SCHEDULE_CLOSE:
            self._spawn(self._close_later())

    # Effect coroutines

    async def _run_clock(self, generation: int) -> None:
        while True:
            await asyncio.sleep(self.clock_interval_seconds)
            self._deliver(generation, CallEvent(kind=EventKind.TICK))

    async def _listen(
        self, generation: int, cycle: int, previous: Optional[asyncio.Task]
    ) -> None:
        if previous is not None:
            # An aborted cycle still winding down owns the microphone
            await asyncio.wait([previous])
        if cycle != self._capture_cycle or not self._is_live(generation):
            # Aborted or superseded before it got the microphone
            return

        def on_interim(text: str) -> None:
            self._deliver(generation, CallEvent(kind=EventKind.INTERIM, text=text))

        try:
            result = await self.capture.capture(on_interim=on_interim)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                f"[CALL] Speech capture raised: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )
            result = CaptureResult(outcome=CaptureOutcome.ERROR, error=str(e))

        self._deliver(
            generation,
            CallEvent(kind=_CAPTURE_EVENTS[result.outcome], text=result.transcript),
        )

    async def _resolve(self, generation: int, text: str, context: Optional[str]) -> None:
        try:
            resolution = await self.resolver.resolve(text, context)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                f"[CALL] Resolver raised: {type(e).__name__}: {str(e)}", exc_info=True
            )
            resolution = Resolution(
                outcome=ResolutionOutcome.UNRESOLVABLE,
                reply=SERVICE_ERROR,
                next_context=None,
            )
        self._deliver(generation, CallEvent(kind=EventKind.RESOLVED, resolution=resolution))

    async def _load_accounts(self) -> List[Account]:
        if self.accounts is None:
            try:
                self.accounts = await self.ledger.list_accounts()
            except Exception as e:
                logger.error(f"[CALL] Could not load accounts: {type(e).__name__}: {str(e)}")
                return []
        return self.accounts

    async def _save(self, generation: int, request: ParsedTransactionRequest) -> None:
        if not self._is_live(generation):
            return

        accounts = await self._load_accounts()
        saved: Optional[SavedTransaction] = None
        try:
            saved = await record_transaction(
                self.ledger,
                accounts,
                request,
                is_live=lambda: self._is_live(generation),
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                f"[CALL] Saving transaction raised: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )

        if saved:
            self._deliver(generation, CallEvent(kind=EventKind.SAVED, saved=saved))
        else:
            logger.warning("[CALL] Transaction was not saved")
            self._deliver(generation, CallEvent(kind=EventKind.SAVE_FAILED))

    async def _speak(self, generation: int, text: str) -> None:
        if not self._is_live(generation):
            return
        try:
            await self.playback.speak(text)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"[CALL] Playback raised: {type(e).__name__}: {str(e)}")
        self._deliver(generation, CallEvent(kind=EventKind.SPEECH_FINISHED))

    async def _close_later(self) -> None:
        await asyncio.sleep(self.close_delay_seconds)
        if self.on_close is not None:
            result = self.on_close()
            if inspect.isawaitable(result):
                await result
        self._closed.set()
