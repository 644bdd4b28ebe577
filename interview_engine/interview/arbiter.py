"""
Turn arbiter: half-duplex ownership of the speaking channel.

The whole conversation floor is one ``SpeechState`` value. Transitions are
computed by the pure ``next_state`` function; ``TurnArbiter`` feeds it
triggers from one inbox, run to completion, and performs the side effects
(speaking, pausing, resuming, timers) that go with each transition.

The candidate may always interrupt the interviewer. The interviewer never
interrupts the candidate: segments requested while the candidate holds the
floor wait until the silence window closes.
"""
import logging
from collections import deque
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional, Set, Tuple

from ..config import EngineSettings
from .models import Role, ScriptSegment, SessionState, TranscriptEntry
from .speech_input import InputSignal, InputSignalKind
from .speech_output import OutputEvent, OutputEventKind, SpeechOutputChannel, Utterance
from .timers import TimerSet

logger = logging.getLogger("turn_arbiter")


class SpeechState(str, Enum):
    IDLE = "idle"
    INTERVIEWER_SPEAKING = "interviewer_speaking"
    INTERVIEWER_PAUSED_FOR_CANDIDATE = "interviewer_paused_for_candidate"
    CANDIDATE_SPEAKING = "candidate_speaking"
    CANDIDATE_SILENCE_WINDOW = "candidate_silence_window"


class Trigger(str, Enum):
    SEGMENT_REQUESTED = "segment_requested"
    SPEECH_GROWTH = "speech_growth"
    FLOOR_TAKEN = "floor_taken"
    SILENCE_ELAPSED = "silence_elapsed"
    RESUME_DUE = "resume_due"
    OUTPUT_STARTED = "output_started"
    OUTPUT_ENDED = "output_ended"
    NEXT_SEGMENT_DUE = "next_segment_due"
    END = "end"


S = SpeechState
T = Trigger

# (state, trigger) -> (next state when something is pending, next state otherwise)
_TRANSITIONS: Dict[Tuple[SpeechState, Trigger], Tuple[SpeechState, SpeechState]] = {
    (S.IDLE, T.SEGMENT_REQUESTED): (S.INTERVIEWER_SPEAKING, S.INTERVIEWER_SPEAKING),
    (S.IDLE, T.SPEECH_GROWTH): (S.CANDIDATE_SPEAKING, S.CANDIDATE_SPEAKING),
    (S.INTERVIEWER_SPEAKING, T.SPEECH_GROWTH): (S.INTERVIEWER_PAUSED_FOR_CANDIDATE,
                                                 S.INTERVIEWER_PAUSED_FOR_CANDIDATE),
    (S.INTERVIEWER_SPEAKING, T.OUTPUT_ENDED): (S.INTERVIEWER_SPEAKING, S.IDLE),
    (S.INTERVIEWER_SPEAKING, T.NEXT_SEGMENT_DUE): (S.INTERVIEWER_SPEAKING, S.IDLE),
    (S.INTERVIEWER_PAUSED_FOR_CANDIDATE, T.FLOOR_TAKEN): (S.CANDIDATE_SPEAKING, S.CANDIDATE_SPEAKING),
    (S.CANDIDATE_SPEAKING, T.SILENCE_ELAPSED): (S.CANDIDATE_SILENCE_WINDOW, S.CANDIDATE_SILENCE_WINDOW),
    (S.CANDIDATE_SILENCE_WINDOW, T.RESUME_DUE): (S.INTERVIEWER_SPEAKING, S.IDLE),
    (S.CANDIDATE_SILENCE_WINDOW, T.SPEECH_GROWTH): (S.CANDIDATE_SPEAKING, S.CANDIDATE_SPEAKING),
}


def next_state(state: SpeechState, trigger: Trigger, has_pending: bool = False) -> SpeechState:
    """
    Pure transition function of the speaking floor.

    Args:
        state: Current state
        trigger: What happened
        has_pending: Whether a paused or queued interviewer segment is waiting

    Returns:
        The next state; triggers with no transition leave the state unchanged
    """
    if trigger is Trigger.END:
        return SpeechState.IDLE
    outcome = _TRANSITIONS.get((state, trigger))
    if outcome is None:
        return state
    return outcome[0] if has_pending else outcome[1]


class TurnArbiter:
    """Owns the speaking floor and the interviewer's segment queue."""

    def __init__(self,
                 output: SpeechOutputChannel,
                 state: SessionState,
                 settings: Optional[EngineSettings] = None):
        self.output = output
        self.session = state
        self.settings = settings or EngineSettings()
        self.state = SpeechState.IDLE
        self.ended = False
        self.history: List[SpeechState] = [SpeechState.IDLE]
        self.timers = TimerSet()

        self.on_state_change: Optional[Callable[[SpeechState, SpeechState, Trigger], None]] = None
        self.on_segment_started: Optional[Callable[[ScriptSegment, bool], None]] = None
        self.on_segment_finished: Optional[Callable[[ScriptSegment], None]] = None

        self._inbox: Deque[Tuple[Trigger, Any]] = deque()
        self._draining = False
        self._queue: Deque[ScriptSegment] = deque()
        self._current: Optional[Utterance] = None
        self._paused: Optional[Utterance] = None
        self._announced: Set[int] = set()

    # ------------------------------------------------------------------
    # Inputs

    def request_segment(self, segment: ScriptSegment) -> None:
        self.post(Trigger.SEGMENT_REQUESTED, segment)

    def on_input_signal(self, signal: InputSignal) -> None:
        if signal.kind is InputSignalKind.GROWTH:
            self.post(Trigger.SPEECH_GROWTH)
        elif signal.kind is InputSignalKind.SILENCE:
            self.post(Trigger.SILENCE_ELAPSED)

    def record_answer(self, text: str) -> TranscriptEntry:
        """Append the candidate's submitted answer to the transcript."""
        return self.session.append(Role.CANDIDATE, text)

    def end(self) -> None:
        self.post(Trigger.END)

    def post(self, trigger: Trigger, payload: Any = None) -> None:
        """Queue a trigger; triggers are handled one at a time, in order."""
        self._inbox.append((trigger, payload))
        if self._draining:
            return
        self._draining = True
        try:
            while self._inbox:
                self._handle(*self._inbox.popleft())
        finally:
            self._draining = False

    @property
    def has_pending(self) -> bool:
        return self.session.paused_utterance is not None or bool(self._queue)

    @property
    def queued_segments(self) -> List[ScriptSegment]:
        return list(self._queue)

    @property
    def current_utterance(self) -> Optional[Utterance]:
        return self._current

    # ------------------------------------------------------------------
    # Handling

    def _handle(self, trigger: Trigger, payload: Any) -> None:
        if self.ended:
            logger.debug(f"Ignoring {trigger.value}: session ended")
            return

        if trigger in (Trigger.OUTPUT_STARTED, Trigger.OUTPUT_ENDED) and payload is not self._current:
            logger.debug(f"Ignoring stale {trigger.value} for {payload!r}")
            return

        if trigger is Trigger.SEGMENT_REQUESTED:
            self._queue.append(payload)

        previous = self.state
        self._set_state(next_state(previous, trigger, self.has_pending), trigger)

        if trigger is Trigger.SEGMENT_REQUESTED:
            self._on_segment_requested(previous)
        elif trigger is Trigger.SPEECH_GROWTH:
            self._on_growth(previous)
        elif trigger is Trigger.SILENCE_ELAPSED and previous is SpeechState.CANDIDATE_SPEAKING:
            self.timers.schedule("resume", self.settings.resume_grace_seconds, self.post, Trigger.RESUME_DUE)
        elif trigger is Trigger.RESUME_DUE and self.state is SpeechState.INTERVIEWER_SPEAKING:
            self._resume_or_start()
        elif trigger is Trigger.OUTPUT_STARTED:
            self._announce(payload)
        elif trigger is Trigger.OUTPUT_ENDED:
            self._on_output_ended(payload)
        elif trigger is Trigger.NEXT_SEGMENT_DUE and self.state is SpeechState.INTERVIEWER_SPEAKING:
            self._start_next()
        elif trigger is Trigger.END:
            self._on_end()

    def _set_state(self, new_state: SpeechState, trigger: Trigger) -> None:
        previous = self.state
        if new_state is previous:
            return
        self.state = new_state
        self.history.append(new_state)
        logger.info(f"{previous.value} -> {new_state.value} ({trigger.value})")
        if self.on_state_change is not None:
            self.on_state_change(previous, new_state, trigger)

    def _on_segment_requested(self, previous: SpeechState) -> None:
        if previous is SpeechState.IDLE:
            self._start_next()
        elif previous in (SpeechState.CANDIDATE_SPEAKING,
                          SpeechState.CANDIDATE_SILENCE_WINDOW,
                          SpeechState.INTERVIEWER_PAUSED_FOR_CANDIDATE):
            # Candidate holds the floor: the first waiting segment becomes the paused utterance
            if self.session.paused_utterance is None and self._queue:
                self.session.paused_utterance = self._queue.popleft()
                self._paused = None
                logger.info(f"Holding segment {self.session.paused_utterance.index} until the candidate finishes")

    def _on_growth(self, previous: SpeechState) -> None:
        if previous is SpeechState.INTERVIEWER_SPEAKING:
            current = self._current
            if current is not None and not current.finished:
                self.output.pause(current)
                self._paused = current
                self.session.paused_utterance = current.segment
                self._current = None
            else:
                # Barge-in between two segments: the next one is held instead
                self.timers.cancel("next")
                if self._queue:
                    self.session.paused_utterance = self._queue.popleft()
                    self._paused = None
            self.post(Trigger.FLOOR_TAKEN)
        elif previous is SpeechState.CANDIDATE_SILENCE_WINDOW:
            if self.timers.cancel("resume"):
                logger.info("Candidate resumed speaking; interviewer resume aborted")

    def _on_output_ended(self, utterance: Utterance) -> None:
        self._current = None
        if self.on_segment_finished is not None:
            self.on_segment_finished(utterance.segment)
        if self.state is SpeechState.INTERVIEWER_SPEAKING and not self.ended:
            self.timers.schedule("next", self.settings.inter_segment_pause_seconds,
                                 self.post, Trigger.NEXT_SEGMENT_DUE)

    def _on_end(self) -> None:
        self.ended = True
        self.timers.cancel_all()
        self.output.cancel()
        self._queue.clear()
        self._current = None
        self._paused = None
        self.session.paused_utterance = None
        logger.info("Turn arbiter ended")

    # ------------------------------------------------------------------
    # Speaking

    def _resume_or_start(self) -> None:
        segment = self.session.paused_utterance
        if segment is None:
            self._start_next()
            return

        self.session.paused_utterance = None
        handle, self._paused = self._paused, None
        if handle is not None and handle.segment == segment:
            self._current = handle
            self.output.resume(handle)
        else:
            self._speak(segment)

    def _start_next(self) -> None:
        if not self._queue:
            self._set_state(SpeechState.IDLE, Trigger.NEXT_SEGMENT_DUE)
            return
        self._speak(self._queue.popleft())

    def _speak(self, segment: ScriptSegment) -> None:
        utterance = self.output.speak(segment)
        self._current = utterance
        utterance.events.subscribe(lambda event: self._on_output_event(utterance, event))

    def _on_output_event(self, utterance: Utterance, event: OutputEvent) -> None:
        if event.kind in (OutputEventKind.STARTED, OutputEventKind.RESUMED):
            self.post(Trigger.OUTPUT_STARTED, utterance)
        elif event.kind is OutputEventKind.ENDED:
            self.post(Trigger.OUTPUT_ENDED, utterance)
        elif event.kind is OutputEventKind.FAILED:
            logger.warning(f"Output failed for segment {event.segment.index}: {event.error}")

    def _announce(self, utterance: Utterance) -> None:
        segment = utterance.segment
        if segment.index in self._announced:
            return
        self._announced.add(segment.index)
        self.session.append(Role.INTERVIEWER, segment.text)
        if self.on_segment_started is not None:
            self.on_segment_started(segment, utterance.via_fallback)
