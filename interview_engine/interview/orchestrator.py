"""
Interview session: wires devices, speech channels, the turn arbiter and the
script driver for one job application.
"""
import asyncio
import logging
import time
from typing import Optional

from ..config import CLIPS_DIR, QUESTION_COUNT, EngineSettings
from .arbiter import SpeechState, Trigger, TurnArbiter
from .capabilities import (
    ClipPlayer, MediaCapture, PersistenceService, Scorer, ScriptSource,
    SpeechRecognizer, SpeechSynthesizer
)
from .devices import DevicePermissionManager
from .errors import DevicePermissionError, PersistenceError, RecognitionError
from .events import (
    InterviewEventBus, EventLogger, InterviewMetrics,
    SessionStartedEvent, SegmentStartedEvent, SpeechStateChangedEvent,
    AnswerSubmittedEvent, AnswerReadyEvent, FallbackActivatedEvent,
    CapabilityDegradedEvent, SessionCompletedEvent, SessionTerminatedEvent,
    ErrorOccurredEvent
)
from .models import DeviceKind, JobPosting, ScriptSegment, SessionState, SessionSummary
from .script import QuestionBank, ScriptDriver, validate_script
from .speech_input import SpeechInputChannel
from .speech_output import ClipLibrary, SpeechOutputChannel
from .summary import PlaceholderScorer, SessionSummaryBuilder

logger = logging.getLogger("orchestrator")


class InterviewSession:
    """
    One AI interview, from device setup to the submitted result.

    The session is driven from a single asyncio event loop. Capability
    engines report back through event channels; everything that changes
    the conversation floor goes through the turn arbiter.
    """

    def __init__(self,
                 job: JobPosting,
                 application_id: str,
                 *,
                 synthesizer: SpeechSynthesizer,
                 recognizer: SpeechRecognizer,
                 capture: MediaCapture,
                 clip_player: ClipPlayer,
                 persistence: PersistenceService,
                 candidate_name: str = "there",
                 script_source: Optional[ScriptSource] = None,
                 scorer: Optional[Scorer] = None,
                 settings: Optional[EngineSettings] = None,
                 clips_dir: str = CLIPS_DIR,
                 question_count: int = QUESTION_COUNT,
                 muted: bool = False,
                 voice_hint: Optional[str] = None,
                 event_bus: Optional[InterviewEventBus] = None):
        self.job = job
        self.application_id = application_id
        self.session_id = f"{application_id}-{int(time.time())}"
        self.settings = settings or EngineSettings()

        # Script problems are fatal here, before any state machine runs
        script_source = script_source or QuestionBank(question_count)
        segments = script_source.build_script(job, candidate_name)
        validate_script(segments)

        self.state = SessionState()

        # Initialize event system
        self.event_bus = event_bus or InterviewEventBus()
        self.event_logger = EventLogger()
        self.metrics = InterviewMetrics()
        self.event_bus.subscribe_all(self.event_logger.handle_event)
        self.event_bus.subscribe_all(self.metrics.handle_event)

        self.devices = DevicePermissionManager(capture)

        self.output = SpeechOutputChannel(
            synthesizer, clip_player, ClipLibrary(clips_dir), self.settings, voice_hint
        )
        self.output.muted = muted
        self.output.on_fallback = self._on_fallback

        self.input = SpeechInputChannel(recognizer, self.settings)
        self.input.on_degraded = self._on_listening_disabled
        self.input.on_answer_ready = self._on_answer_ready

        self.arbiter = TurnArbiter(self.output, self.state, self.settings)
        self.arbiter.on_state_change = self._on_state_change
        self.arbiter.on_segment_started = self._on_segment_started

        self.driver = ScriptDriver(segments, self.arbiter, self.state, on_advance=self.input.reset_answer)
        self.driver.on_complete = self._on_script_complete

        self.summary_builder = SessionSummaryBuilder(persistence, scorer or PlaceholderScorer())
        self.summary: Optional[SessionSummary] = None
        self.submitted = False

        self._started = False
        self._ending = False
        self._finished = asyncio.Event()
        self._end_task: Optional[asyncio.Task] = None
        self._signals = None

    # ------------------------------------------------------------------
    # Lifecycle

    async def start(self) -> None:
        """Acquire the devices the job's mode needs, start listening and begin the script."""
        if self._started:
            return
        self._started = True

        mode = self.job.mode
        failures = await self.devices.acquire(mode.required_devices)
        if self._ending:
            # Ended while devices were being opened; nothing may stay held
            logger.info("Interview ended during device setup; releasing devices")
            self.devices.release_all()
            return
        for kind, error in failures.items():
            self._emit_degraded(kind.value, error.reason)

        snapshot = self.devices.snapshot()
        self.event_bus.emit(SessionStartedEvent(
            self.session_id, time.time(), self.job.title, len(self.driver.segments),
            {"camera": snapshot.camera, "microphone": snapshot.microphone, "screen": snapshot.screen}
        ))
        logger.info(f"Interview started for {self.job.title} ({mode.value} mode), devices {snapshot}")

        self._start_listening()
        self.driver.begin()

    async def end_interview(self, submit: bool = True, completed: Optional[bool] = None) -> Optional[SessionSummary]:
        """
        Stop everything and hand off the result. Safe to call any number of times.

        Args:
            submit: Score and submit the transcript
            completed: Whether the script ran to the end; defaults to the driver's view

        Returns:
            The submitted summary, if one was built
        """
        if self._ending:
            await self._finished.wait()
            return self.summary
        self._ending = True

        if completed is None:
            completed = self.driver.completed

        try:
            self.arbiter.end()
            self.input.stop()
            self.devices.release_all()

            if submit:
                self.summary = self.summary_builder.finalize(self.state, self.application_id, completed)
                try:
                    await asyncio.to_thread(self.summary_builder.submit, self.summary)
                    self.submitted = True
                except PersistenceError as e:
                    logger.error(f"Failed to submit interview result: {e}")
                    self.event_bus.emit(ErrorOccurredEvent(
                        self.session_id, time.time(), type(e).__name__, str(e), "persistence"
                    ))
            else:
                self.state.ended = True

            if completed:
                self.event_bus.emit(SessionCompletedEvent(
                    self.session_id, time.time(), self.state.final_score,
                    len(self.state.answers()), self.submitted
                ))
            else:
                self.event_bus.emit(SessionTerminatedEvent(
                    self.session_id, time.time(), "ended by user" if submit else "session closed",
                    self.state.current_segment_index, self.state.final_score
                ))
        finally:
            self._finished.set()

        return self.summary

    async def wait_finished(self) -> Optional[SessionSummary]:
        await self._finished.wait()
        return self.summary

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    async def __aenter__(self) -> 'InterviewSession':
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.end_interview(submit=self.driver.completed)

    # ------------------------------------------------------------------
    # Candidate actions

    def submit_answer(self, text: str) -> None:
        """Submit a typed answer. Raises SubmissionError without changing anything."""
        index = self.state.current_segment_index
        self.driver.submit_answer(text)
        self.event_bus.emit(AnswerSubmittedEvent(self.session_id, time.time(), index, text.strip(), False))

    def submit_spoken_answer(self) -> None:
        """Submit whatever the recognizer has heard for the current question."""
        self.submit_answer(self.input.answer_text)

    def force_advance(self) -> None:
        """Skip the current question."""
        index = self.state.current_segment_index
        self.driver.force_advance()
        self.event_bus.emit(AnswerSubmittedEvent(self.session_id, time.time(), index, "", True))

    async def toggle_microphone(self) -> bool:
        """Turn the microphone off or on; returns whether it is now on."""
        if self._ending:
            return False
        if self.devices.is_granted(DeviceKind.MICROPHONE):
            self.input.stop()
            self.devices.release(DeviceKind.MICROPHONE)
            return False
        if not await self._request(DeviceKind.MICROPHONE):
            return False
        self._start_listening()
        return True

    async def toggle_camera(self) -> bool:
        return await self._toggle(DeviceKind.CAMERA)

    async def toggle_screen(self) -> bool:
        return await self._toggle(DeviceKind.SCREEN)

    def toggle_audio(self) -> bool:
        """Mute or unmute the interviewer; returns whether audio is now on."""
        self.output.set_muted(not self.output.muted)
        return not self.output.muted

    @property
    def speech_state(self) -> SpeechState:
        return self.arbiter.state

    # ------------------------------------------------------------------
    # Internals

    async def _toggle(self, kind: DeviceKind) -> bool:
        if self._ending:
            return False
        if self.devices.is_granted(kind):
            self.devices.release(kind)
            return False
        return await self._request(kind)

    async def _request(self, kind: DeviceKind) -> bool:
        if self._ending:
            return False
        try:
            await self.devices.request(kind)
        except DevicePermissionError as e:
            self._emit_degraded(kind.value, e.reason)
            return False
        if self._ending:
            self.devices.release(kind)
            return False
        return True

    def _start_listening(self) -> bool:
        if self._ending or not self.devices.is_granted(DeviceKind.MICROPHONE):
            return False
        try:
            signals = self.input.start(continuous=True, audio=self.devices.stream(DeviceKind.MICROPHONE))
        except RecognitionError as e:
            logger.warning(f"Speech input unavailable, typed answers only: {e}")
            return False
        if signals is not self._signals:
            self._signals = signals
            signals.subscribe(self.arbiter.on_input_signal)
        return True

    def _on_script_complete(self) -> None:
        loop = asyncio.get_running_loop()
        self._end_task = loop.create_task(self.end_interview(completed=True))

    def _on_state_change(self, previous: SpeechState, current: SpeechState, trigger: Trigger) -> None:
        self.event_bus.emit(SpeechStateChangedEvent(
            self.session_id, time.time(), previous.value, current.value, trigger.value
        ))

    def _on_segment_started(self, segment: ScriptSegment, via_fallback: bool) -> None:
        self.event_bus.emit(SegmentStartedEvent(
            self.session_id, time.time(), segment.index, segment.kind.value, segment.text, via_fallback
        ))

    def _on_fallback(self, reason: str) -> None:
        self.event_bus.emit(FallbackActivatedEvent(self.session_id, time.time(), reason))

    def _on_listening_disabled(self, reason: str) -> None:
        self._emit_degraded("speech_recognition", reason)

    def _on_answer_ready(self, draft: str) -> None:
        self.event_bus.emit(AnswerReadyEvent(self.session_id, time.time(), draft))

    def _emit_degraded(self, capability: str, reason: str) -> None:
        logger.warning(f"Continuing without {capability}: {reason}")
        self.event_bus.emit(CapabilityDegradedEvent(self.session_id, time.time(), capability, reason))
