"""
Candidate speech input: recognizer supervision and turn signals.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from ..config import EngineSettings
from .capabilities import SpeechRecognizer, StreamHandle
from .channels import EventChannel, RecognitionEvent, RecognitionEventKind
from .errors import RecognitionError
from .timers import TimerSet

logger = logging.getLogger("speech_input")


class InputSignalKind(str, Enum):
    GROWTH = "growth"
    SILENCE = "silence"


@dataclass(frozen=True)
class InputSignal:
    kind: InputSignalKind
    text: str = ""


class SpeechInputChannel:
    """
    Keeps a recognizer running while listening is wanted and turns its
    fragments into two signals for the turn arbiter.

    GROWTH fires when the answer draft gets strictly longer than it has been;
    SILENCE fires once no growth has been seen for the debounce window.
    """

    def __init__(self, recognizer: SpeechRecognizer, settings: Optional[EngineSettings] = None):
        self.recognizer = recognizer
        self.settings = settings or EngineSettings()
        self.timers = TimerSet()
        self.signals: Optional[EventChannel[InputSignal]] = None
        self.listening = False
        self.disabled = False
        self.fragments: List[str] = []
        self.on_degraded: Optional[Callable[[str], None]] = None
        self.on_answer_ready: Optional[Callable[[str], None]] = None
        self._continuous = True
        self._audio: Optional[StreamHandle] = None
        self._session = 0
        self._session_heard = False
        self._failures = 0
        self._base = ""
        self._draft = ""
        self._max_length = 0
        self._ready_reported = False

    @property
    def answer_text(self) -> str:
        """The candidate's spoken answer so far."""
        return self._draft

    def start(self, continuous: bool = True, audio: Optional[StreamHandle] = None) -> EventChannel[InputSignal]:
        """
        Begin listening.

        Args:
            continuous: Keep recognizing across pauses instead of one utterance
            audio: Microphone stream to read from

        Returns:
            The signal channel (the same channel across restarts)

        Raises:
            RecognitionError: Recognition is unsupported or has been disabled
        """
        if self.disabled:
            raise RecognitionError("Listening was disabled after repeated recognizer failures")
        if not self.recognizer.supported:
            self._disable("speech recognition unsupported")
            raise RecognitionError("Speech recognition is not supported")

        if self.signals is None:
            self.signals = EventChannel("speech-input")
        self._continuous = continuous
        self._audio = audio
        if not self.listening:
            self.listening = True
            self._open_session()
        return self.signals

    def stop(self) -> None:
        """Stop listening. A pending silence is delivered immediately. Idempotent."""
        was_listening = self.listening
        self.listening = False
        self._session += 1
        self.timers.cancel("restart")
        if self.timers.cancel("silence"):
            self._emit(InputSignalKind.SILENCE)
        if was_listening:
            self._stop_recognizer()
            logger.info("Stopped listening")

    def reset_answer(self) -> None:
        """Start a fresh answer draft, restarting recognition so old text is not carried over."""
        self._base = ""
        self._draft = ""
        self._max_length = 0
        self._ready_reported = False
        self.fragments.clear()
        if self.listening:
            self._session += 1
            self._stop_recognizer()
            self._open_session()

    def _open_session(self) -> None:
        self._session += 1
        session = self._session
        self._session_heard = False
        self._base = self._draft
        try:
            channel = self.recognizer.start(self._continuous, self._audio)
        except Exception as e:
            self._on_failure(f"recognizer failed to start: {e}")
            return
        channel.subscribe(lambda event: self._on_recognition(session, event))
        logger.debug(f"Recognition session {session} started")

    def _on_recognition(self, session: int, event: RecognitionEvent) -> None:
        if session != self._session:
            return
        if event.kind is RecognitionEventKind.FRAGMENT:
            self._session_heard = True
            self._failures = 0
            self._on_fragment(event.text, event.is_final)
        elif event.kind is RecognitionEventKind.ENDED:
            if not self.listening:
                return
            if self._session_heard:
                logger.info("Recognizer ended unexpectedly; restarting")
                self._session += 1
                self.timers.schedule("restart", self.settings.restart_delay, self._restart)
            else:
                self._on_failure("recognizer ended without hearing anything")
        elif event.kind is RecognitionEventKind.ERROR:
            self._on_failure(event.error or "recognition error")

    def _on_fragment(self, text: str, is_final: bool) -> None:
        text = text.strip()
        self.fragments.append(text)
        draft = f"{self._base} {text}".strip() if self._base else text
        self._draft = draft
        logger.debug(f"Fragment ({'final' if is_final else 'interim'}): {text}")

        if len(draft) > self._max_length:
            self._max_length = len(draft)
            self._emit(InputSignalKind.GROWTH)
            self.timers.schedule("silence", self.settings.debounce_seconds, self._on_silence)

        if not self._ready_reported and len(draft) > self.settings.answer_ready_chars:
            self._ready_reported = True
            if self.on_answer_ready is not None:
                self.on_answer_ready(draft)

    def _on_silence(self) -> None:
        self._emit(InputSignalKind.SILENCE)

    def _on_failure(self, reason: str) -> None:
        self._failures += 1
        self._session += 1
        logger.warning(f"Recognition failure {self._failures}: {reason}")
        if self._failures > self.settings.max_recognition_restarts:
            self._disable(reason)
            return
        if self.listening:
            self.timers.schedule("restart", self.settings.restart_delay, self._restart)

    def _restart(self) -> None:
        if self.listening and not self.disabled:
            self._open_session()

    def _disable(self, reason: str) -> None:
        logger.error(f"Disabling speech input: {reason}")
        self.disabled = True
        self.stop()
        if self.on_degraded is not None:
            self.on_degraded(reason)

    def _stop_recognizer(self) -> None:
        try:
            self.recognizer.stop()
        except Exception as e:
            logger.warning(f"Error stopping recognizer: {e}")

    def _emit(self, kind: InputSignalKind) -> None:
        if self.signals is not None:
            self.signals.publish(InputSignal(kind=kind, text=self._draft))
