"""
Interviewer speech output with pause, resume and a prerecorded-clip fallback.

Synthesis is tried first. The first time the engine is unsupported, raises,
reports a failure or does not start in time, the channel switches to
prerecorded clips for the rest of the session. A segment without a clip is
presented as text for a short hold. Every utterance is bounded by a safety
timer so the interviewer can never hold the floor forever.
"""
import itertools
import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

from ..config import EngineSettings
from .capabilities import ClipPlayer, SpeechSynthesizer
from .channels import EventChannel, PlaybackEvent, PlaybackEventKind
from .errors import SynthesisError
from .models import ScriptSegment
from .timers import TimerSet

logger = logging.getLogger("speech_output")


class OutputEventKind(str, Enum):
    STARTED = "started"
    PAUSED = "paused"
    RESUMED = "resumed"
    ENDED = "ended"
    FAILED = "failed"


@dataclass(frozen=True)
class OutputEvent:
    kind: OutputEventKind
    utterance_id: int
    segment: ScriptSegment
    via_fallback: bool = False
    error: Optional[str] = None


class UtteranceStatus(str, Enum):
    PENDING = "pending"
    SPEAKING = "speaking"
    PAUSED = "paused"
    FINISHED = "finished"


class Utterance:
    """Handle for one segment being spoken; its events arrive on ``events``."""

    def __init__(self, utterance_id: int, segment: ScriptSegment):
        self.id = utterance_id
        self.segment = segment
        self.status = UtteranceStatus.PENDING
        self.events: EventChannel[OutputEvent] = EventChannel(f"utterance-{utterance_id}")
        self.started = False
        self.via_fallback = False
        # Bumped on every (re)start or pause; engine callbacks from an older attempt are ignored
        self.attempt = 0
        self._announcement: Optional[OutputEventKind] = OutputEventKind.STARTED

    @property
    def finished(self) -> bool:
        return self.status is UtteranceStatus.FINISHED

    def __repr__(self) -> str:
        return f"Utterance({self.id}, segment={self.segment.index}, {self.status.value})"


class ClipLibrary:
    """Prerecorded clips on disk, keyed by segment."""

    def __init__(self, directory: str, extensions: Sequence[str] = (".wav",)):
        self.directory = directory
        self.extensions = tuple(extensions)

    def resolve(self, segment: ScriptSegment) -> Optional[str]:
        keys = [segment.clip_key]
        if segment.fallback_clip_id:
            keys.append(f"segment-{segment.index:03d}")
        for key in keys:
            for ext in self.extensions:
                path = os.path.join(self.directory, key + ext)
                if os.path.isfile(path):
                    return path
        return None


class SpeechOutputChannel:
    """Drives synthesis (or its fallback) for one segment at a time."""

    def __init__(self,
                 synthesizer: SpeechSynthesizer,
                 clip_player: ClipPlayer,
                 clips: ClipLibrary,
                 settings: Optional[EngineSettings] = None,
                 voice_hint: Optional[str] = None):
        self.synthesizer = synthesizer
        self.clip_player = clip_player
        self.clips = clips
        self.settings = settings or EngineSettings()
        self.voice_hint = voice_hint
        self.timers = TimerSet()
        self.using_fallback = False
        self.fallback_reason: Optional[str] = None
        self.muted = False
        self.synthesis_attempts = 0
        self.on_fallback: Optional[Callable[[str], None]] = None
        self._ids = itertools.count(1)
        self._current: Optional[Utterance] = None
        self._engine: Optional[str] = None
        self._engine_channel: Optional[EventChannel[PlaybackEvent]] = None

    @property
    def current(self) -> Optional[Utterance]:
        return self._current

    def speak(self, segment: ScriptSegment) -> Utterance:
        """
        Start presenting a segment.

        Args:
            segment: Segment to speak

        Returns:
            Utterance whose channel reports started/paused/resumed/ended/failed
        """
        if self._current is not None and not self._current.finished:
            logger.warning(f"speak() while {self._current!r} is active; dropping it")
            self._drop(self._current)

        utterance = Utterance(next(self._ids), segment)
        self._current = utterance
        logger.debug(f"Speaking segment {segment.index} ({segment.kind.value})")
        self._attempt(utterance)
        return utterance

    def pause(self, utterance: Utterance) -> bool:
        """Preempt a speaking utterance. Resume re-speaks it from the start."""
        if utterance is not self._current or utterance.status is not UtteranceStatus.SPEAKING:
            return False
        utterance.attempt += 1
        self.timers.cancel_all()
        self._halt_engine()
        utterance.status = UtteranceStatus.PAUSED
        logger.info(f"Paused segment {utterance.segment.index}")
        self._publish(utterance, OutputEventKind.PAUSED)
        return True

    def resume(self, utterance: Utterance) -> bool:
        if utterance is not self._current or utterance.status is not UtteranceStatus.PAUSED:
            return False
        utterance._announcement = OutputEventKind.RESUMED if utterance.started else OutputEventKind.STARTED
        logger.info(f"Resuming segment {utterance.segment.index} from the start")
        self._attempt(utterance)
        return True

    def cancel(self) -> None:
        """Abort whatever is being spoken. Safe to call repeatedly."""
        self.timers.cancel_all()
        if self._current is not None and not self._current.finished:
            self._drop(self._current)
        self._halt_engine()

    def set_muted(self, muted: bool) -> None:
        """While muted, segments are shown as text and end immediately."""
        self.muted = muted
        current = self._current
        if muted and current is not None and current.status is UtteranceStatus.SPEAKING:
            self._halt_engine()
            self._complete(current, current.attempt)

    def _drop(self, utterance: Utterance) -> None:
        utterance.attempt += 1
        utterance.status = UtteranceStatus.FINISHED
        utterance.events.close()

    # ------------------------------------------------------------------
    # Attempts

    def _attempt(self, utterance: Utterance) -> None:
        utterance.attempt += 1
        attempt = utterance.attempt
        utterance.status = UtteranceStatus.SPEAKING
        text = utterance.segment.text
        self.timers.schedule("safety", self.settings.safety_timeout(text), self._on_safety, utterance, attempt)

        if self.muted:
            self._present_text(utterance, attempt, hold=0.0)
        elif self.using_fallback:
            self._play_clip(utterance, attempt)
        else:
            self._synthesize(utterance, attempt)

    def _synthesize(self, utterance: Utterance, attempt: int) -> None:
        if not self.synthesizer.supported:
            self._activate_fallback("speech synthesis unsupported")
            self._play_clip(utterance, attempt)
            return

        self.synthesis_attempts += 1
        try:
            channel = self.synthesizer.speak(utterance.segment.text, self.voice_hint)
        except SynthesisError as e:
            logger.warning(f"Speech synthesis raised: {e}")
            self._publish(utterance, OutputEventKind.FAILED, error=str(e))
            self._activate_fallback(f"synthesis error: {e}")
            self._play_clip(utterance, attempt)
            return

        self._engine = "synthesizer"
        self._engine_channel = channel
        self.timers.schedule("start", self.settings.start_timeout(utterance.segment.text),
                             self._on_start_timeout, utterance, attempt)
        channel.subscribe(lambda event: self._on_synthesis_event(utterance, attempt, event))

    def _on_synthesis_event(self, utterance: Utterance, attempt: int, event: PlaybackEvent) -> None:
        if self._stale(utterance, attempt):
            return
        if event.kind is PlaybackEventKind.STARTED:
            self.timers.cancel("start")
            self._announce(utterance)
        elif event.kind is PlaybackEventKind.ENDED:
            self._complete(utterance, attempt)
        elif event.kind is PlaybackEventKind.FAILED:
            logger.warning(f"Speech synthesis failed: {event.error}")
            self.timers.cancel("start")
            self._halt_engine()
            self._publish(utterance, OutputEventKind.FAILED, error=event.error)
            self._activate_fallback(f"synthesis failed: {event.error}")
            self._play_clip(utterance, attempt)

    def _on_start_timeout(self, utterance: Utterance, attempt: int) -> None:
        if self._stale(utterance, attempt):
            return
        window = self.settings.start_timeout(utterance.segment.text)
        logger.warning(f"Speech synthesis did not start within {window:.2f}s")
        self._halt_engine()
        self._publish(utterance, OutputEventKind.FAILED, error="start timeout")
        self._activate_fallback(f"synthesis did not start within {window:.2f}s")
        self._play_clip(utterance, attempt)

    def _play_clip(self, utterance: Utterance, attempt: int) -> None:
        utterance.via_fallback = True
        path = self.clips.resolve(utterance.segment)
        if path is None:
            logger.info(f"No clip for segment {utterance.segment.index}; presenting as text")
            self._present_text(utterance, attempt, hold=self.settings.text_only_hold_seconds)
            return

        try:
            channel = self.clip_player.play(path)
        except OSError as e:
            logger.warning(f"Could not play clip {path}: {e}")
            self._present_text(utterance, attempt, hold=self.settings.text_only_hold_seconds)
            return

        self._engine = "clip"
        self._engine_channel = channel
        channel.subscribe(lambda event: self._on_clip_event(utterance, attempt, event))

    def _on_clip_event(self, utterance: Utterance, attempt: int, event: PlaybackEvent) -> None:
        if self._stale(utterance, attempt):
            return
        if event.kind is PlaybackEventKind.STARTED:
            self._announce(utterance)
        elif event.kind is PlaybackEventKind.ENDED:
            self._complete(utterance, attempt)
        elif event.kind is PlaybackEventKind.FAILED:
            # Nothing left to fall back to; treat the segment as delivered
            logger.warning(f"Clip playback failed for segment {utterance.segment.index}: {event.error}")
            self._complete(utterance, attempt)

    def _present_text(self, utterance: Utterance, attempt: int, hold: float) -> None:
        self._engine = None
        self._engine_channel = None
        self._announce(utterance)
        self.timers.schedule("hold", hold, self._complete, utterance, attempt)

    def _on_safety(self, utterance: Utterance, attempt: int) -> None:
        if self._stale(utterance, attempt):
            return
        logger.warning(f"Safety timeout for segment {utterance.segment.index}; forcing end")
        self._halt_engine()
        self._complete(utterance, attempt)

    # ------------------------------------------------------------------
    # Helpers

    def _stale(self, utterance: Utterance, attempt: int) -> bool:
        return (utterance is not self._current
                or attempt != utterance.attempt
                or utterance.status is not UtteranceStatus.SPEAKING)

    def _complete(self, utterance: Utterance, attempt: int) -> None:
        if self._stale(utterance, attempt):
            return
        self.timers.cancel_all()
        if self._engine_channel is not None:
            self._engine_channel.close()
        self._engine = None
        self._engine_channel = None
        self._announce(utterance)
        utterance.status = UtteranceStatus.FINISHED
        self._publish(utterance, OutputEventKind.ENDED)

    def _announce(self, utterance: Utterance) -> None:
        kind, utterance._announcement = utterance._announcement, None
        if kind is None:
            return
        utterance.started = True
        self._publish(utterance, kind)

    def _publish(self, utterance: Utterance, kind: OutputEventKind, error: Optional[str] = None) -> None:
        utterance.events.publish(OutputEvent(
            kind=kind,
            utterance_id=utterance.id,
            segment=utterance.segment,
            via_fallback=utterance.via_fallback,
            error=error,
        ))

    def _halt_engine(self) -> None:
        engine, channel = self._engine, self._engine_channel
        self._engine = None
        self._engine_channel = None
        if channel is not None:
            channel.close()
        try:
            if engine == "synthesizer":
                self.synthesizer.cancel()
            elif engine == "clip":
                self.clip_player.stop()
        except Exception as e:
            logger.warning(f"Error stopping {engine}: {e}")

    def _activate_fallback(self, reason: str) -> None:
        if self.using_fallback:
            return
        self.using_fallback = True
        self.fallback_reason = reason
        logger.warning(f"Switching to prerecorded clips for the rest of the session: {reason}")
        if self.on_fallback is not None:
            self.on_fallback(reason)
