"""
Testing infrastructure with fake capabilities for the interview engine.
"""
import asyncio
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..config import EngineSettings
from .channels import (
    EventChannel, PlaybackEvent, PlaybackEventKind,
    RecognitionEvent, RecognitionEventKind
)
from .errors import DevicePermissionError, PersistenceError, SynthesisError
from .models import DeviceKind, JobPosting, TranscriptEntry


def fast_settings(**overrides) -> EngineSettings:
    """Engine timings shrunk so tests run in milliseconds."""
    values = dict(
        debounce_seconds=0.05,
        resume_grace_seconds=0.01,
        inter_segment_pause_seconds=0.0,
        start_timeout_floor=0.05,
        start_timeout_per_char=0.0,
        safety_seconds_per_char=0.0,
        safety_floor_seconds=0.5,
        text_only_hold_seconds=0.0,
        restart_delay=0.0,
    )
    values.update(overrides)
    return EngineSettings(**values)


class FakeSynthesizer:
    """
    Scriptable speech synthesizer.

    Modes:
        auto: reports started, then ended after ``duration``
        manual: reports nothing until ``start_current``/``finish_current``
        fail: reports failed
        raise: raises SynthesisError from speak()
    """

    def __init__(self, mode: str = "auto", duration: float = 0.0, supported: bool = True):
        self.mode = mode
        self.duration = duration
        self._supported = supported
        self.spoken: List[str] = []
        self.channels: List[EventChannel[PlaybackEvent]] = []
        self.cancel_calls = 0
        self.pause_calls = 0
        self.resume_calls = 0

    @property
    def supported(self) -> bool:
        return self._supported

    def speak(self, text: str, voice_hint: Optional[str] = None) -> EventChannel[PlaybackEvent]:
        self.spoken.append(text)
        if self.mode == "raise":
            raise SynthesisError("fake synthesis engine exploded")
        channel: EventChannel[PlaybackEvent] = EventChannel(f"fake-tts-{len(self.spoken)}")
        self.channels.append(channel)
        loop = asyncio.get_running_loop()
        if self.mode == "auto":
            loop.call_soon(channel.publish, PlaybackEvent(PlaybackEventKind.STARTED))
            loop.call_later(self.duration, channel.publish, PlaybackEvent(PlaybackEventKind.ENDED))
        elif self.mode == "fail":
            loop.call_soon(channel.publish, PlaybackEvent(PlaybackEventKind.FAILED, error="synthesis-failed"))
        return channel

    def start_current(self) -> None:
        self.channels[-1].publish(PlaybackEvent(PlaybackEventKind.STARTED))

    def finish_current(self) -> None:
        self.channels[-1].publish(PlaybackEvent(PlaybackEventKind.ENDED))

    def pause(self) -> None:
        self.pause_calls += 1

    def resume(self) -> None:
        self.resume_calls += 1

    def cancel(self) -> None:
        self.cancel_calls += 1


class FakeClipPlayer:
    """Clip player that 'plays' instantly (or after ``duration``)."""

    def __init__(self, duration: float = 0.0, fail: bool = False):
        self.duration = duration
        self.fail = fail
        self.played: List[str] = []
        self.stop_calls = 0

    def play(self, path: str) -> EventChannel[PlaybackEvent]:
        self.played.append(path)
        channel: EventChannel[PlaybackEvent] = EventChannel(f"fake-clip-{len(self.played)}")
        loop = asyncio.get_running_loop()
        if self.fail:
            loop.call_soon(channel.publish, PlaybackEvent(PlaybackEventKind.FAILED, error="decode error"))
        else:
            loop.call_soon(channel.publish, PlaybackEvent(PlaybackEventKind.STARTED))
            loop.call_later(self.duration, channel.publish, PlaybackEvent(PlaybackEventKind.ENDED))
        return channel

    def stop(self) -> None:
        self.stop_calls += 1


class FakeRecognizer:
    """Speech recognizer driven by the test."""

    def __init__(self, supported: bool = True, fail_starts: int = 0):
        self._supported = supported
        self.fail_starts = fail_starts
        self.starts = 0
        self.stop_calls = 0
        self.channel: Optional[EventChannel[RecognitionEvent]] = None

    @property
    def supported(self) -> bool:
        return self._supported

    def start(self, continuous: bool, audio: Any = None) -> EventChannel[RecognitionEvent]:
        self.starts += 1
        channel: EventChannel[RecognitionEvent] = EventChannel(f"fake-stt-{self.starts}")
        self.channel = channel
        if self.fail_starts > 0:
            self.fail_starts -= 1
            asyncio.get_running_loop().call_soon(
                channel.publish, RecognitionEvent(RecognitionEventKind.ERROR, error="network")
            )
        return channel

    def emit_fragment(self, text: str, is_final: bool = False) -> None:
        self.channel.publish(RecognitionEvent(RecognitionEventKind.FRAGMENT, text=text, is_final=is_final))

    def terminate(self) -> None:
        self.channel.publish(RecognitionEvent(RecognitionEventKind.ENDED))

    def fail(self, error: str = "aborted") -> None:
        self.channel.publish(RecognitionEvent(RecognitionEventKind.ERROR, error=error))

    def stop(self) -> None:
        self.stop_calls += 1
        if self.channel is not None:
            channel = self.channel
            asyncio.get_running_loop().call_soon(channel.publish, RecognitionEvent(RecognitionEventKind.ENDED))


class FakeStreamHandle:
    def __init__(self, kind: DeviceKind):
        self.kind = kind
        self.stopped = False

    def stop(self) -> None:
        self.stopped = True


class FakeMediaCapture:
    """Media capture that grants everything except ``deny``."""

    def __init__(self, deny: Iterable[DeviceKind] = ()):
        self.deny = set(deny)
        self.opened: List[FakeStreamHandle] = []

    def request(self, kind: DeviceKind) -> FakeStreamHandle:
        if kind in self.deny:
            raise DevicePermissionError(kind, "denied by test")
        handle = FakeStreamHandle(kind)
        self.opened.append(handle)
        return handle

    def live(self, kind: Optional[DeviceKind] = None) -> List[FakeStreamHandle]:
        return [h for h in self.opened if not h.stopped and (kind is None or h.kind == kind)]


class RecordingPersistenceService:
    """Persistence service that keeps submissions in memory."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.submissions: List[Dict[str, Any]] = []

    def submit_interview_result(self, application_id: str, score: int,
                                transcript: Sequence[TranscriptEntry]) -> None:
        if self.fail:
            raise PersistenceError("results service unavailable")
        self.submissions.append({
            "application_id": application_id,
            "score": score,
            "transcript": list(transcript),
        })


def create_test_job(mode: str = "full") -> JobPosting:
    return JobPosting(id="job-1", title="Backend Engineer", company_name="Acme", interview_mode=mode)


def create_mock_session(question_count: int = 3,
                        mode: str = "full",
                        deny: Iterable[DeviceKind] = (),
                        synthesizer: Optional[FakeSynthesizer] = None,
                        recognizer: Optional[FakeRecognizer] = None,
                        persistence: Optional[RecordingPersistenceService] = None,
                        settings: Optional[EngineSettings] = None,
                        clips_dir: str = "/nonexistent-clips",
                        **kwargs) -> Dict[str, Any]:
    """Create a session wired to fakes. Must be called with a running loop."""
    from .orchestrator import InterviewSession

    fakes = {
        "synthesizer": synthesizer or FakeSynthesizer(),
        "recognizer": recognizer or FakeRecognizer(),
        "capture": FakeMediaCapture(deny),
        "clip_player": FakeClipPlayer(),
        "persistence": persistence or RecordingPersistenceService(),
    }
    session = InterviewSession(
        create_test_job(mode),
        "app-42",
        candidate_name="Sam",
        settings=settings or fast_settings(),
        clips_dir=clips_dir,
        question_count=question_count,
        **fakes,
        **kwargs,
    )
    fakes["session"] = session
    return fakes
