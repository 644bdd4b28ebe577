"""
Contracts for the engines and collaborators the interview core consumes.
"""
from typing import List, Optional, Protocol, Sequence, runtime_checkable

from .channels import EventChannel, PlaybackEvent, RecognitionEvent
from .models import DeviceKind, JobPosting, ScriptSegment, SessionState, TranscriptEntry


@runtime_checkable
class StreamHandle(Protocol):
    """A live capture stream; ``stop`` releases the hardware."""
    kind: DeviceKind

    def stop(self) -> None: ...


class MediaCapture(Protocol):
    def request(self, kind: DeviceKind) -> StreamHandle:
        """Open a stream or raise DevicePermissionError. May block."""
        ...


class SpeechSynthesizer(Protocol):
    @property
    def supported(self) -> bool: ...

    def speak(self, text: str, voice_hint: Optional[str] = None) -> EventChannel[PlaybackEvent]: ...

    def pause(self) -> None: ...

    def resume(self) -> None: ...

    def cancel(self) -> None: ...


class ClipPlayer(Protocol):
    def play(self, path: str) -> EventChannel[PlaybackEvent]: ...

    def stop(self) -> None: ...


class SpeechRecognizer(Protocol):
    @property
    def supported(self) -> bool: ...

    def start(self, continuous: bool, audio: Optional[StreamHandle] = None) -> EventChannel[RecognitionEvent]: ...

    def stop(self) -> None: ...


class PersistenceService(Protocol):
    def submit_interview_result(self, application_id: str, score: int,
                                transcript: Sequence[TranscriptEntry]) -> None:
        """Store the result or raise PersistenceError. Blocking."""
        ...


class ScriptSource(Protocol):
    def build_script(self, job: JobPosting, candidate_name: str) -> List[ScriptSegment]: ...


class Scorer(Protocol):
    def score(self, state: SessionState) -> int: ...
