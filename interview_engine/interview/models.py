"""
Data models for the interview engine.
"""
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class SegmentKind(str, Enum):
    """Kinds of interview script segments."""
    INTRO = "intro"
    QUESTION = "question"
    ACK = "ack"
    CLOSING = "closing"


class Role(str, Enum):
    """Who produced a transcript entry."""
    INTERVIEWER = "interviewer"
    CANDIDATE = "candidate"


class DeviceKind(str, Enum):
    """Media capture capabilities."""
    CAMERA = "camera"
    MICROPHONE = "microphone"
    SCREEN = "screen"


class InterviewMode(str, Enum):
    """How a job wants its interview conducted."""
    FULL = "full"
    VOICE = "voice"
    TEXT = "text"

    @classmethod
    def parse(cls, value: Optional[str]) -> 'InterviewMode':
        """Map a job's free-form mode string, defaulting to FULL."""
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.FULL

    @property
    def required_devices(self) -> Tuple[DeviceKind, ...]:
        if self is InterviewMode.FULL:
            return (DeviceKind.CAMERA, DeviceKind.MICROPHONE, DeviceKind.SCREEN)
        if self is InterviewMode.VOICE:
            return (DeviceKind.MICROPHONE,)
        return ()


@dataclass(frozen=True)
class ScriptSegment:
    """One unit of the interview script."""
    index: int
    kind: SegmentKind
    text: str
    fallback_clip_id: Optional[str] = None

    @property
    def clip_key(self) -> str:
        """Key used to find a prerecorded clip for this segment."""
        return self.fallback_clip_id or f"segment-{self.index:03d}"


@dataclass(frozen=True)
class TranscriptEntry:
    """A single line of the interview transcript."""
    role: Role
    text: str
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role.value, "text": self.text, "timestamp": self.timestamp}


@dataclass
class DeviceCapability:
    """Grant state of one capture device and the stream held for it."""
    kind: DeviceKind
    granted: bool = False
    stream: Any = None


@dataclass(frozen=True)
class DeviceSnapshot:
    """Point-in-time view of which devices are granted."""
    camera: bool = False
    microphone: bool = False
    screen: bool = False

    def granted(self, kind: DeviceKind) -> bool:
        return getattr(self, kind.value)


@dataclass
class SessionState:
    """Mutable state of one interview session."""
    current_segment_index: int = 0
    transcript: List[TranscriptEntry] = field(default_factory=list)
    paused_utterance: Optional[ScriptSegment] = None
    final_score: Optional[int] = None
    ended: bool = False

    def advance_to(self, index: int) -> None:
        """Move the segment cursor forward; it never moves back."""
        if index < self.current_segment_index:
            raise ValueError(
                f"Segment index cannot decrease ({self.current_segment_index} -> {index})"
            )
        self.current_segment_index = index

    def append(self, role: Role, text: str) -> TranscriptEntry:
        entry = TranscriptEntry(role=role, text=text)
        self.transcript.append(entry)
        return entry

    def answers(self) -> List[str]:
        return [e.text for e in self.transcript if e.role is Role.CANDIDATE]


@dataclass
class JobPosting:
    """The parts of a job posting the interview reads."""
    id: str
    title: str
    company_name: str
    interview_mode: str = InterviewMode.FULL.value
    description: str = ""
    skills: List[str] = field(default_factory=list)

    @property
    def mode(self) -> InterviewMode:
        return InterviewMode.parse(self.interview_mode)


@dataclass(frozen=True)
class SessionSummary:
    """Final, immutable result handed to the persistence service."""
    application_id: str
    transcript: Tuple[TranscriptEntry, ...]
    final_score: int
    completed: bool = True

    def to_payload(self) -> Dict[str, Any]:
        return {
            "application_id": self.application_id,
            "score": self.final_score,
            "completed": self.completed,
            "transcript": [entry.to_dict() for entry in self.transcript],
        }
