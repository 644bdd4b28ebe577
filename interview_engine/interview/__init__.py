"""Interview engine core.

Turn-taking between the AI interviewer and the candidate: device ownership,
speech output and input channels, the turn arbiter, the script driver and
the result summary.
"""

from .orchestrator import InterviewSession

from .models import (
    SegmentKind, Role, DeviceKind, InterviewMode, ScriptSegment, TranscriptEntry,
    DeviceCapability, DeviceSnapshot, SessionState, JobPosting, SessionSummary
)

from .errors import (
    InterviewError, DevicePermissionError, SynthesisError, RecognitionError,
    SubmissionError, ScriptError, PersistenceError
)

from .arbiter import SpeechState, Trigger, TurnArbiter, next_state
from .devices import DevicePermissionManager
from .speech_output import SpeechOutputChannel, ClipLibrary, Utterance, OutputEvent, OutputEventKind
from .speech_input import SpeechInputChannel, InputSignal, InputSignalKind
from .script import QuestionBank, ScriptDriver, validate_script
from .summary import PlaceholderScorer, SessionSummaryBuilder

from .events import (
    InterviewEventBus, EventLogger, InterviewMetrics, EventType, InterviewEvent
)

__all__ = [
    "InterviewSession",

    # Data models
    "SegmentKind", "Role", "DeviceKind", "InterviewMode", "ScriptSegment",
    "TranscriptEntry", "DeviceCapability", "DeviceSnapshot", "SessionState",
    "JobPosting", "SessionSummary",

    # Errors
    "InterviewError", "DevicePermissionError", "SynthesisError", "RecognitionError",
    "SubmissionError", "ScriptError", "PersistenceError",

    # Components
    "SpeechState", "Trigger", "TurnArbiter", "next_state",
    "DevicePermissionManager",
    "SpeechOutputChannel", "ClipLibrary", "Utterance", "OutputEvent", "OutputEventKind",
    "SpeechInputChannel", "InputSignal", "InputSignalKind",
    "QuestionBank", "ScriptDriver", "validate_script",
    "PlaceholderScorer", "SessionSummaryBuilder",

    # Events
    "InterviewEventBus", "EventLogger", "InterviewMetrics", "EventType", "InterviewEvent",
]
