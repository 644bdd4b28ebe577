"""
Exception taxonomy for the interview engine.
"""
from typing import Optional

from .models import DeviceKind


class InterviewError(Exception):
    """Base class for all interview engine errors."""


class DevicePermissionError(InterviewError, PermissionError):
    """A capture device was denied or is not present."""

    def __init__(self, kind: DeviceKind, reason: Optional[str] = None):
        self.kind = kind
        self.reason = reason or "permission denied"
        super().__init__(f"{kind.value}: {self.reason}")


class SynthesisError(InterviewError):
    """The speech synthesis engine is unsupported, failed or timed out."""


class RecognitionError(InterviewError):
    """The speech recognition engine is unsupported or terminated unexpectedly."""


class SubmissionError(InterviewError):
    """An answer was rejected (empty, or the session is not accepting answers)."""


class ScriptError(InterviewError, ValueError):
    """The interview script cannot be run."""


class PersistenceError(InterviewError):
    """The interview result could not be stored."""
