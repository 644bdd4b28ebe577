"""
Event-driven notifications for the interview engine.
"""
import logging
from abc import ABC
from typing import Dict, Any, List, Callable, Optional
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger("events")


class EventType(str, Enum):
    """Types of interview events."""
    SESSION_STARTED = "session_started"
    SEGMENT_STARTED = "segment_started"
    SPEECH_STATE_CHANGED = "speech_state_changed"
    ANSWER_SUBMITTED = "answer_submitted"
    ANSWER_READY = "answer_ready"
    FALLBACK_ACTIVATED = "fallback_activated"
    CAPABILITY_DEGRADED = "capability_degraded"
    SESSION_COMPLETED = "session_completed"
    SESSION_TERMINATED = "session_terminated"
    ERROR_OCCURRED = "error_occurred"


@dataclass
class InterviewEvent(ABC):
    """Base class for all interview events."""
    event_type: EventType
    session_id: str
    timestamp: float
    data: Dict[str, Any]


@dataclass
class SessionStartedEvent(InterviewEvent):
    """Event fired when the interview begins."""
    def __init__(self, session_id: str, timestamp: float, job_title: str,
                 segment_count: int, devices: Dict[str, bool]):
        super().__init__(
            event_type=EventType.SESSION_STARTED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "job_title": job_title,
                "segment_count": segment_count,
                "devices": devices
            }
        )


@dataclass
class SegmentStartedEvent(InterviewEvent):
    """Event fired the first time a script segment is presented."""
    def __init__(self, session_id: str, timestamp: float, index: int, kind: str,
                 text: str, via_fallback: bool):
        super().__init__(
            event_type=EventType.SEGMENT_STARTED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "index": index,
                "kind": kind,
                "text": text,
                "via_fallback": via_fallback
            }
        )


@dataclass
class SpeechStateChangedEvent(InterviewEvent):
    """Event fired on every turn-arbiter transition."""
    def __init__(self, session_id: str, timestamp: float, previous: str, current: str, trigger: str):
        super().__init__(
            event_type=EventType.SPEECH_STATE_CHANGED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "previous": previous,
                "current": current,
                "trigger": trigger
            }
        )


@dataclass
class AnswerSubmittedEvent(InterviewEvent):
    """Event fired when the candidate's answer is accepted."""
    def __init__(self, session_id: str, timestamp: float, segment_index: int,
                 answer: str, skipped: bool):
        super().__init__(
            event_type=EventType.ANSWER_SUBMITTED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "segment_index": segment_index,
                "answer": answer,
                "skipped": skipped
            }
        )


@dataclass
class AnswerReadyEvent(InterviewEvent):
    """Event fired when the spoken answer draft is long enough to submit."""
    def __init__(self, session_id: str, timestamp: float, draft: str):
        super().__init__(
            event_type=EventType.ANSWER_READY,
            session_id=session_id,
            timestamp=timestamp,
            data={"draft": draft}
        )


@dataclass
class FallbackActivatedEvent(InterviewEvent):
    """Event fired when speech output switches to prerecorded clips for good."""
    def __init__(self, session_id: str, timestamp: float, reason: str):
        super().__init__(
            event_type=EventType.FALLBACK_ACTIVATED,
            session_id=session_id,
            timestamp=timestamp,
            data={"reason": reason}
        )


@dataclass
class CapabilityDegradedEvent(InterviewEvent):
    """Event fired when a device or engine becomes unavailable."""
    def __init__(self, session_id: str, timestamp: float, capability: str, reason: str):
        super().__init__(
            event_type=EventType.CAPABILITY_DEGRADED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "capability": capability,
                "reason": reason
            }
        )


@dataclass
class SessionCompletedEvent(InterviewEvent):
    """Event fired when the closing segment finished and the result was built."""
    def __init__(self, session_id: str, timestamp: float, final_score: int,
                 answer_count: int, submitted: bool):
        super().__init__(
            event_type=EventType.SESSION_COMPLETED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "final_score": final_score,
                "answer_count": answer_count,
                "submitted": submitted
            }
        )


@dataclass
class SessionTerminatedEvent(InterviewEvent):
    """Event fired when the interview is ended before the closing segment."""
    def __init__(self, session_id: str, timestamp: float, reason: str,
                 segment_index: int, final_score: Optional[int]):
        super().__init__(
            event_type=EventType.SESSION_TERMINATED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "reason": reason,
                "segment_index": segment_index,
                "final_score": final_score
            }
        )


@dataclass
class ErrorOccurredEvent(InterviewEvent):
    """Event fired when an error occurs."""
    def __init__(self, session_id: str, timestamp: float, error_type: str,
                 error_message: str, component: str):
        super().__init__(
            event_type=EventType.ERROR_OCCURRED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "error_type": error_type,
                "error_message": error_message,
                "component": component
            }
        )


EventHandler = Callable[[InterviewEvent], None]


class InterviewEventBus:
    """Event bus for interview system communication."""

    def __init__(self):
        self._handlers: Dict[EventType, List[EventHandler]] = {}
        self._global_handlers: List[EventHandler] = []

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """
        Subscribe to specific event type.

        Args:
            event_type: Type of event to listen for
            handler: Function to call when event occurs
        """
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Subscribed handler to {event_type}")

    def subscribe_all(self, handler: EventHandler) -> None:
        """
        Subscribe to all events.

        Args:
            handler: Function to call for any event
        """
        self._global_handlers.append(handler)
        logger.debug("Subscribed global handler")

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """
        Unsubscribe from specific event type.

        Args:
            event_type: Type of event to stop listening for
            handler: Handler function to remove
        """
        if event_type in self._handlers:
            try:
                self._handlers[event_type].remove(handler)
                logger.debug(f"Unsubscribed handler from {event_type}")
            except ValueError:
                logger.warning(f"Handler not found for {event_type}")

    def emit(self, event: InterviewEvent) -> None:
        """
        Emit an event to all subscribers. A failing handler does not stop the others.

        Args:
            event: Event to emit
        """
        logger.debug(f"Emitting event: {event.event_type} for session {event.session_id}")

        for handler in list(self._handlers.get(event.event_type, [])):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler for {event.event_type}: {e}")

        for handler in list(self._global_handlers):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in global event handler: {e}")

    def clear_handlers(self) -> None:
        """Clear all event handlers."""
        self._handlers.clear()
        self._global_handlers.clear()
        logger.debug("Cleared all event handlers")


class EventLogger:
    """Logs all events for debugging and analysis."""

    def __init__(self, log_level: int = logging.INFO):
        self.logger = logging.getLogger("event_logger")
        self.log_level = log_level

    def handle_event(self, event: InterviewEvent) -> None:
        """Log event details."""
        self.logger.log(self.log_level, f"Event: {event.event_type.value} | Session: {event.session_id} | Data: {event.data}")


class InterviewMetrics:
    """Collects metrics from interview events."""

    def __init__(self):
        self.reset()

    def handle_event(self, event: InterviewEvent) -> None:
        """Update metrics based on event."""
        if event.event_type == EventType.SESSION_STARTED:
            self.sessions_started += 1
        elif event.event_type == EventType.SESSION_COMPLETED:
            self.sessions_completed += 1
        elif event.event_type == EventType.SESSION_TERMINATED:
            self.sessions_terminated += 1
        elif event.event_type == EventType.SEGMENT_STARTED:
            self.segments_presented += 1
        elif event.event_type == EventType.ANSWER_SUBMITTED:
            if event.data.get("skipped"):
                self.answers_skipped += 1
            else:
                self.answers_submitted += 1
        elif event.event_type == EventType.SPEECH_STATE_CHANGED:
            if event.data.get("current") == "interviewer_paused_for_candidate":
                self.barge_ins += 1
        elif event.event_type == EventType.FALLBACK_ACTIVATED:
            self.fallbacks_activated += 1
        elif event.event_type == EventType.CAPABILITY_DEGRADED:
            self.capabilities_degraded += 1
        elif event.event_type == EventType.ERROR_OCCURRED:
            self.errors_occurred += 1

    def get_metrics(self) -> Dict[str, int]:
        """Get current metrics snapshot."""
        return {
            "sessions_started": self.sessions_started,
            "sessions_completed": self.sessions_completed,
            "sessions_terminated": self.sessions_terminated,
            "segments_presented": self.segments_presented,
            "answers_submitted": self.answers_submitted,
            "answers_skipped": self.answers_skipped,
            "barge_ins": self.barge_ins,
            "fallbacks_activated": self.fallbacks_activated,
            "capabilities_degraded": self.capabilities_degraded,
            "errors_occurred": self.errors_occurred
        }

    def reset(self) -> None:
        """Reset all metrics to zero."""
        self.sessions_started = 0
        self.sessions_completed = 0
        self.sessions_terminated = 0
        self.segments_presented = 0
        self.answers_submitted = 0
        self.answers_skipped = 0
        self.barge_ins = 0
        self.fallbacks_activated = 0
        self.capabilities_degraded = 0
        self.errors_occurred = 0
