"""
Typed event channels connecting capability engines to the components that own them.

Every engine call that produces asynchronous callbacks returns one
``EventChannel``. Exactly one component subscribes to it; events published
before the subscription are buffered and delivered on subscribe.
"""
import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Deque, Generic, Optional, TypeVar

logger = logging.getLogger("channels")

T = TypeVar("T")


class PlaybackEventKind(str, Enum):
    """Lifecycle of one synthesized or prerecorded playback."""
    STARTED = "started"
    ENDED = "ended"
    FAILED = "failed"


@dataclass(frozen=True)
class PlaybackEvent:
    kind: PlaybackEventKind
    error: Optional[str] = None


class RecognitionEventKind(str, Enum):
    """Callbacks of a speech recognition session."""
    FRAGMENT = "fragment"
    ENDED = "ended"
    ERROR = "error"


@dataclass(frozen=True)
class RecognitionEvent:
    kind: RecognitionEventKind
    text: str = ""
    is_final: bool = False
    error: Optional[str] = None


def _current_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class EventChannel(Generic[T]):
    """Single-subscriber event stream bound to an event loop."""

    def __init__(self, name: str, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.name = name
        self._loop = loop or _current_loop()
        self._handler: Optional[Callable[[T], None]] = None
        self._backlog: Deque[T] = deque()
        self.closed = False

    def subscribe(self, handler: Callable[[T], None]) -> None:
        """
        Attach the channel's only consumer.

        Args:
            handler: Called once per event, on the loop thread
        """
        if self._handler is not None:
            raise RuntimeError(f"Channel {self.name} already has a subscriber")
        self._handler = handler
        while self._backlog and self._handler is not None:
            handler(self._backlog.popleft())

    def unsubscribe(self) -> None:
        self._handler = None

    def publish(self, event: T) -> None:
        """Deliver an event; must be called on the loop thread."""
        if self.closed:
            logger.debug(f"Dropping {event} on closed channel {self.name}")
            return
        if self._handler is None:
            self._backlog.append(event)
            return
        self._handler(event)

    def publish_threadsafe(self, event: T) -> None:
        """Deliver an event from an engine worker thread."""
        if self._loop is None:
            raise RuntimeError(f"Channel {self.name} is not bound to an event loop")
        if self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self.publish, event)

    def close(self) -> None:
        """Stop delivering; later events are dropped."""
        self.closed = True
        self._handler = None
        self._backlog.clear()
