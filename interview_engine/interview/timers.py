"""
Named one-shot timers on the event loop.
"""
import asyncio
from typing import Callable, Dict


class TimerSet:
    """A component's timers, keyed by name so each can be re-armed or cancelled."""

    def __init__(self):
        self._handles: Dict[str, asyncio.TimerHandle] = {}

    def schedule(self, name: str, delay: float, callback: Callable, *args) -> None:
        """Arm ``name``, replacing any pending timer with the same name."""
        self.cancel(name)
        loop = asyncio.get_running_loop()
        self._handles[name] = loop.call_later(max(0.0, delay), self._fire, name, callback, args)

    def _fire(self, name: str, callback: Callable, args: tuple) -> None:
        self._handles.pop(name, None)
        callback(*args)

    def cancel(self, name: str) -> bool:
        handle = self._handles.pop(name, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> None:
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()

    def pending(self, name: str) -> bool:
        return name in self._handles

    def __len__(self) -> int:
        return len(self._handles)
