"""
Ownership of camera, microphone and screen-capture streams.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Dict, Iterable, Optional

from .capabilities import MediaCapture, StreamHandle
from .errors import DevicePermissionError
from .models import DeviceCapability, DeviceKind, DeviceSnapshot

logger = logging.getLogger("devices")


class DevicePermissionManager:
    """
    Single owner of every capture stream in a session.

    Other components may read a stream through ``stream(kind)`` but never
    stop it; teardown goes through ``release``/``release_all`` or ``hold``.
    """

    def __init__(self, capture: MediaCapture):
        self.capture = capture
        self._capabilities: Dict[DeviceKind, DeviceCapability] = {
            kind: DeviceCapability(kind=kind) for kind in DeviceKind
        }
        self._locks: Dict[DeviceKind, asyncio.Lock] = {}

    def _lock(self, kind: DeviceKind) -> asyncio.Lock:
        # Created lazily so the lock binds to the loop that uses it
        if kind not in self._locks:
            self._locks[kind] = asyncio.Lock()
        return self._locks[kind]

    async def request(self, kind: DeviceKind) -> DeviceCapability:
        """
        Acquire a device stream, reconnecting if one is already held.

        Args:
            kind: Device to acquire

        Returns:
            The granted capability

        Raises:
            DevicePermissionError: Access was denied or the hardware is absent
        """
        async with self._lock(kind):
            capability = self._capabilities[kind]
            if capability.stream is not None:
                logger.info(f"Reconnecting {kind.value}: stopping stale stream")
                self._stop_stream(capability)

            try:
                stream = await asyncio.to_thread(self.capture.request, kind)
            except DevicePermissionError:
                capability.granted = False
                logger.warning(f"{kind.value} permission denied")
                raise
            except OSError as e:
                capability.granted = False
                logger.warning(f"{kind.value} unavailable: {e}")
                raise DevicePermissionError(kind, str(e)) from e

            capability.stream = stream
            capability.granted = True
            logger.info(f"{kind.value} granted")
            return capability

    async def acquire(self, kinds: Iterable[DeviceKind]) -> Dict[DeviceKind, DevicePermissionError]:
        """
        Request several devices, collecting failures instead of raising.

        Returns:
            Mapping of each denied device to its error
        """
        failures: Dict[DeviceKind, DevicePermissionError] = {}
        for kind in kinds:
            try:
                await self.request(kind)
            except DevicePermissionError as e:
                failures[kind] = e
        return failures

    def release(self, kind: DeviceKind) -> None:
        """Stop the stream for ``kind``; a no-op when nothing is held."""
        capability = self._capabilities[kind]
        if capability.stream is None and not capability.granted:
            return
        self._stop_stream(capability)
        logger.info(f"{kind.value} released")

    def release_all(self) -> None:
        for kind in DeviceKind:
            self.release(kind)

    def _stop_stream(self, capability: DeviceCapability) -> None:
        stream, capability.stream = capability.stream, None
        capability.granted = False
        if stream is None:
            return
        try:
            stream.stop()
        except Exception as e:
            # A stream that fails to stop is still gone from our side
            logger.warning(f"Error stopping {capability.kind.value} stream: {e}")

    def stream(self, kind: DeviceKind) -> Optional[StreamHandle]:
        return self._capabilities[kind].stream

    def is_granted(self, kind: DeviceKind) -> bool:
        return self._capabilities[kind].granted

    def snapshot(self) -> DeviceSnapshot:
        return DeviceSnapshot(
            camera=self.is_granted(DeviceKind.CAMERA),
            microphone=self.is_granted(DeviceKind.MICROPHONE),
            screen=self.is_granted(DeviceKind.SCREEN),
        )

    @asynccontextmanager
    async def hold(self, *kinds: DeviceKind):
        """
        Scoped acquisition: yields the failures dict, releases on every exit path.

        Example:
            async with manager.hold(DeviceKind.MICROPHONE) as failures:
                ...
        """
        failures = await self.acquire(kinds)
        try:
            yield failures
        finally:
            for kind in kinds:
                self.release(kind)
