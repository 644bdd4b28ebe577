"""
Local camera, microphone and screen capture.

Hardware libraries are imported lazily so the engine can be used (and
tested) on machines without PyAudio, OpenCV or a display.
"""
import logging
import queue
import threading
from typing import Iterator, Optional

import numpy as np

from ...config import CAMERA_INDEX, MIC_CHUNK_MS, MIC_QUEUE_CHUNKS, MIC_SAMPLE_RATE, SCREEN_MONITOR
from ...interview.errors import DevicePermissionError
from ...interview.models import DeviceKind
from ...utils import with_suppressed_audio_warnings

logger = logging.getLogger("media_capture")


class MicrophoneStream:
    """16 kHz mono PyAudio input stream feeding a chunk queue."""

    kind = DeviceKind.MICROPHONE

    def __init__(self,
                 sample_rate: int = MIC_SAMPLE_RATE,
                 chunk_ms: int = MIC_CHUNK_MS,
                 device_index: Optional[int] = None,
                 queue_chunks: int = MIC_QUEUE_CHUNKS):
        self.sample_rate = sample_rate
        self.chunk_frames = int(sample_rate * chunk_ms / 1000)
        self.device_index = device_index
        self.closed = False
        # Oldest chunks are dropped when nobody is reading
        self._queue: "queue.Queue[bytes]" = queue.Queue(maxsize=queue_chunks)
        self._last_chunk = b""
        self._continue_flag = 0  # pyaudio.paContinue
        self._pa = None
        self._stream = None

    @with_suppressed_audio_warnings
    def open(self) -> 'MicrophoneStream':
        import pyaudio
        self._continue_flag = pyaudio.paContinue
        self._pa = pyaudio.PyAudio()
        try:
            self._stream = self._pa.open(
                format=pyaudio.paInt16,
                channels=1,
                rate=self.sample_rate,
                input=True,
                input_device_index=self.device_index,
                frames_per_buffer=self.chunk_frames,
                stream_callback=self._fill,
            )
        except OSError as e:
            self._pa.terminate()
            self._pa = None
            raise DevicePermissionError(DeviceKind.MICROPHONE, str(e)) from e
        logger.info(f"Microphone open at {self.sample_rate} Hz")
        return self

    def _fill(self, in_data, frame_count, time_info, status):
        self._last_chunk = in_data
        while True:
            try:
                self._queue.put_nowait(in_data)
                break
            except queue.Full:
                self._discard_oldest()
        return None, self._continue_flag

    def _discard_oldest(self) -> None:
        try:
            self._queue.get_nowait()
        except queue.Empty:
            pass

    def chunks(self, stop_event: threading.Event) -> Iterator[bytes]:
        """
        Audio chunks until ``stop_event`` is set or the stream closes.

        Audio captured before this call is discarded so a new recognition
        session only hears what comes next.
        """
        while not self._queue.empty():
            self._discard_oldest()
        return self._iter_chunks(stop_event)

    def _iter_chunks(self, stop_event: threading.Event) -> Iterator[bytes]:
        while not stop_event.is_set() and not self.closed:
            try:
                yield self._queue.get(timeout=0.1)
            except queue.Empty:
                continue

    def level(self) -> float:
        """RMS level of the latest chunk, 0.0 to 1.0."""
        if not self._last_chunk:
            return 0.0
        samples = np.frombuffer(self._last_chunk, dtype=np.int16).astype(np.float32) / 32768.0
        return float(np.sqrt(np.mean(samples ** 2)))

    def stop(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._stream is not None:
            self._stream.stop_stream()
            self._stream.close()
            self._stream = None
        if self._pa is not None:
            self._pa.terminate()
            self._pa = None
        logger.info("Microphone closed")


class CameraStream:
    """OpenCV camera capture."""

    kind = DeviceKind.CAMERA

    def __init__(self, index: int = CAMERA_INDEX):
        self.index = index
        self._capture = None

    def open(self) -> 'CameraStream':
        import cv2
        capture = cv2.VideoCapture(self.index)
        if not capture.isOpened():
            capture.release()
            raise DevicePermissionError(DeviceKind.CAMERA, f"camera {self.index} not available")
        self._capture = capture
        logger.info(f"Camera {self.index} open")
        return self

    def read_frame(self) -> Optional[np.ndarray]:
        if self._capture is None:
            return None
        ok, frame = self._capture.read()
        return frame if ok else None

    def stop(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.info("Camera released")


class ScreenStream:
    """Screen capture with mss; grabs open their own mss instance per call."""

    kind = DeviceKind.SCREEN

    def __init__(self, monitor: int = SCREEN_MONITOR):
        self.monitor = monitor
        self.stopped = False

    def open(self) -> 'ScreenStream':
        import mss
        from mss.exception import ScreenShotError
        try:
            with mss.mss() as sct:
                monitors = sct.monitors
        except ScreenShotError as e:
            raise DevicePermissionError(DeviceKind.SCREEN, str(e)) from e
        if self.monitor >= len(monitors):
            raise DevicePermissionError(DeviceKind.SCREEN, f"monitor {self.monitor} not found")
        logger.info(f"Screen capture ready on monitor {self.monitor}")
        return self

    def grab(self) -> Optional[np.ndarray]:
        if self.stopped:
            return None
        import mss
        with mss.mss() as sct:
            shot = sct.grab(sct.monitors[self.monitor])
        return np.array(shot)

    def stop(self) -> None:
        self.stopped = True


class LocalMediaCapture:
    """Media capture capability backed by local hardware."""

    def __init__(self,
                 mic_sample_rate: int = MIC_SAMPLE_RATE,
                 camera_index: int = CAMERA_INDEX,
                 screen_monitor: int = SCREEN_MONITOR,
                 mic_device: Optional[int] = None):
        self.mic_sample_rate = mic_sample_rate
        self.camera_index = camera_index
        self.screen_monitor = screen_monitor
        self.mic_device = mic_device

    def request(self, kind: DeviceKind):
        """Open a stream for ``kind``; blocking. Raises DevicePermissionError."""
        try:
            if kind is DeviceKind.MICROPHONE:
                return MicrophoneStream(self.mic_sample_rate, device_index=self.mic_device).open()
            if kind is DeviceKind.CAMERA:
                return CameraStream(self.camera_index).open()
            return ScreenStream(self.screen_monitor).open()
        except ImportError as e:
            raise DevicePermissionError(kind, f"capture library missing: {e}") from e
