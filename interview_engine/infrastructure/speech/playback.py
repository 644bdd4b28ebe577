"""
PCM playback through PyAudio with pause and cancel controls.
"""
import io
import logging
import os
import threading
import wave
from typing import Optional, Tuple

import numpy as np

from ...config import SPEAKER_BUFFER_SIZE, SPEAKER_DEVICE, SPEAKER_VOLUME
from ...interview.channels import EventChannel, PlaybackEvent, PlaybackEventKind
from ...utils import with_suppressed_audio_warnings

logger = logging.getLogger("playback")


def read_wav(source) -> Tuple[bytes, int, int]:
    """
    Read 16-bit PCM from a WAV path or bytes.

    Returns:
        (pcm frames, sample rate, channel count)
    """
    handle = io.BytesIO(source) if isinstance(source, (bytes, bytearray)) else source
    with wave.open(handle, "rb") as wav:
        if wav.getsampwidth() != 2:
            raise wave.Error(f"Unsupported sample width {wav.getsampwidth()} (need 16-bit)")
        return wav.readframes(wav.getnframes()), wav.getframerate(), wav.getnchannels()


class PlaybackJob:
    """Controls for one playback running on a worker thread."""

    def __init__(self):
        self.cancelled = threading.Event()
        self.running = threading.Event()
        self.running.set()

    def pause(self) -> None:
        self.running.clear()

    def resume(self) -> None:
        self.running.set()

    def cancel(self) -> None:
        self.cancelled.set()
        self.running.set()


class PcmPlayer:
    """Blocking 16-bit PCM player; one PyAudio stream per playback."""

    def __init__(self,
                 device: Optional[int] = SPEAKER_DEVICE,
                 volume: float = SPEAKER_VOLUME,
                 frames_per_buffer: int = SPEAKER_BUFFER_SIZE):
        self.device = device
        self.volume = max(0.0, min(1.0, volume))
        self.frames_per_buffer = frames_per_buffer

    @with_suppressed_audio_warnings
    def _open(self, sample_rate: int, channels: int):
        import pyaudio
        pa = pyaudio.PyAudio()
        try:
            stream = pa.open(
                format=pyaudio.paInt16,
                channels=channels,
                rate=sample_rate,
                output=True,
                output_device_index=self.device,
                frames_per_buffer=self.frames_per_buffer,
            )
        except OSError:
            pa.terminate()
            raise
        return pa, stream

    def play(self, pcm: bytes, sample_rate: int, channels: int, job: PlaybackJob) -> bool:
        """
        Play PCM until done or cancelled.

        Returns:
            True if playback reached the end
        """
        samples = np.frombuffer(pcm, dtype=np.int16).astype(np.float32) * self.volume
        scaled = np.clip(samples, -32768, 32767).astype(np.int16)
        step = self.frames_per_buffer * channels

        pa, stream = self._open(sample_rate, channels)
        try:
            for start in range(0, len(scaled), step):
                while not job.running.wait(0.05):
                    pass
                if job.cancelled.is_set():
                    return False
                stream.write(scaled[start:start + step].tobytes())
            return True
        finally:
            stream.stop_stream()
            stream.close()
            pa.terminate()


class WavClipPlayer:
    """Plays prerecorded WAV clips on a daemon thread."""

    def __init__(self, player: PcmPlayer):
        self.player = player
        self._job: Optional[PlaybackJob] = None

    def play(self, path: str) -> EventChannel[PlaybackEvent]:
        self.stop()
        channel: EventChannel[PlaybackEvent] = EventChannel(f"clip:{os.path.basename(path)}")
        job = PlaybackJob()
        self._job = job
        threading.Thread(target=self._run, args=(path, job, channel),
                         daemon=True, name="clip-playback").start()
        return channel

    def _run(self, path: str, job: PlaybackJob, channel: EventChannel[PlaybackEvent]) -> None:
        try:
            pcm, rate, channels = read_wav(path)
        except (OSError, wave.Error) as e:
            logger.warning(f"Cannot read clip {path}: {e}")
            channel.publish_threadsafe(PlaybackEvent(PlaybackEventKind.FAILED, error=str(e)))
            return

        channel.publish_threadsafe(PlaybackEvent(PlaybackEventKind.STARTED))
        try:
            finished = self.player.play(pcm, rate, channels, job)
        except OSError as e:
            logger.warning(f"Clip playback failed: {e}")
            channel.publish_threadsafe(PlaybackEvent(PlaybackEventKind.FAILED, error=str(e)))
            return
        if finished:
            channel.publish_threadsafe(PlaybackEvent(PlaybackEventKind.ENDED))

    def stop(self) -> None:
        if self._job is not None:
            self._job.cancel()
            self._job = None
