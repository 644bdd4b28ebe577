"""
Text-to-speech using Google Cloud TTS, played through PyAudio.
"""
import logging
import threading
from typing import Optional

from ...config import LANGUAGE_CODE, TTS_VOICE
from ...interview.channels import EventChannel, PlaybackEvent, PlaybackEventKind
from ...interview.errors import SynthesisError
from .playback import PcmPlayer, PlaybackJob, read_wav

logger = logging.getLogger("speech_tts")


class GoogleCloudSynthesizer:
    """Speech synthesizer backed by Google Cloud Text-to-Speech."""

    def __init__(self,
                 player: PcmPlayer,
                 voice: str = TTS_VOICE,
                 language_code: str = LANGUAGE_CODE,
                 sample_rate: int = 16000):
        self.player = player
        self.voice = voice
        self.language_code = language_code
        self.sample_rate = sample_rate
        self._client = None
        self._supported: Optional[bool] = None
        self._job: Optional[PlaybackJob] = None

    def _get_client(self):
        if self._client is None:
            from google.cloud import texttospeech
            self._client = texttospeech.TextToSpeechClient()
        return self._client

    @property
    def supported(self) -> bool:
        """Whether a client can be created (credentials present)."""
        if self._supported is None:
            try:
                self._get_client()
                self._supported = True
            except Exception as e:
                logger.warning(f"Google TTS unavailable: {e}")
                self._supported = False
        return self._supported

    def speak(self, text: str, voice_hint: Optional[str] = None) -> EventChannel[PlaybackEvent]:
        """Start synthesizing ``text``; raises SynthesisError if no client can be created."""
        if not self.supported:
            raise SynthesisError("Google Text-to-Speech client unavailable")
        self.cancel()
        channel: EventChannel[PlaybackEvent] = EventChannel("google-tts")
        job = PlaybackJob()
        self._job = job
        threading.Thread(target=self._run, args=(text, voice_hint or self.voice, job, channel),
                         daemon=True, name="tts-playback").start()
        return channel

    def _run(self, text: str, voice: str, job: PlaybackJob, channel: EventChannel[PlaybackEvent]) -> None:
        from google.cloud import texttospeech

        try:
            response = self._get_client().synthesize_speech(
                input=texttospeech.SynthesisInput(text=text),
                voice=texttospeech.VoiceSelectionParams(language_code=self.language_code, name=voice),
                audio_config=texttospeech.AudioConfig(
                    audio_encoding=texttospeech.AudioEncoding.LINEAR16,
                    sample_rate_hertz=self.sample_rate,
                ),
            )
            pcm, rate, channels = read_wav(response.audio_content)
        except Exception as e:
            logger.error(f"Google TTS failed: {e}")
            channel.publish_threadsafe(PlaybackEvent(PlaybackEventKind.FAILED, error=str(e)))
            return

        if job.cancelled.is_set():
            return

        channel.publish_threadsafe(PlaybackEvent(PlaybackEventKind.STARTED))
        try:
            finished = self.player.play(pcm, rate, channels, job)
        except OSError as e:
            logger.error(f"Speaker output failed: {e}")
            channel.publish_threadsafe(PlaybackEvent(PlaybackEventKind.FAILED, error=str(e)))
            return
        if finished:
            channel.publish_threadsafe(PlaybackEvent(PlaybackEventKind.ENDED))

    def pause(self) -> None:
        if self._job is not None:
            self._job.pause()

    def resume(self) -> None:
        if self._job is not None:
            self._job.resume()

    def cancel(self) -> None:
        if self._job is not None:
            self._job.cancel()
            self._job = None
