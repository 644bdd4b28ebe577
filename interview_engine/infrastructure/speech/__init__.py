"""Speech engines: Google Cloud TTS/STT and PyAudio playback."""

from .playback import PcmPlayer, PlaybackJob, WavClipPlayer, read_wav
from .tts import GoogleCloudSynthesizer
from .stt import GoogleStreamingRecognizer

__all__ = [
    "PcmPlayer", "PlaybackJob", "WavClipPlayer", "read_wav",
    "GoogleCloudSynthesizer", "GoogleStreamingRecognizer"
]
