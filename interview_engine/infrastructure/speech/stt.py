"""
Streaming speech-to-text using Google Cloud Speech.
"""
import logging
import threading
from typing import List, Optional

from ...config import LANGUAGE_CODE
from ...interview.channels import EventChannel, RecognitionEvent, RecognitionEventKind
from ...interview.errors import RecognitionError

logger = logging.getLogger("speech_stt")


class GoogleStreamingRecognizer:
    """
    Speech recognizer that streams microphone chunks to Google Cloud Speech.

    Fragments carry the finalized text so far plus the current interim
    result, so each fragment is the whole answer heard in this session.
    """

    def __init__(self, language_code: str = LANGUAGE_CODE):
        self.language_code = language_code
        self._client = None
        self._supported: Optional[bool] = None
        self._stop_event: Optional[threading.Event] = None

    def _get_client(self):
        if self._client is None:
            from google.cloud import speech
            self._client = speech.SpeechClient()
        return self._client

    @property
    def supported(self) -> bool:
        if self._supported is None:
            try:
                self._get_client()
                self._supported = True
            except Exception as e:
                logger.warning(f"Google Speech unavailable: {e}")
                self._supported = False
        return self._supported

    def start(self, continuous: bool, audio=None) -> EventChannel[RecognitionEvent]:
        if audio is None or not hasattr(audio, "chunks"):
            raise RecognitionError("Streaming recognition needs a microphone stream")
        self.stop()
        stop_event = threading.Event()
        self._stop_event = stop_event
        channel: EventChannel[RecognitionEvent] = EventChannel("google-stt")
        threading.Thread(target=self._run, args=(audio, continuous, stop_event, channel),
                         daemon=True, name="stt-stream").start()
        return channel

    def _run(self, audio, continuous: bool, stop_event: threading.Event,
             channel: EventChannel[RecognitionEvent]) -> None:
        from google.cloud import speech

        config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=audio.sample_rate,
            language_code=self.language_code,
            enable_automatic_punctuation=True,
        )
        streaming_config = speech.StreamingRecognitionConfig(
            config=config,
            interim_results=True,
            single_utterance=not continuous,
        )
        audio_requests = (speech.StreamingRecognizeRequest(audio_content=chunk)
                    for chunk in audio.chunks(stop_event))

        finalized: List[str] = []
        try:
            responses = self._get_client().streaming_recognize(config=streaming_config, requests=audio_requests)
            for response in responses:
                if stop_event.is_set():
                    break
                for result in response.results:
                    if not result.alternatives:
                        continue
                    transcript = result.alternatives[0].transcript.strip()
                    if result.is_final:
                        finalized.append(transcript)
                        text = " ".join(finalized)
                    else:
                        text = " ".join(finalized + [transcript])
                    channel.publish_threadsafe(RecognitionEvent(
                        RecognitionEventKind.FRAGMENT, text=text.strip(), is_final=result.is_final
                    ))
        except Exception as e:
            if not stop_event.is_set():
                logger.error(f"Streaming recognition failed: {e}")
                channel.publish_threadsafe(RecognitionEvent(RecognitionEventKind.ERROR, error=str(e)))
            return

        channel.publish_threadsafe(RecognitionEvent(RecognitionEventKind.ENDED))

    def stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
            self._stop_event = None
