"""Infrastructure components for the interview engine.

Concrete engines behind the capability contracts: Google Cloud speech,
PyAudio playback and capture, OpenCV camera, mss screen capture and the
results REST client. Hardware modules are imported lazily.
"""
from typing import Any, Dict

from .data import HttpResultsClient

__all__ = ["HttpResultsClient", "create_local_capabilities"]


def create_local_capabilities(config) -> Dict[str, Any]:
    """
    Build the capability set for running an interview on this machine.

    Args:
        config: Loaded ``Config``

    Returns:
        Keyword arguments for ``InterviewSession``
    """
    from .media import LocalMediaCapture
    from .speech import GoogleCloudSynthesizer, GoogleStreamingRecognizer, PcmPlayer, WavClipPlayer

    player = PcmPlayer(volume=config.speaker_volume)
    return {
        "synthesizer": GoogleCloudSynthesizer(player, voice=config.tts_voice, language_code=config.language_code),
        "recognizer": GoogleStreamingRecognizer(language_code=config.language_code),
        "capture": LocalMediaCapture(
            mic_sample_rate=config.mic_sample_rate,
            camera_index=config.camera_index,
            screen_monitor=config.screen_monitor,
        ),
        "clip_player": WavClipPlayer(player),
        "persistence": HttpResultsClient(
            config.results_api_url, config.results_api_token, config.results_api_timeout
        ),
    }
