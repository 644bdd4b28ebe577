from types import SimpleNamespace

import pytest

from interview_engine.infrastructure.speech.playback import PcmPlayer
from interview_engine.infrastructure.speech.tts import GoogleCloudSynthesizer
from interview_engine.interview.channels import PlaybackEventKind
from interview_engine.interview.errors import SynthesisError


class FakeTtsClient:
    def __init__(self, audio_content):
        self.audio_content = audio_content
        self.requests = 0

    def synthesize_speech(self, **kwargs):
        self.requests += 1
        return SimpleNamespace(audio_content=self.audio_content)


def missing_credentials():
    raise RuntimeError("default credentials not found")


def test_speak_without_client_raises_synthesis_error(monkeypatch):
    synth = GoogleCloudSynthesizer(PcmPlayer())
    monkeypatch.setattr(synth, "_get_client", missing_credentials)

    assert not synth.supported
    with pytest.raises(SynthesisError):
        synth.speak("Tell me about yourself.")
    assert synth._job is None


@pytest.mark.asyncio
async def test_unreadable_audio_is_reported_as_failure(monkeypatch, wait_until):
    pytest.importorskip("google.cloud.texttospeech")
    synth = GoogleCloudSynthesizer(PcmPlayer())
    client = FakeTtsClient(b"not a wav file")
    monkeypatch.setattr(synth, "_get_client", lambda: client)
    events = []

    synth.speak("Tell me about yourself.").subscribe(events.append)
    await wait_until(lambda: len(events) == 1)

    assert client.requests == 1
    assert events[0].kind is PlaybackEventKind.FAILED
    assert events[0].error
