import asyncio

import pytest

from interview_engine.interview.arbiter import SpeechState, TurnArbiter
from interview_engine.interview.models import Role, SessionState
from interview_engine.interview.speech_input import InputSignal, InputSignalKind, SpeechInputChannel
from interview_engine.interview.speech_output import ClipLibrary, SpeechOutputChannel
from interview_engine.interview.testing import FakeClipPlayer, FakeRecognizer, FakeSynthesizer, fast_settings


S = SpeechState
GROWTH = InputSignal(InputSignalKind.GROWTH, "I")
SILENCE = InputSignal(InputSignalKind.SILENCE, "I")


def make_arbiter(settings, mode="manual"):
    synth = FakeSynthesizer(mode=mode)
    output = SpeechOutputChannel(synth, FakeClipPlayer(), ClipLibrary("/nonexistent-clips"), settings)
    state = SessionState()
    return TurnArbiter(output, state, settings), synth, state


@pytest.mark.asyncio
async def test_barge_in_pauses_the_current_segment(script, settings):
    arbiter, synth, state = make_arbiter(settings)
    segment = script[2]

    arbiter.request_segment(segment)
    synth.start_current()
    assert arbiter.state is S.INTERVIEWER_SPEAKING

    await asyncio.sleep(0.2)
    arbiter.on_input_signal(GROWTH)

    assert arbiter.history[-3:] == [
        S.INTERVIEWER_SPEAKING, S.INTERVIEWER_PAUSED_FOR_CANDIDATE, S.CANDIDATE_SPEAKING
    ]
    assert state.paused_utterance == segment
    assert synth.cancel_calls == 1


@pytest.mark.asyncio
async def test_silence_resumes_the_same_segment(script, settings, wait_until):
    arbiter, synth, state = make_arbiter(settings)
    segment = script[2]
    arbiter.request_segment(segment)
    synth.start_current()
    arbiter.on_input_signal(GROWTH)

    arbiter.on_input_signal(SILENCE)
    assert arbiter.state is S.CANDIDATE_SILENCE_WINDOW

    await wait_until(lambda: arbiter.state is S.INTERVIEWER_SPEAKING)
    assert arbiter.current_utterance.segment == segment
    assert state.paused_utterance is None
    assert synth.spoken == [segment.text, segment.text]
    assert state.current_segment_index == 0


@pytest.mark.asyncio
async def test_growth_in_silence_window_aborts_resume(script):
    settings = fast_settings(start_timeout_floor=1.0, safety_floor_seconds=2.0, resume_grace_seconds=0.1)
    arbiter, synth, state = make_arbiter(settings)
    arbiter.request_segment(script[1])
    synth.start_current()
    arbiter.on_input_signal(GROWTH)
    arbiter.on_input_signal(SILENCE)

    arbiter.on_input_signal(GROWTH)
    assert arbiter.state is S.CANDIDATE_SPEAKING

    await asyncio.sleep(0.15)
    assert arbiter.state is S.CANDIDATE_SPEAKING
    assert len(synth.spoken) == 1
    assert state.paused_utterance == script[1]


@pytest.mark.asyncio
async def test_silence_without_pending_segment_returns_to_idle(settings, wait_until):
    synth = FakeSynthesizer()
    output = SpeechOutputChannel(synth, FakeClipPlayer(), ClipLibrary("/nonexistent-clips"), settings)
    arbiter = TurnArbiter(output, SessionState(), settings)
    recognizer = FakeRecognizer()
    speech_input = SpeechInputChannel(recognizer, settings)
    speech_input.start().subscribe(arbiter.on_input_signal)

    recognizer.emit_fragment("Well, let me think")
    assert arbiter.state is S.CANDIDATE_SPEAKING

    await wait_until(lambda: arbiter.state is S.IDLE)
    assert arbiter.history == [S.IDLE, S.CANDIDATE_SPEAKING, S.CANDIDATE_SILENCE_WINDOW, S.IDLE]
    assert synth.spoken == []


@pytest.mark.asyncio
async def test_segment_requested_while_candidate_speaks_waits(script, settings, wait_until):
    arbiter, synth, state = make_arbiter(settings, mode="auto")
    arbiter.on_input_signal(GROWTH)

    arbiter.request_segment(script[0])
    arbiter.request_segment(script[1])
    assert synth.spoken == []
    assert state.paused_utterance == script[0]
    assert arbiter.queued_segments == [script[1]]

    arbiter.on_input_signal(SILENCE)
    await wait_until(lambda: len(state.transcript) == 2 and arbiter.state is S.IDLE)
    assert synth.spoken == [script[0].text, script[1].text]
    assert [e.text for e in state.transcript] == [script[0].text, script[1].text]


@pytest.mark.asyncio
async def test_queued_segments_play_in_order(script, settings, wait_until):
    arbiter, synth, state = make_arbiter(settings, mode="auto")
    finished = []
    arbiter.on_segment_finished = finished.append

    for segment in script[:3]:
        arbiter.request_segment(segment)

    await wait_until(lambda: len(finished) == 3)
    assert finished == script[:3]
    assert [e.role for e in state.transcript] == [Role.INTERVIEWER] * 3
    assert arbiter.state is S.IDLE


@pytest.mark.asyncio
async def test_stale_end_after_pause_is_ignored(script, settings):
    arbiter, synth, state = make_arbiter(settings)
    arbiter.request_segment(script[0])
    synth.start_current()
    arbiter.on_input_signal(GROWTH)

    synth.finish_current()
    await asyncio.sleep(0.01)
    assert arbiter.state is S.CANDIDATE_SPEAKING
    assert state.paused_utterance == script[0]


@pytest.mark.asyncio
async def test_end_is_terminal(script, settings):
    arbiter, synth, state = make_arbiter(settings)
    arbiter.request_segment(script[0])
    synth.start_current()

    arbiter.end()
    arbiter.end()
    assert arbiter.state is S.IDLE
    assert arbiter.ended

    arbiter.request_segment(script[1])
    arbiter.on_input_signal(GROWTH)
    assert arbiter.state is S.IDLE
    assert len(synth.spoken) == 1


@pytest.mark.asyncio
async def test_interviewer_entry_is_recorded_once_across_resume(script, settings, wait_until):
    arbiter, synth, state = make_arbiter(settings)
    arbiter.request_segment(script[0])
    synth.start_current()
    arbiter.on_input_signal(GROWTH)
    arbiter.on_input_signal(SILENCE)
    await wait_until(lambda: len(synth.spoken) == 2)

    synth.start_current()
    synth.finish_current()
    assert arbiter.state is S.IDLE
    assert [e.text for e in state.transcript] == [script[0].text]
