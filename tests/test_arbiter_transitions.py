import itertools

import pytest

from interview_engine.interview.arbiter import SpeechState, Trigger, next_state


S = SpeechState
T = Trigger


@pytest.mark.parametrize("state,trigger,pending,expected", [
    (S.IDLE, T.SEGMENT_REQUESTED, True, S.INTERVIEWER_SPEAKING),
    (S.IDLE, T.SPEECH_GROWTH, False, S.CANDIDATE_SPEAKING),
    (S.INTERVIEWER_SPEAKING, T.SPEECH_GROWTH, False, S.INTERVIEWER_PAUSED_FOR_CANDIDATE),
    (S.INTERVIEWER_SPEAKING, T.OUTPUT_ENDED, True, S.INTERVIEWER_SPEAKING),
    (S.INTERVIEWER_SPEAKING, T.OUTPUT_ENDED, False, S.IDLE),
    (S.INTERVIEWER_PAUSED_FOR_CANDIDATE, T.FLOOR_TAKEN, True, S.CANDIDATE_SPEAKING),
    (S.CANDIDATE_SPEAKING, T.SILENCE_ELAPSED, True, S.CANDIDATE_SILENCE_WINDOW),
    (S.CANDIDATE_SILENCE_WINDOW, T.RESUME_DUE, True, S.INTERVIEWER_SPEAKING),
    (S.CANDIDATE_SILENCE_WINDOW, T.RESUME_DUE, False, S.IDLE),
    (S.CANDIDATE_SILENCE_WINDOW, T.SPEECH_GROWTH, True, S.CANDIDATE_SPEAKING),
])
def test_transition_table(state, trigger, pending, expected):
    assert next_state(state, trigger, pending) is expected


@pytest.mark.parametrize("state", list(SpeechState))
def test_end_always_returns_to_idle(state):
    assert next_state(state, Trigger.END, True) is SpeechState.IDLE
    assert next_state(state, Trigger.END, False) is SpeechState.IDLE


def test_unlisted_triggers_leave_state_unchanged():
    assert next_state(S.IDLE, T.OUTPUT_ENDED) is S.IDLE
    assert next_state(S.CANDIDATE_SPEAKING, T.SEGMENT_REQUESTED, True) is S.CANDIDATE_SPEAKING
    assert next_state(S.CANDIDATE_SPEAKING, T.SPEECH_GROWTH) is S.CANDIDATE_SPEAKING


def test_interviewer_never_interrupts_candidate():
    for trigger, pending in itertools.product(Trigger, (True, False)):
        if trigger is Trigger.END:
            continue
        result = next_state(S.CANDIDATE_SPEAKING, trigger, pending)
        assert result not in (S.INTERVIEWER_SPEAKING, S.INTERVIEWER_PAUSED_FOR_CANDIDATE)


def test_growth_while_interviewer_speaking_always_pauses():
    for pending in (True, False):
        assert next_state(S.INTERVIEWER_SPEAKING, T.SPEECH_GROWTH, pending) is S.INTERVIEWER_PAUSED_FOR_CANDIDATE


def test_all_states_reachable_from_idle():
    seen = {S.IDLE}
    frontier = [S.IDLE]
    while frontier:
        state = frontier.pop()
        for trigger, pending in itertools.product(Trigger, (True, False)):
            result = next_state(state, trigger, pending)
            assert isinstance(result, SpeechState)
            if result not in seen:
                seen.add(result)
                frontier.append(result)
    assert seen == set(SpeechState)
