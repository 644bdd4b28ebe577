import random

import pytest

from interview_engine.interview.errors import PersistenceError
from interview_engine.interview.models import Role, SessionState
from interview_engine.interview.summary import PlaceholderScorer, SessionSummaryBuilder
from interview_engine.interview.testing import RecordingPersistenceService


def make_state():
    state = SessionState()
    state.append(Role.INTERVIEWER, "Why this role?")
    state.append(Role.CANDIDATE, "Because I like data.")
    return state


def test_placeholder_score_in_range():
    scorer = PlaceholderScorer(random.Random(7))
    scores = {scorer.score(SessionState()) for _ in range(500)}
    assert min(scores) >= 70
    assert max(scores) <= 100
    assert 70 in scores and 100 in scores


def test_finalize_scores_once_and_marks_ended():
    builder = SessionSummaryBuilder(RecordingPersistenceService(), PlaceholderScorer(random.Random(1)))
    state = make_state()

    first = builder.finalize(state, "app-1")
    second = builder.finalize(state, "app-1", completed=False)

    assert state.ended
    assert first.final_score == second.final_score == state.final_score
    assert second.completed is False
    assert [e.role for e in first.transcript] == [Role.INTERVIEWER, Role.CANDIDATE]


def test_build_requires_score():
    builder = SessionSummaryBuilder(RecordingPersistenceService())
    with pytest.raises(ValueError):
        builder.build(make_state(), "app-1")


def test_summary_is_a_snapshot():
    builder = SessionSummaryBuilder(RecordingPersistenceService())
    state = make_state()
    summary = builder.finalize(state, "app-1")

    state.append(Role.CANDIDATE, "An afterthought")
    assert len(summary.transcript) == 2
    assert summary.to_payload()["transcript"][1]["role"] == "candidate"


def test_submit_sends_score_and_transcript():
    persistence = RecordingPersistenceService()
    builder = SessionSummaryBuilder(persistence)
    summary = builder.finalize(make_state(), "app-9")

    builder.submit(summary)

    assert persistence.submissions == [{
        "application_id": "app-9",
        "score": summary.final_score,
        "transcript": list(summary.transcript),
    }]


def test_submit_propagates_persistence_errors():
    builder = SessionSummaryBuilder(RecordingPersistenceService(fail=True))
    summary = builder.finalize(make_state(), "app-9")
    with pytest.raises(PersistenceError):
        builder.submit(summary)
