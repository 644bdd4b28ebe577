import pytest

from interview_engine.interview.errors import ScriptError, SubmissionError
from interview_engine.interview.models import Role, ScriptSegment, SegmentKind, SessionState
from interview_engine.interview.script import QuestionBank, ScriptDriver, validate_script


class StubArbiter:
    def __init__(self, state):
        self.state = state
        self.requested = []
        self.ended = False
        self.on_segment_finished = None

    def request_segment(self, segment):
        self.requested.append(segment.index)

    def record_answer(self, text):
        self.state.append(Role.CANDIDATE, text)


def make_driver(script):
    state = SessionState()
    arbiter = StubArbiter(state)
    return ScriptDriver(script, arbiter, state), arbiter, state


def test_script_layout(script):
    assert [s.kind for s in script] == [
        SegmentKind.INTRO,
        SegmentKind.QUESTION, SegmentKind.ACK,
        SegmentKind.QUESTION, SegmentKind.ACK,
        SegmentKind.QUESTION, SegmentKind.ACK,
        SegmentKind.CLOSING,
    ]
    assert [s.index for s in script] == list(range(8))
    assert "Sam" in script[0].text
    assert "Data Analyst" in script[0].text and "Globex" in script[0].text
    assert [s.fallback_clip_id for s in script] == [
        "intro", "question1", None, "question2", None, "question3", None, "closing"
    ]


def test_zero_questions_is_intro_and_closing(job):
    script = QuestionBank(0).build_script(job, "")
    assert [s.kind for s in script] == [SegmentKind.INTRO, SegmentKind.CLOSING]
    assert script[0].text.startswith("Hello there!")


def test_negative_question_count_rejected():
    with pytest.raises(ScriptError):
        QuestionBank(-1)


@pytest.mark.parametrize("segments,message", [
    ([], "empty"),
    ([ScriptSegment(1, SegmentKind.CLOSING, "Bye")], "index"),
    ([ScriptSegment(0, SegmentKind.INTRO, "Hi"), ScriptSegment(1, SegmentKind.CLOSING, "  ")], "no text"),
    ([ScriptSegment(0, SegmentKind.INTRO, "Hi"), ScriptSegment(1, SegmentKind.QUESTION, "Why?")], "closing"),
])
def test_validate_script_rejects(segments, message):
    with pytest.raises(ScriptError, match=message):
        validate_script(segments)


def test_begin_requests_through_first_question(script):
    driver, arbiter, state = make_driver(script)

    driver.begin()
    driver.begin()

    assert arbiter.requested == [0, 1]
    assert state.current_segment_index == 1
    assert driver.current_segment.kind is SegmentKind.QUESTION


def test_answers_walk_to_closing(script):
    driver, arbiter, state = make_driver(script)
    advanced = []
    driver.on_advance = lambda: advanced.append(state.current_segment_index)
    driver.begin()

    driver.submit_answer("First answer")
    driver.submit_answer("  Second answer  ")
    driver.force_advance()

    assert arbiter.requested == list(range(8))
    assert advanced == [3, 5, 7]
    assert state.answers() == ["First answer", "Second answer"]
    assert driver.closing_requested
    assert driver.questions_asked == 3

    with pytest.raises(SubmissionError, match="awaiting"):
        driver.submit_answer("Too late")


def test_empty_answer_rejected_without_advancing(script):
    driver, arbiter, state = make_driver(script)
    driver.begin()

    with pytest.raises(SubmissionError):
        driver.submit_answer("   ")
    assert state.current_segment_index == 1
    assert state.transcript == []


def test_submit_before_begin_rejected(script):
    driver, _, _ = make_driver(script)
    with pytest.raises(SubmissionError, match="not started"):
        driver.submit_answer("Hello")


def test_submit_after_end_rejected(script):
    driver, arbiter, state = make_driver(script)
    driver.begin()
    arbiter.ended = True
    with pytest.raises(SubmissionError, match="already ended"):
        driver.submit_answer("Hello")


def test_force_advance_records_text(script):
    driver, _, state = make_driver(script)
    driver.begin()
    driver.force_advance("partial thought")
    assert state.answers() == ["partial thought"]
    assert state.current_segment_index == 3


def test_closing_finished_completes_once(script):
    driver, arbiter, _ = make_driver(script)
    completions = []
    driver.on_complete = lambda: completions.append(True)

    arbiter.on_segment_finished(script[1])
    assert not driver.completed

    arbiter.on_segment_finished(script[-1])
    arbiter.on_segment_finished(script[-1])
    assert driver.completed
    assert completions == [True]


def test_segment_cursor_cannot_move_back():
    state = SessionState()
    state.advance_to(3)
    state.advance_to(3)
    with pytest.raises(ValueError):
        state.advance_to(1)
    assert state.current_segment_index == 3


def test_driver_cursor_only_moves_forward(script):
    driver, arbiter, state = make_driver(script)
    positions = []

    driver.begin()
    positions.append(state.current_segment_index)
    for answer in ("One", "Two"):
        driver.submit_answer(answer)
        positions.append(state.current_segment_index)
        with pytest.raises(SubmissionError):
            driver.submit_answer("")
        positions.append(state.current_segment_index)
    driver.force_advance()
    positions.append(state.current_segment_index)

    assert positions == [1, 3, 3, 5, 5, 7]
    assert arbiter.requested == list(range(8))
