import logging

from interview_engine.interview.events import (
    AnswerSubmittedEvent, ErrorOccurredEvent, EventLogger, EventType, InterviewEventBus,
    InterviewMetrics, SessionStartedEvent, SpeechStateChangedEvent
)


def started(session_id="s-1"):
    return SessionStartedEvent(session_id, 0.0, "Data Analyst", 8, {"microphone": True})


def test_bus_routes_by_type_and_to_global_handlers():
    bus = InterviewEventBus()
    typed, everything = [], []
    bus.subscribe(EventType.SESSION_STARTED, typed.append)
    bus.subscribe_all(everything.append)

    bus.emit(started())
    bus.emit(ErrorOccurredEvent("s-1", 0.0, "ValueError", "bad", "script"))

    assert [e.event_type for e in typed] == [EventType.SESSION_STARTED]
    assert [e.event_type for e in everything] == [EventType.SESSION_STARTED, EventType.ERROR_OCCURRED]


def test_failing_handler_does_not_stop_others():
    bus = InterviewEventBus()
    received = []

    def broken(event):
        raise RuntimeError("handler bug")

    bus.subscribe(EventType.SESSION_STARTED, broken)
    bus.subscribe(EventType.SESSION_STARTED, received.append)
    bus.subscribe_all(broken)
    bus.subscribe_all(received.append)

    bus.emit(started())
    assert len(received) == 2


def test_unsubscribe_and_clear():
    bus = InterviewEventBus()
    received = []
    bus.subscribe(EventType.SESSION_STARTED, received.append)
    bus.unsubscribe(EventType.SESSION_STARTED, received.append)
    bus.unsubscribe(EventType.SESSION_STARTED, received.append)
    bus.emit(started())

    bus.subscribe_all(received.append)
    bus.clear_handlers()
    bus.emit(started())
    assert received == []


def test_metrics_count_events():
    metrics = InterviewMetrics()
    for event in [
        started(),
        AnswerSubmittedEvent("s-1", 0.0, 1, "An answer", skipped=False),
        AnswerSubmittedEvent("s-1", 0.0, 3, "", skipped=True),
        SpeechStateChangedEvent("s-1", 0.0, "interviewer_speaking",
                                "interviewer_paused_for_candidate", "speech_growth"),
        SpeechStateChangedEvent("s-1", 0.0, "interviewer_paused_for_candidate",
                                "candidate_speaking", "floor_taken"),
    ]:
        metrics.handle_event(event)

    snapshot = metrics.get_metrics()
    assert snapshot["sessions_started"] == 1
    assert snapshot["answers_submitted"] == 1
    assert snapshot["answers_skipped"] == 1
    assert snapshot["barge_ins"] == 1

    metrics.reset()
    assert set(metrics.get_metrics().values()) == {0}


def test_event_logger_writes_event_line(caplog):
    event_logger = EventLogger(log_level=logging.INFO)
    with caplog.at_level(logging.INFO, logger="event_logger"):
        event_logger.handle_event(started("s-42"))

    assert "session_started" in caplog.text
    assert "s-42" in caplog.text
