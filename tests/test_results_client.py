import pytest
import requests

from interview_engine.infrastructure.data.results import HttpResultsClient
from interview_engine.interview.errors import PersistenceError
from interview_engine.interview.models import Role, TranscriptEntry


class FakeResponse:
    def __init__(self, status_code=200, text=""):
        self.status_code = status_code
        self.text = text


@pytest.fixture
def transcript():
    return [
        TranscriptEntry(Role.INTERVIEWER, "Why this role?", timestamp=1.0),
        TranscriptEntry(Role.CANDIDATE, "I like the team.", timestamp=2.0),
    ]


def test_posts_score_and_transcript(monkeypatch, transcript):
    calls = []

    def fake_post(url, headers=None, json=None, timeout=None):
        calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        return FakeResponse(201)

    monkeypatch.setattr(requests, "post", fake_post)
    client = HttpResultsClient("https://hiring.test/api/", token="secret", timeout=5)

    client.submit_interview_result("app-3", 88, transcript)

    assert calls[0]["url"] == "https://hiring.test/api/applications/app-3/interview-result"
    assert calls[0]["headers"]["Authorization"] == "Bearer secret"
    assert calls[0]["timeout"] == 5
    assert calls[0]["json"] == {
        "interview_score": 88,
        "transcript": [
            {"role": "interviewer", "text": "Why this role?", "timestamp": 1.0},
            {"role": "candidate", "text": "I like the team.", "timestamp": 2.0},
        ],
    }


def test_no_auth_header_without_token(monkeypatch, transcript):
    seen = {}

    def fake_post(url, headers=None, json=None, timeout=None):
        seen.update(headers)
        return FakeResponse(200)

    monkeypatch.setattr(requests, "post", fake_post)
    HttpResultsClient("https://hiring.test/api").submit_interview_result("app-3", 70, transcript)
    assert "Authorization" not in seen


def test_error_status_raises(monkeypatch, transcript):
    monkeypatch.setattr(requests, "post", lambda *a, **kw: FakeResponse(503, "maintenance"))
    client = HttpResultsClient("https://hiring.test/api")

    with pytest.raises(PersistenceError, match="503"):
        client.submit_interview_result("app-3", 70, transcript)


def test_network_error_raises(monkeypatch, transcript):
    def fake_post(*args, **kwargs):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(requests, "post", fake_post)
    client = HttpResultsClient("https://hiring.test/api")

    with pytest.raises(PersistenceError, match="Could not reach"):
        client.submit_interview_result("app-3", 70, transcript)
