import pytest

from interview_engine.config import EngineSettings, get_config


def test_placeholder_results_url_is_rejected(monkeypatch):
    monkeypatch.delenv("INTERVIEW_RESULTS_URL", raising=False)
    with pytest.raises(ValueError):
        get_config()


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("INTERVIEW_RESULTS_URL", "https://hiring.test/api/")
    monkeypatch.setenv("INTERVIEW_RESULTS_TOKEN", "t0k")
    monkeypatch.setenv("INTERVIEW_CLIPS_DIR", "/srv/clips")

    config = get_config()

    assert config.results_api_url == "https://hiring.test/api"
    assert config.results_api_token == "t0k"
    assert config.clips_dir == "/srv/clips"
    assert isinstance(config.engine_settings(), EngineSettings)


def test_default_timings():
    settings = EngineSettings()
    assert settings.debounce_seconds == 1.5
    assert settings.start_timeout("hi") == 1.0
    assert settings.start_timeout("x" * 100) == pytest.approx(2.0)
    assert settings.safety_timeout("x" * 50) == pytest.approx(5.0)
    assert settings.max_recognition_restarts == 3
