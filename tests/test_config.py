"""Tests for environment-driven configuration."""

from pathlib import Path

import pytest

from config import DEFAULT_ANALYZER_MODEL, Config, is_local_model

ENV_KEYS = (
    "ANTHROPIC_API_KEY", "ANALYZER_MODEL", "LANGUAGE", "HN_API_BASE_URL",
    "HTTP_TIMEOUT_SECONDS", "DATA_DIR", "POSTS_DIR", "PRUNE_AFTER_DAYS",
    "MAX_STORIES", "BATCH_SIZE", "BATCH_DELAY_SECONDS", "POLL_INTERVAL_SECONDS",
    "TRENDS_BLACKLIST", "LOG_DIR", "LOG_LEVEL", "LOG_BACKUP_COUNT",
    "LOG_MAX_BYTES", "LOG_FORMAT", "ENABLE_LOGFIRE", "LOGFIRE_TOKEN",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults():
    config = Config.load()
    assert config.analyzer_model == DEFAULT_ANALYZER_MODEL
    assert config.language == "en"
    assert config.data_dir == Path("data")
    assert config.tracker_dir == Path("data") / "tracker"
    assert config.max_stories == 50
    assert config.batch_size == 3
    assert config.trends_blacklist is True
    assert config.enable_logfire is False
    assert config.validate() == "ANTHROPIC_API_KEY environment variable is required"


def test_load_from_environment(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
    monkeypatch.setenv("LANGUAGE", "ZH")
    monkeypatch.setenv("DATA_DIR", "/tmp/hn")
    monkeypatch.setenv("MAX_STORIES", "20")
    monkeypatch.setenv("BATCH_DELAY_SECONDS", "0.5")
    monkeypatch.setenv("HN_API_BASE_URL", "http://localhost:8080/v0/")
    monkeypatch.setenv("TRENDS_BLACKLIST", "off")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("ENABLE_LOGFIRE", "true")
    monkeypatch.setenv("LOGFIRE_TOKEN", "lf-token")

    config = Config.load()

    assert config.language == "zh"
    assert config.data_dir == Path("/tmp/hn")
    assert config.max_stories == 20
    assert config.batch_delay_seconds == 0.5
    assert config.hn_api_base_url == "http://localhost:8080/v0"
    assert config.trends_blacklist is False
    assert config.log_level == "DEBUG"
    assert config.enable_logfire is True
    assert config.logfire_token == "lf-token"
    assert config.validate() is None


def test_invalid_integer(monkeypatch):
    monkeypatch.setenv("BATCH_SIZE", "three")
    with pytest.raises(ValueError, match="BATCH_SIZE"):
        Config.load()


def test_unrecognized_bool_uses_default(monkeypatch):
    monkeypatch.setenv("TRENDS_BLACKLIST", "maybe")
    assert Config.load().trends_blacklist is True


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"language": "fr"}, "LANGUAGE"),
        ({"max_stories": 0}, "MAX_STORIES"),
        ({"batch_size": 6}, "BATCH_SIZE"),
        ({"batch_size": 0}, "BATCH_SIZE"),
        ({"batch_delay_seconds": -1}, "BATCH_DELAY_SECONDS"),
        ({"prune_after_days": 0}, "PRUNE_AFTER_DAYS"),
        ({"poll_interval_seconds": 0}, "POLL_INTERVAL_SECONDS"),
        ({"log_level": "LOUD"}, "LOG_LEVEL"),
        ({"log_format": "xml"}, "LOG_FORMAT"),
    ],
)
def test_validate_rejects(overrides, message):
    config = Config(anthropic_api_key="k", **overrides)
    assert message in config.validate()


def test_local_model_needs_no_key():
    model = "openai:qwen2.5@http://localhost:8080/v1"
    assert is_local_model(model)
    assert not is_local_model("anthropic:claude-3-5-sonnet-latest")
    assert Config(analyzer_model=model).validate() is None
