"""Tests for environment-driven settings."""

from pathlib import Path

import pytest

from infinite_adventure.config import Settings
from infinite_adventure.llm import EchoModel, GeminiClient

ENV_VARS = [
    "GEMINI_API_KEY",
    "GEMINI_TEXT_MODEL",
    "GEMINI_IMAGE_MODEL",
    "GEMINI_BASE_URL",
    "REQUEST_TIMEOUT",
    "RETRY_MAX_ATTEMPTS",
    "RETRY_BASE_DELAY",
    "RETRY_MULTIPLIER",
    "RETRY_MAX_JITTER",
    "DATA_DIR",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path) -> Path:
    # setenv first so teardown also undoes anything load_dotenv writes
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return tmp_path / "missing.env"


def test_defaults(clean_env: Path) -> None:
    settings = Settings.from_env(clean_env)
    assert settings.api_key == ""
    assert settings.max_attempts == 4
    assert settings.retry_base_delay == 3.0
    assert settings.retry_multiplier == 1.5
    assert isinstance(settings.build_model(), EchoModel)


def test_env_overrides(clean_env: Path, monkeypatch) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "abc")
    monkeypatch.setenv("GEMINI_TEXT_MODEL", "gemini-test")
    monkeypatch.setenv("RETRY_MAX_ATTEMPTS", "2")
    monkeypatch.setenv("REQUEST_TIMEOUT", "5")
    monkeypatch.setenv("DATA_DIR", "/tmp/saves")
    settings = Settings.from_env(clean_env)
    assert settings.text_model == "gemini-test"
    assert settings.data_dir == Path("/tmp/saves")
    model = settings.build_model()
    assert isinstance(model, GeminiClient)
    assert model._text_model == "gemini-test"


def test_env_file_is_read(clean_env: Path, tmp_path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("GEMINI_IMAGE_MODEL=imagen-test\nRETRY_MAX_JITTER=0\n")
    settings = Settings.from_env(env_file)
    assert settings.image_model == "imagen-test"
    assert settings.retry_max_jitter == 0


def test_retry_policy(clean_env: Path, monkeypatch) -> None:
    monkeypatch.setenv("RETRY_MAX_ATTEMPTS", "6")
    monkeypatch.setenv("RETRY_BASE_DELAY", "0.5")
    policy = Settings.from_env(clean_env).retry_policy()
    assert policy.max_attempts == 6
    assert policy.base_delay == 0.5
    assert policy.timeout == 90.0
