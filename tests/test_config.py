"""Tests for environment-driven settings."""

import pytest

from secscan.config import Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("OPENAI_API_KEY", "OPENAI_MODEL", "GOOGLE_SAFE_BROWSING_API_KEY", "SCANNER_TIMEOUT",
                 "OBSERVATORY_MAX_ATTEMPTS", "CORS_ORIGINS", "LOG_LEVEL", "CRAWLER_DELAY",
                 "SCANNER_USER_AGENT", "CRAWLER_VERIFY_TLS"):
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = Settings.from_env()

    assert settings.openai_api_key is None
    assert settings.safe_browsing_api_key is None
    assert settings.openai_model == "gpt-4o-mini"
    assert settings.scanner_timeout == 120.0
    assert settings.observatory_max_attempts == 30
    assert settings.crawler_delay == 0.2
    assert settings.crawler_verify_tls is True
    assert settings.user_agent.startswith("SecScan-Security-Scanner")


def test_values_come_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-live-123")
    monkeypatch.setenv("GOOGLE_SAFE_BROWSING_API_KEY", "AIza-test")
    monkeypatch.setenv("SCANNER_TIMEOUT", "30")
    monkeypatch.setenv("OBSERVATORY_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example,")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    settings = Settings.from_env()

    assert settings.openai_api_key == "sk-live-123"
    assert settings.safe_browsing_api_key == "AIza-test"
    assert settings.scanner_timeout == 30.0
    assert settings.observatory_max_attempts == 5
    assert settings.cors_origins == ["https://a.example", "https://b.example"]
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("value", ["", "   ", "sk-your-key-here", "your-safe-browsing-key"])
def test_placeholder_keys_count_as_missing(monkeypatch, value) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", value)
    monkeypatch.setenv("GOOGLE_SAFE_BROWSING_API_KEY", value)

    settings = Settings.from_env()

    assert settings.openai_api_key is None
    assert settings.safe_browsing_api_key is None


def test_crawler_transport_settings(monkeypatch) -> None:
    monkeypatch.setenv("SCANNER_USER_AGENT", "AgencyBot/2.0")
    monkeypatch.setenv("CRAWLER_VERIFY_TLS", "false")

    settings = Settings.from_env()

    assert settings.user_agent == "AgencyBot/2.0"
    assert settings.crawler_verify_tls is False
