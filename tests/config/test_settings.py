"""Tests for Settings defaults and helpers."""

import pytest
from pydantic import ValidationError

from gpsr_registry.config.settings import Environment, LogLevel, Settings


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("DATABASE_URL", "ENVIRONMENT", "LOG_LEVEL", "DUPLICATE_SUFFIX_LENGTH"):
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    def test_defaults(self, clean_env) -> None:
        settings = Settings(_env_file=None)
        assert settings.DATABASE_URL.startswith("postgresql+asyncpg://")
        assert settings.VERSION_RETRY_MAX_ATTEMPTS == 3
        assert settings.DUPLICATE_SUFFIX_LENGTH == 8
        assert settings.DEFAULT_CLAIM_CONFIDENCE == 50
        assert settings.LOG_LEVEL == LogLevel.INFO
        assert settings.ENVIRONMENT == Environment.DEV
        assert settings.is_production is False

    def test_env_override(self, clean_env, monkeypatch) -> None:
        monkeypatch.setenv("environment", "prod")
        monkeypatch.setenv("DUPLICATE_SUFFIX_LENGTH", "6")
        settings = Settings(_env_file=None)
        assert settings.is_production is True
        assert settings.DUPLICATE_SUFFIX_LENGTH == 6

    def test_bounds(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, DEFAULT_CLAIM_CONFIDENCE=101)
        with pytest.raises(ValidationError):
            Settings(_env_file=None, VERSION_RETRY_MAX_ATTEMPTS=0)

    def test_retry_delay_in_seconds(self) -> None:
        assert Settings(_env_file=None, VERSION_RETRY_BASE_DELAY_MS=250).retry_base_delay_seconds == 0.25

    @pytest.mark.parametrize(("limit", "expected"), [
        (None, 20), (0, 20), (-5, 20), (7, 7), (100, 100), (5000, 100),
    ])
    def test_clamp_limit(self, limit, expected) -> None:
        assert Settings(_env_file=None).clamp_limit(limit) == expected
