"""
tests/test_config.py

Unit tests for environment-driven settings and database URL resolution.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from db.config import DEFAULT_DATABASE_URL, normalize_database_url, resolve_database_url
from pricewatch.config import (
    DEFAULT_ELIGIBLE_PATH_PATTERNS,
    get_alert_settings,
    get_crawler_settings,
    get_guardrail_settings,
    get_vision_settings,
)

_GETTERS = (get_alert_settings, get_crawler_settings, get_guardrail_settings, get_vision_settings)


@pytest.fixture(autouse=True)
def fresh_settings() -> Iterator[None]:
    for getter in _GETTERS:
        getter.cache_clear()
    yield
    for getter in _GETTERS:
        getter.cache_clear()


class TestSettingsFromEnvironment:
    def test_crawler_settings_read_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FIRECRAWL_API_KEY", "fc-key")
        monkeypatch.setenv("CRAWL_RETRY_ATTEMPTS", "4")
        monkeypatch.setenv("HTML_FETCH_TIMEOUT_SECONDS", "7.5")

        settings = get_crawler_settings()

        assert settings.managed_api_enabled is True
        assert settings.retry_attempts == 4
        assert settings.html_timeout_seconds == 7.5

    def test_blank_managed_key_disables_managed_tier(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FIRECRAWL_API_KEY", "   ")

        assert get_crawler_settings().managed_api_enabled is False

    def test_invalid_numbers_fall_back_to_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CRAWL_RETRY_ATTEMPTS", "many")
        monkeypatch.setenv("ALERT_MIN_SEVERITY", "not-a-float")

        assert get_crawler_settings().retry_attempts == 2
        assert get_alert_settings().min_severity == 0.5

    def test_values_are_clamped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ALERT_MIN_SEVERITY", "3")
        monkeypatch.setenv("ALERT_MAX_PER_RUN", "0")
        monkeypatch.setenv("VISION_SCREENSHOT_QUALITY", "250")

        assert get_alert_settings().min_severity == 1.0
        assert get_alert_settings().max_alerts_per_run == 1
        assert get_vision_settings().screenshot_quality == 100

    def test_settings_are_cached(self, monkeypatch: pytest.MonkeyPatch) -> None:
        first = get_alert_settings()
        monkeypatch.setenv("ALERT_COOLDOWN_HOURS", "1")

        assert get_alert_settings() is first


class TestEligiblePaths:
    def test_comma_list_is_parsed_and_lowercased(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CRAWL_ELIGIBLE_PATHS", " /Pricing , /compare ,, ")

        assert get_guardrail_settings().eligible_path_patterns == ("/pricing", "/compare")

    def test_only_separators_keeps_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CRAWL_ELIGIBLE_PATHS", ", ,")

        assert get_guardrail_settings().eligible_path_patterns == DEFAULT_ELIGIBLE_PATH_PATTERNS


class TestDatabaseUrl:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("postgres://u:p@host/db", "postgresql+psycopg://u:p@host/db"),
            ("postgresql://u:p@host/db", "postgresql+psycopg://u:p@host/db"),
            ("sqlite:///local.db", "sqlite:///local.db"),
        ],
    )
    def test_normalize_database_url(self, raw: str, expected: str) -> None:
        assert normalize_database_url(raw) == expected

    def test_blank_url_defaults_to_sqlite(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "  ")

        assert resolve_database_url() == DEFAULT_DATABASE_URL
