"""
pricewatch/config.py

Environment-driven settings for crawling, extraction, currency and alerting.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache

from db.config import load_env_files

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_ELIGIBLE_PATH_PATTERNS = ("/pricing", "/plans", "/features")


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value; blank strings count as unset.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class CrawlerSettings:
    """
    Fetch cascade, timeout and pacing settings.
    """

    managed_api_key: str | None = None
    managed_api_url: str = "https://api.firecrawl.dev/v1/scrape"
    managed_api_timeout_seconds: float = 30.0
    html_timeout_seconds: float = 15.0
    browser_timeout_seconds: float = 30.0
    min_content_length: int = 50
    retry_attempts: int = 2
    retry_backoff_seconds: float = 1.0
    inter_competitor_delay_seconds: float = 3.0
    default_user_agent: str = DEFAULT_USER_AGENT

    @property
    def managed_api_enabled(self) -> bool:
        return bool(self.managed_api_key)


@dataclass(frozen=True)
class VisionSettings:
    """
    Vision-model extraction settings.
    """

    api_key: str | None = None
    model: str = "gpt-4o"
    max_tokens: int = 4000
    temperature: float = 0.1
    screenshot_quality: int = 85
    max_image_width: int = 1200
    compressed_quality: int = 75
    timeout_seconds: float = 60.0
    region_delay_seconds: float = 1.0


@dataclass(frozen=True)
class ExchangeRateSettings:
    url: str = "https://api.exchangerate.host/latest"
    base_currency: str = "USD"
    cache_ttl_seconds: float = 6 * 60 * 60
    timeout_seconds: float = 10.0


@dataclass(frozen=True)
class AlertSettings:
    """
    Default alert gate thresholds.
    """

    min_severity: float = 0.5
    min_price_change_percent: float = 5.0
    cooldown_hours: float = 24.0
    max_alerts_per_run: int = 5


@dataclass(frozen=True)
class GuardrailSettings:
    max_failures_before_pause: int = 3
    failure_cooldown_hours: float = 24.0
    hash_dedup_days: int = 7
    eligible_path_patterns: tuple[str, ...] = field(default=DEFAULT_ELIGIBLE_PATH_PATTERNS)


@lru_cache(maxsize=1)
def get_crawler_settings() -> CrawlerSettings:
    """
    Return cached crawler settings from environment variables.
    """

    return CrawlerSettings(
        managed_api_key=_get_optional_str_env("FIRECRAWL_API_KEY"),
        managed_api_url=_get_str_env("FIRECRAWL_API_URL", "https://api.firecrawl.dev/v1/scrape"),
        managed_api_timeout_seconds=max(1.0, _get_float_env("FIRECRAWL_TIMEOUT_SECONDS", 30.0)),
        html_timeout_seconds=max(1.0, _get_float_env("HTML_FETCH_TIMEOUT_SECONDS", 15.0)),
        browser_timeout_seconds=max(1.0, _get_float_env("BROWSER_TIMEOUT_SECONDS", 30.0)),
        min_content_length=max(1, _get_int_env("MIN_CONTENT_LENGTH", 50)),
        retry_attempts=max(1, _get_int_env("CRAWL_RETRY_ATTEMPTS", 2)),
        retry_backoff_seconds=max(0.0, _get_float_env("CRAWL_RETRY_BACKOFF_SECONDS", 1.0)),
        inter_competitor_delay_seconds=max(
            0.0, _get_float_env("INTER_COMPETITOR_DELAY_SECONDS", 3.0)
        ),
        default_user_agent=_get_str_env("CRAWL_USER_AGENT", DEFAULT_USER_AGENT),
    )


@lru_cache(maxsize=1)
def get_vision_settings() -> VisionSettings:
    """
    Return cached vision extraction settings from environment variables.
    """

    return VisionSettings(
        api_key=_get_optional_str_env("OPENAI_API_KEY"),
        model=_get_str_env("VISION_MODEL", "gpt-4o"),
        max_tokens=max(256, _get_int_env("VISION_MAX_TOKENS", 4000)),
        temperature=max(0.0, _get_float_env("VISION_TEMPERATURE", 0.1)),
        screenshot_quality=min(100, max(1, _get_int_env("VISION_SCREENSHOT_QUALITY", 85))),
        max_image_width=max(200, _get_int_env("VISION_MAX_IMAGE_WIDTH", 1200)),
        compressed_quality=min(100, max(1, _get_int_env("VISION_COMPRESSED_QUALITY", 75))),
        timeout_seconds=max(1.0, _get_float_env("VISION_TIMEOUT_SECONDS", 60.0)),
        region_delay_seconds=max(0.0, _get_float_env("VISION_REGION_DELAY_SECONDS", 1.0)),
    )


@lru_cache(maxsize=1)
def get_exchange_rate_settings() -> ExchangeRateSettings:
    return ExchangeRateSettings(
        url=_get_str_env("EXCHANGE_RATE_URL", "https://api.exchangerate.host/latest"),
        base_currency=_get_str_env("EXCHANGE_RATE_BASE", "USD").upper(),
        cache_ttl_seconds=max(0.0, _get_float_env("EXCHANGE_RATE_CACHE_TTL_SECONDS", 21600.0)),
        timeout_seconds=max(1.0, _get_float_env("EXCHANGE_RATE_TIMEOUT_SECONDS", 10.0)),
    )


@lru_cache(maxsize=1)
def get_alert_settings() -> AlertSettings:
    """
    Return cached alert thresholds from environment variables.
    """

    return AlertSettings(
        min_severity=min(1.0, max(0.0, _get_float_env("ALERT_MIN_SEVERITY", 0.5))),
        min_price_change_percent=max(0.0, _get_float_env("ALERT_MIN_PRICE_CHANGE_PERCENT", 5.0)),
        cooldown_hours=max(0.0, _get_float_env("ALERT_COOLDOWN_HOURS", 24.0)),
        max_alerts_per_run=max(1, _get_int_env("ALERT_MAX_PER_RUN", 5)),
    )


@lru_cache(maxsize=1)
def get_guardrail_settings() -> GuardrailSettings:
    raw_patterns = _get_optional_str_env("CRAWL_ELIGIBLE_PATHS")
    patterns = DEFAULT_ELIGIBLE_PATH_PATTERNS
    if raw_patterns:
        parsed = tuple(part.strip().lower() for part in raw_patterns.split(",") if part.strip())
        patterns = parsed or DEFAULT_ELIGIBLE_PATH_PATTERNS

    return GuardrailSettings(
        max_failures_before_pause=max(1, _get_int_env("CRAWL_MAX_FAILURES", 3)),
        failure_cooldown_hours=max(0.0, _get_float_env("CRAWL_FAILURE_COOLDOWN_HOURS", 24.0)),
        hash_dedup_days=max(0, _get_int_env("CRAWL_HASH_DEDUP_DAYS", 7)),
        eligible_path_patterns=patterns,
    )
