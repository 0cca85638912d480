"""
tests/test_orchestrator.py

Unit tests for the fetch cascade and its retry policy.

Coverage
--------
- Cost order and first-success short circuit
- Managed tier skipped when unavailable or explicitly bypassed
- Last-tier failure tagged with its source
- Retry backoff schedule (backoff × attempt)
- Terminal final failures end the retry loop
- Terminally failed tiers are not re-invoked on later attempts
"""

from __future__ import annotations

import pytest

from pricewatch.config import CrawlerSettings
from pricewatch.crawler.orchestrator import FetchOrchestrator
from pricewatch.crawler.strategies import FetchStrategy
from pricewatch.domain.crawl import CrawlerSource, CrawlFailure, CrawlResult, CrawlSuccess
from pricewatch.failure_codes import CrawlErrorCode

URL = "https://acme.example/pricing"


class FakeStrategy(FetchStrategy):
    """Replays queued results; the last one repeats once the queue is drained."""

    def __init__(
        self,
        source: CrawlerSource,
        results: list[CrawlResult],
        *,
        call_log: list[str],
        available: bool = True,
    ) -> None:
        self.source = source
        self._results = list(results)
        self._call_log = call_log
        self._available = available
        self.calls = 0
        self.closed = False

    @property
    def is_available(self) -> bool:
        return self._available

    async def fetch(self, url: str) -> CrawlResult:
        self.calls += 1
        self._call_log.append(self.source.value)
        if len(self._results) > 1:
            return self._results.pop(0)
        return self._results[0]

    async def aclose(self) -> None:
        self.closed = True


def _ok(label: str) -> CrawlSuccess:
    return CrawlSuccess(markdown=f"# {label}", raw_text=label, content_hash=label)


def _fail(error: CrawlErrorCode) -> CrawlFailure:
    return CrawlFailure(error=error, message=error.value)


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def call_log() -> list[str]:
    return []


@pytest.fixture()
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def settings() -> CrawlerSettings:
    return CrawlerSettings(managed_api_key="key", retry_attempts=2, retry_backoff_seconds=1.0)


def _orchestrator(
    strategies: list[FetchStrategy],
    settings: CrawlerSettings,
    sleep: RecordingSleep,
) -> FetchOrchestrator:
    return FetchOrchestrator(strategies=strategies, settings=settings, sleep=sleep)


# ---------------------------------------------------------------------------
# Single cascade pass
# ---------------------------------------------------------------------------


class TestFetch:
    @pytest.mark.asyncio
    async def test_first_success_wins(self, call_log, settings, sleep) -> None:
        managed = FakeStrategy(CrawlerSource.MANAGED_API, [_ok("managed")], call_log=call_log)
        html = FakeStrategy(CrawlerSource.HTML, [_ok("html")], call_log=call_log)
        orchestrator = _orchestrator([managed, html], settings, sleep)

        result = await orchestrator.fetch(URL)

        assert isinstance(result, CrawlSuccess)
        assert result.raw_text == "managed"
        assert call_log == ["firecrawl"]

    @pytest.mark.asyncio
    async def test_unavailable_managed_tier_is_skipped(self, call_log, settings, sleep) -> None:
        managed = FakeStrategy(CrawlerSource.MANAGED_API, [_ok("managed")], call_log=call_log, available=False)
        html = FakeStrategy(CrawlerSource.HTML, [_ok("html")], call_log=call_log)

        result = await _orchestrator([managed, html], settings, sleep).fetch(URL)

        assert isinstance(result, CrawlSuccess)
        assert result.raw_text == "html"
        assert managed.calls == 0

    @pytest.mark.asyncio
    async def test_skip_managed_bypasses_paid_tier(self, call_log, settings, sleep) -> None:
        managed = FakeStrategy(CrawlerSource.MANAGED_API, [_ok("managed")], call_log=call_log)
        html = FakeStrategy(CrawlerSource.HTML, [_ok("html")], call_log=call_log)

        result = await _orchestrator([managed, html], settings, sleep).fetch(URL, skip_managed=True)

        assert isinstance(result, CrawlSuccess)
        assert call_log == ["cheerio"]

    @pytest.mark.asyncio
    async def test_blocked_tier_falls_through_to_next_tier(self, call_log, settings, sleep) -> None:
        managed = FakeStrategy(CrawlerSource.MANAGED_API, [_fail(CrawlErrorCode.BLOCKED)], call_log=call_log)
        html = FakeStrategy(CrawlerSource.HTML, [_ok("html")], call_log=call_log)

        result = await _orchestrator([managed, html], settings, sleep).fetch(URL)

        assert isinstance(result, CrawlSuccess)
        assert call_log == ["firecrawl", "cheerio"]

    @pytest.mark.asyncio
    async def test_all_failures_return_last_tier_tagged(self, call_log, settings, sleep) -> None:
        strategies = [
            FakeStrategy(CrawlerSource.MANAGED_API, [_fail(CrawlErrorCode.API_ERROR)], call_log=call_log),
            FakeStrategy(CrawlerSource.HTML, [_fail(CrawlErrorCode.BLOCKED)], call_log=call_log),
            FakeStrategy(CrawlerSource.BROWSER, [_fail(CrawlErrorCode.TIMEOUT)], call_log=call_log),
        ]

        result = await _orchestrator(strategies, settings, sleep).fetch(URL)

        assert isinstance(result, CrawlFailure)
        assert result.error is CrawlErrorCode.TIMEOUT
        assert result.source is CrawlerSource.BROWSER

    @pytest.mark.asyncio
    async def test_no_runnable_tier_is_unknown(self, settings, sleep) -> None:
        result = await _orchestrator([], settings, sleep).fetch(URL)
        assert isinstance(result, CrawlFailure)
        assert result.error is CrawlErrorCode.UNKNOWN
        assert result.message == "All crawlers failed"

    @pytest.mark.asyncio
    async def test_aclose_closes_every_strategy(self, call_log, settings, sleep) -> None:
        strategies = [
            FakeStrategy(CrawlerSource.HTML, [_ok("html")], call_log=call_log),
            FakeStrategy(CrawlerSource.BROWSER, [_ok("browser")], call_log=call_log),
        ]
        await _orchestrator(strategies, settings, sleep).aclose()
        assert all(strategy.closed for strategy in strategies)


# ---------------------------------------------------------------------------
# Retry policy
# ---------------------------------------------------------------------------


class TestFetchWithRetry:
    @pytest.mark.asyncio
    async def test_retryable_failure_is_retried_with_backoff(self, call_log, sleep) -> None:
        settings = CrawlerSettings(retry_attempts=3, retry_backoff_seconds=1.0)
        html = FakeStrategy(
            CrawlerSource.HTML,
            [_fail(CrawlErrorCode.TIMEOUT), _fail(CrawlErrorCode.NETWORK_ERROR), _ok("html")],
            call_log=call_log,
        )

        result = await _orchestrator([html], settings, sleep).fetch_with_retry(URL)

        assert isinstance(result, CrawlSuccess)
        assert html.calls == 3
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_terminal_final_failure_stops_retrying(self, call_log, settings, sleep) -> None:
        strategies = [
            FakeStrategy(CrawlerSource.MANAGED_API, [_fail(CrawlErrorCode.BLOCKED)], call_log=call_log),
            FakeStrategy(CrawlerSource.HTML, [_fail(CrawlErrorCode.EMPTY)], call_log=call_log),
            FakeStrategy(CrawlerSource.BROWSER, [_fail(CrawlErrorCode.BLOCKED)], call_log=call_log),
        ]

        result = await _orchestrator(strategies, settings, sleep).fetch_with_retry(URL)

        assert isinstance(result, CrawlFailure)
        assert result.error is CrawlErrorCode.BLOCKED
        assert call_log == ["firecrawl", "cheerio", "playwright"]
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_blocked_tier_is_not_retried(self, call_log, settings, sleep) -> None:
        managed = FakeStrategy(CrawlerSource.MANAGED_API, [_fail(CrawlErrorCode.BLOCKED)], call_log=call_log)
        html = FakeStrategy(CrawlerSource.HTML, [_fail(CrawlErrorCode.TIMEOUT)], call_log=call_log)
        browser = FakeStrategy(
            CrawlerSource.BROWSER,
            [_fail(CrawlErrorCode.TIMEOUT), _ok("browser")],
            call_log=call_log,
        )

        result = await _orchestrator([managed, html, browser], settings, sleep).fetch_with_retry(URL)

        assert isinstance(result, CrawlSuccess)
        assert result.raw_text == "browser"
        assert call_log == ["firecrawl", "cheerio", "playwright", "cheerio", "playwright"]
        assert managed.calls == 1

    @pytest.mark.asyncio
    async def test_exhausted_attempts_return_last_failure(self, call_log, settings, sleep) -> None:
        html = FakeStrategy(CrawlerSource.HTML, [_fail(CrawlErrorCode.NETWORK_ERROR)], call_log=call_log)

        result = await _orchestrator([html], settings, sleep).fetch_with_retry(URL)

        assert isinstance(result, CrawlFailure)
        assert result.error is CrawlErrorCode.NETWORK_ERROR
        assert result.source is CrawlerSource.HTML
        assert html.calls == 2

    @pytest.mark.asyncio
    async def test_explicit_attempt_count_overrides_settings(self, call_log, settings, sleep) -> None:
        html = FakeStrategy(CrawlerSource.HTML, [_fail(CrawlErrorCode.TIMEOUT)], call_log=call_log)

        await _orchestrator([html], settings, sleep).fetch_with_retry(URL, max_attempts=4)

        assert html.calls == 4
        assert sleep.delays == [1.0, 2.0, 3.0]
