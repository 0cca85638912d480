"""
Cost-ordered fetch cascade with retry.

Tiers run in cost order: managed API (only when configured), plain HTML,
then the headless browser. The first success wins. When every tier fails,
the last tier's failure is returned tagged with that tier.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence

from pricewatch.config import CrawlerSettings
from pricewatch.crawler.browser import BrowserHandle
from pricewatch.crawler.strategies import (
    BrowserStrategy,
    FetchStrategy,
    HtmlStrategy,
    ManagedApiStrategy,
)
from pricewatch.domain.crawl import CrawlerSource, CrawlFailure, CrawlResult, CrawlSuccess
from pricewatch.failure_codes import CrawlErrorCode, is_terminal
from pricewatch.logging_utils import log_event

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


class FetchOrchestrator:
    """
    Compose fetch strategies into a fallback cascade.
    """

    def __init__(
        self,
        *,
        strategies: Sequence[FetchStrategy],
        settings: CrawlerSettings,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.strategies = list(strategies)
        self.settings = settings
        self._sleep = sleep

    async def fetch(self, url: str, *, skip_managed: bool = False) -> CrawlResult:
        """
        Run one pass of the cascade for `url`.

        Args:
            url: Page to fetch.
            skip_managed: Bypass the paid managed-API tier for this call.

        Returns:
            The first `CrawlSuccess`, else the failure of the last tier tried.
        """

        result, _ = await self._run_cascade(url, skip_managed=skip_managed, skip_sources=set())
        return result

    async def fetch_with_retry(
        self,
        url: str,
        *,
        max_attempts: int | None = None,
        skip_managed: bool = False,
    ) -> CrawlResult:
        """
        Retry the whole cascade with a delay of `retry_backoff_seconds × attempt`.

        A BLOCKED or EMPTY final result ends the loop immediately. A tier that
        failed with BLOCKED or EMPTY is not invoked again on later attempts.
        """

        attempts = self.settings.retry_attempts if max_attempts is None else max_attempts
        terminal_sources: set[CrawlerSource] = set()
        last_result: CrawlResult | None = None

        for attempt in range(max(1, attempts)):
            if attempt > 0:
                delay = self.settings.retry_backoff_seconds * attempt
                log_event(
                    logger,
                    logging.INFO,
                    "fetch_retry_scheduled",
                    url=url,
                    attempt=attempt + 1,
                    delay_seconds=delay,
                )
                await self._sleep(delay)

            result, newly_terminal = await self._run_cascade(
                url,
                skip_managed=skip_managed,
                skip_sources=terminal_sources,
            )
            terminal_sources |= newly_terminal
            last_result = result
            if isinstance(result, CrawlSuccess):
                return result
            if is_terminal(result.error):
                log_event(
                    logger,
                    logging.INFO,
                    "fetch_retry_skipped",
                    url=url,
                    error=result.error.value,
                    attempt=attempt + 1,
                )
                break

        if last_result is None:
            return CrawlFailure(error=CrawlErrorCode.UNKNOWN, message="All retry attempts failed")
        return last_result

    async def _run_cascade(
        self,
        url: str,
        *,
        skip_managed: bool,
        skip_sources: set[CrawlerSource],
    ) -> tuple[CrawlResult, set[CrawlerSource]]:
        terminal: set[CrawlerSource] = set()
        last_failure: CrawlFailure | None = None

        for strategy in self.strategies:
            if strategy.source in skip_sources:
                continue
            if strategy.source is CrawlerSource.MANAGED_API and (
                skip_managed or not strategy.is_available
            ):
                continue

            result = await strategy.fetch(url)
            if isinstance(result, CrawlSuccess):
                log_event(
                    logger,
                    logging.INFO,
                    "fetch_succeeded",
                    url=url,
                    source=strategy.source.value,
                    chars=len(result.markdown),
                )
                return result, terminal

            last_failure = CrawlFailure(
                error=result.error,
                message=result.message,
                source=strategy.source,
            )
            if is_terminal(result.error):
                terminal.add(strategy.source)
            log_event(
                logger,
                logging.WARNING,
                "fetch_tier_failed",
                url=url,
                source=strategy.source.value,
                error=result.error.value,
                message=result.message,
            )

        if last_failure is None:
            return CrawlFailure(error=CrawlErrorCode.UNKNOWN, message="All crawlers failed"), terminal
        return last_failure, terminal

    async def aclose(self) -> None:
        for strategy in self.strategies:
            await strategy.aclose()


def build_fetch_orchestrator(
    *,
    settings: CrawlerSettings,
    browser: BrowserHandle,
) -> FetchOrchestrator:
    strategies: list[FetchStrategy] = [
        ManagedApiStrategy(settings=settings),
        HtmlStrategy(settings=settings),
        BrowserStrategy(settings=settings, browser=browser),
    ]
    return FetchOrchestrator(strategies=strategies, settings=settings)
