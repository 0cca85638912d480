"""
Headless-browser strategy: renders JavaScript, scrolls, and flips pricing toggles.
"""

from __future__ import annotations

import logging

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from pricewatch.config import CrawlerSettings
from pricewatch.crawler.browser import BrowserHandle
from pricewatch.crawler.content import content_hash, extract_markdown, markdown_to_raw_text
from pricewatch.crawler.strategies.base import FetchStrategy
from pricewatch.domain.crawl import CrawlerSource, CrawlResult
from pricewatch.failure_codes import CrawlErrorCode
from pricewatch.logging_utils import log_event

logger = logging.getLogger(__name__)

VIEWPORT = {"width": 1280, "height": 800}
TOGGLE_SELECTORS = (
    "[class*='toggle']",
    "[class*='switch']",
    "button:has-text('Monthly')",
    "button:has-text('Yearly')",
)
SETTLE_MS = 3000
SCROLL_SETTLE_MS = 1500
TOGGLE_VISIBLE_TIMEOUT_MS = 500


def classify_browser_error(message: str) -> CrawlErrorCode:
    if "Timeout" in message:
        return CrawlErrorCode.TIMEOUT
    lowered = message.lower()
    if "403" in lowered or "blocked" in lowered:
        return CrawlErrorCode.BLOCKED
    return CrawlErrorCode.UNKNOWN


class BrowserStrategy(FetchStrategy):
    source = CrawlerSource.BROWSER

    def __init__(self, *, settings: CrawlerSettings, browser: BrowserHandle) -> None:
        self._settings = settings
        self._browser = browser

    async def fetch(self, url: str) -> CrawlResult:
        try:
            async with self._browser.new_page(
                viewport=VIEWPORT,
                user_agent=self._settings.default_user_agent,
            ) as page:
                html = await self._render(page, url)
        except PlaywrightTimeoutError as exc:
            return self._failure(CrawlErrorCode.TIMEOUT, f"Navigation timed out: {exc}")
        except PlaywrightError as exc:
            message = str(exc)
            return self._failure(classify_browser_error(message), message)

        markdown = extract_markdown(
            html,
            ascii_filter=True,
            extended_pricing=True,
            text_fallback=True,
        )
        if len(markdown) < self._settings.min_content_length:
            return self._failure(
                CrawlErrorCode.EMPTY,
                f"Insufficient content extracted ({len(markdown)} chars)",
            )

        raw_text = markdown_to_raw_text(markdown)
        log_event(logger, logging.DEBUG, "browser_fetched", url=url, chars=len(markdown))
        return self._success(markdown=markdown, raw_text=raw_text, content_hash=content_hash(raw_text))

    async def _render(self, page: Page, url: str) -> str:
        timeout_ms = self._settings.browser_timeout_seconds * 1000
        await page.goto(url, timeout=timeout_ms, wait_until="networkidle")
        await page.wait_for_timeout(SETTLE_MS)
        await page.evaluate("window.scrollTo(0, document.body.scrollHeight / 2)")
        await page.wait_for_timeout(SCROLL_SETTLE_MS)
        await self._click_pricing_toggle(page)
        return await page.content()

    async def _click_pricing_toggle(self, page: Page) -> None:
        for selector in TOGGLE_SELECTORS:
            toggle = page.locator(selector).first
            try:
                await toggle.wait_for(state="visible", timeout=TOGGLE_VISIBLE_TIMEOUT_MS)
                await toggle.click(timeout=TOGGLE_VISIBLE_TIMEOUT_MS)
            except PlaywrightError:
                # Toggles are optional; absence is the common case.
                continue
            await page.wait_for_timeout(TOGGLE_VISIBLE_TIMEOUT_MS)
            log_event(logger, logging.DEBUG, "pricing_toggle_clicked", selector=selector)
            return
