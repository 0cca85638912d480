"""
Explicitly owned headless-browser handle.

The browser is launched lazily on first use, reused while connected and
relaunched otherwise. Callers must `close()` it at shutdown.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from playwright.async_api import Browser, Page, Playwright, async_playwright

from pricewatch.logging_utils import log_event

logger = logging.getLogger(__name__)

LAUNCH_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]


class BrowserHandle:
    def __init__(self, *, headless: bool = True) -> None:
        self._headless = headless
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def get_browser(self) -> Browser:
        async with self._lock:
            if self._browser is not None and self._browser.is_connected():
                return self._browser
            if self._playwright is None:
                self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self._headless,
                args=LAUNCH_ARGS,
            )
            log_event(logger, logging.INFO, "browser_launched", headless=self._headless)
            return self._browser

    @asynccontextmanager
    async def new_page(self, **context_options: Any) -> AsyncIterator[Page]:
        """
        Yield a page in a fresh browser context; both are closed on exit.
        """

        browser = await self.get_browser()
        context = await browser.new_context(**context_options)
        try:
            page = await context.new_page()
            yield page
        finally:
            await context.close()

    async def close(self) -> None:
        async with self._lock:
            if self._browser is not None:
                await self._browser.close()
                self._browser = None
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None
        log_event(logger, logging.INFO, "browser_closed")
