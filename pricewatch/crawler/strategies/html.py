"""
Lightweight HTML strategy: plain HTTP GET, no JavaScript execution.
"""

from __future__ import annotations

import logging

import httpx

from pricewatch.config import CrawlerSettings
from pricewatch.crawler.content import content_hash, extract_markdown, markdown_to_raw_text
from pricewatch.crawler.strategies.base import FetchStrategy
from pricewatch.domain.crawl import CrawlerSource, CrawlResult
from pricewatch.failure_codes import CrawlErrorCode
from pricewatch.logging_utils import log_event

logger = logging.getLogger(__name__)

BLOCKED_STATUS_CODES = {403, 429}
MIN_HTML_LENGTH = 100


class HtmlStrategy(FetchStrategy):
    source = CrawlerSource.HTML

    def __init__(
        self,
        *,
        settings: CrawlerSettings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=settings.html_timeout_seconds,
            follow_redirects=True,
        )
        self.request_headers = {
            "User-Agent": settings.default_user_agent,
            "Accept": "text/html,application/xhtml+xml",
            "Accept-Language": "en-US,en;q=0.9",
        }

    async def fetch(self, url: str) -> CrawlResult:
        try:
            response = await self._client.get(
                url,
                headers=self.request_headers,
                timeout=self._settings.html_timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            return self._failure(CrawlErrorCode.TIMEOUT, f"Request timed out: {exc}")
        except httpx.HTTPError as exc:
            return self._failure(CrawlErrorCode.NETWORK_ERROR, f"Request failed: {exc}")
        except (httpx.InvalidURL, ValueError) as exc:
            # Malformed hosts and ports surface while httpx builds the request.
            return self._failure(CrawlErrorCode.NETWORK_ERROR, f"Invalid URL: {exc}")

        if response.status_code in BLOCKED_STATUS_CODES:
            return self._failure(CrawlErrorCode.BLOCKED, f"HTTP {response.status_code}")
        if not response.is_success:
            return self._failure(CrawlErrorCode.API_ERROR, f"HTTP {response.status_code}")

        html = response.text
        if len(html) < MIN_HTML_LENGTH:
            return self._failure(CrawlErrorCode.EMPTY, "Empty HTML response")

        markdown = extract_markdown(html)
        if len(markdown) < self._settings.min_content_length:
            return self._failure(
                CrawlErrorCode.EMPTY,
                f"Insufficient content extracted ({len(markdown)} chars)",
            )

        raw_text = markdown_to_raw_text(markdown)
        log_event(logger, logging.DEBUG, "html_fetched", url=url, chars=len(markdown))
        return self._success(markdown=markdown, raw_text=raw_text, content_hash=content_hash(raw_text))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
