"""
Managed scraping API strategy (Firecrawl over HTTPS).
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from pricewatch.config import CrawlerSettings
from pricewatch.crawler.content import content_hash, markdown_to_raw_text
from pricewatch.crawler.strategies.base import FetchStrategy
from pricewatch.domain.crawl import CrawlerSource, CrawlResult
from pricewatch.failure_codes import CrawlErrorCode
from pricewatch.logging_utils import log_event

logger = logging.getLogger(__name__)


class ManagedApiStrategy(FetchStrategy):
    """
    Highest-quality tier; costs money and only runs when an API key is configured.
    """

    source = CrawlerSource.MANAGED_API

    def __init__(
        self,
        *,
        settings: CrawlerSettings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.managed_api_timeout_seconds)

    @property
    def is_available(self) -> bool:
        return self._settings.managed_api_enabled

    async def fetch(self, url: str) -> CrawlResult:
        if not self._settings.managed_api_key:
            return self._failure(CrawlErrorCode.API_ERROR, "FIRECRAWL_API_KEY is not configured")

        payload = {"url": url, "formats": ["markdown"], "onlyMainContent": True}
        headers = {
            "Authorization": f"Bearer {self._settings.managed_api_key}",
            "Content-Type": "application/json",
        }
        try:
            response = await self._client.post(
                self._settings.managed_api_url,
                json=payload,
                headers=headers,
                timeout=self._settings.managed_api_timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            return self._failure(CrawlErrorCode.TIMEOUT, f"Firecrawl request timed out: {exc}")
        except httpx.HTTPError as exc:
            return self._failure(CrawlErrorCode.NETWORK_ERROR, f"Firecrawl request failed: {exc}")

        if response.status_code == 403 or response.status_code == 429:
            return self._failure(CrawlErrorCode.BLOCKED, f"Firecrawl blocked: HTTP {response.status_code}")
        if not response.is_success:
            message = f"Firecrawl HTTP {response.status_code}: {response.text[:200]}"
            if "blocked" in message.lower():
                return self._failure(CrawlErrorCode.BLOCKED, message)
            return self._failure(CrawlErrorCode.API_ERROR, message)

        try:
            body = response.json()
        except ValueError:
            return self._failure(CrawlErrorCode.API_ERROR, "Firecrawl returned a non-JSON body")

        if isinstance(body, dict) and body.get("success") is False:
            error_text = str(body.get("error") or "Firecrawl reported failure")
            lowered = error_text.lower()
            if "403" in lowered or "blocked" in lowered:
                return self._failure(CrawlErrorCode.BLOCKED, error_text)
            if "timeout" in lowered or "timed out" in lowered:
                return self._failure(CrawlErrorCode.TIMEOUT, error_text)
            return self._failure(CrawlErrorCode.UNKNOWN, error_text)

        markdown = self._extract_markdown(body)
        if markdown is None:
            return self._failure(CrawlErrorCode.API_ERROR, "Firecrawl returned empty result")

        markdown = markdown.strip()
        if len(markdown) < self._settings.min_content_length:
            return self._failure(
                CrawlErrorCode.EMPTY,
                f"Insufficient content extracted ({len(markdown)} chars)",
            )

        raw_text = markdown_to_raw_text(markdown, strip_links=True)
        log_event(logger, logging.DEBUG, "managed_api_fetched", url=url, chars=len(markdown))
        return self._success(markdown=markdown, raw_text=raw_text, content_hash=content_hash(raw_text))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @staticmethod
    def _extract_markdown(payload: Any) -> str | None:
        """Pull markdown out of the response envelope, whichever shape it takes."""

        if not isinstance(payload, dict):
            return None
        if isinstance(payload.get("markdown"), str):
            return payload["markdown"]

        data = payload.get("data")
        if isinstance(data, dict):
            if isinstance(data.get("markdown"), str):
                return data["markdown"]
            document = data.get("document")
            if isinstance(document, dict) and isinstance(document.get("markdown"), str):
                return document["markdown"]
        return None
