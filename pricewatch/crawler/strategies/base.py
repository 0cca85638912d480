"""
Base fetch strategy abstraction.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pricewatch.domain.crawl import CrawlerSource, CrawlFailure, CrawlResult, CrawlSuccess
from pricewatch.failure_codes import CrawlErrorCode


class FetchStrategy(ABC):
    """
    One tier of the fetch cascade.

    `fetch` never raises: every failure path returns a `CrawlFailure`.
    """

    source: CrawlerSource

    @property
    def is_available(self) -> bool:
        return True

    @abstractmethod
    async def fetch(self, url: str) -> CrawlResult:
        """
        Fetch `url` and return normalized content or a typed failure.
        """

    async def aclose(self) -> None:
        return None

    def _failure(self, error: CrawlErrorCode, message: str) -> CrawlFailure:
        return CrawlFailure(error=error, message=message, source=self.source)

    def _success(self, *, markdown: str, raw_text: str, content_hash: str) -> CrawlSuccess:
        return CrawlSuccess(
            markdown=markdown,
            raw_text=raw_text,
            content_hash=content_hash,
            source=self.source,
        )
