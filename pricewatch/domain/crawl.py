"""
pricewatch/domain/crawl.py

Tagged success/failure results returned by every fetch boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from pricewatch.failure_codes import CrawlErrorCode


class CrawlerSource(str, Enum):
    MANAGED_API = "firecrawl"
    HTML = "cheerio"
    BROWSER = "playwright"
    VISION = "vision"


@dataclass(frozen=True)
class CrawlSuccess:
    """
    Normalized page content from one strategy.
    """

    markdown: str
    raw_text: str
    content_hash: str
    source: CrawlerSource | None = None

    success = True


@dataclass(frozen=True)
class CrawlFailure:
    error: CrawlErrorCode
    message: str
    source: CrawlerSource | None = None

    success = False


CrawlResult = Union[CrawlSuccess, CrawlFailure]
