"""
Scraper tier selection from capture history.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from pricewatch.crawler.regions import RegionContext
from pricewatch.domain.crawl import CrawlerSource

MIN_CONTENT_FOR_CHEAP_TIER = 500
PRICE_NUMBER_PATTERN = re.compile(
    r"\$[\d,]+|€[\d,]+|₹[\d,]+|£[\d,]+|\d+\s*/\s*(?:mo|month|year|yr)",
    re.IGNORECASE,
)


def decide_scraper(
    region: RegionContext,
    *,
    last_source: CrawlerSource | None,
    best_scraper: CrawlerSource | None = None,
) -> CrawlerSource:
    if region.requires_browser:
        return CrawlerSource.BROWSER
    if last_source is None:
        return CrawlerSource.MANAGED_API
    if last_source is CrawlerSource.BROWSER:
        return CrawlerSource.BROWSER
    if best_scraper is not None:
        return best_scraper
    return CrawlerSource.MANAGED_API


def should_upgrade_to_browser(content: str, expected_symbols: Sequence[str]) -> bool:
    """
    True when cheap-tier content looks like it missed client-rendered prices.
    """

    if len(content) < MIN_CONTENT_FOR_CHEAP_TIER:
        return True
    if not PRICE_NUMBER_PATTERN.search(content):
        return True
    return not any(symbol in content for symbol in expected_symbols)


def determine_best_scraper(
    sources: Sequence[CrawlerSource],
    *,
    min_consecutive: int = 2,
) -> CrawlerSource | None:
    """
    The shared tier of the most recent `min_consecutive` captures, if any.

    `sources` is ordered newest first.
    """

    if len(sources) < min_consecutive:
        return None
    recent = sources[:min_consecutive]
    first = recent[0]
    if all(source is first for source in recent):
        return first
    return None
