"""
tests/test_selection.py

Unit tests for scraper tier selection.
"""

from __future__ import annotations

from dataclasses import replace

import pytest

from pricewatch.crawler.regions import get_region_context
from pricewatch.crawler.selection import (
    decide_scraper,
    determine_best_scraper,
    should_upgrade_to_browser,
)
from pricewatch.domain.crawl import CrawlerSource

US = get_region_context("us")


class TestDecideScraper:
    def test_region_requiring_browser_always_uses_browser(self) -> None:
        region = replace(US, requires_browser=True)
        assert decide_scraper(region, last_source=CrawlerSource.HTML) is CrawlerSource.BROWSER

    def test_no_history_starts_with_managed_api(self) -> None:
        assert decide_scraper(US, last_source=None) is CrawlerSource.MANAGED_API

    def test_browser_history_sticks(self) -> None:
        assert decide_scraper(US, last_source=CrawlerSource.BROWSER) is CrawlerSource.BROWSER

    def test_proven_best_scraper_is_reused(self) -> None:
        decision = decide_scraper(
            US,
            last_source=CrawlerSource.HTML,
            best_scraper=CrawlerSource.VISION,
        )
        assert decision is CrawlerSource.VISION

    def test_falls_back_to_managed_api(self) -> None:
        assert decide_scraper(US, last_source=CrawlerSource.HTML) is CrawlerSource.MANAGED_API


class TestShouldUpgradeToBrowser:
    PRICED = "Pro plan $49 per month. " * 30

    def test_short_content_upgrades(self) -> None:
        assert should_upgrade_to_browser("Pro $49/mo", ("$",)) is True

    def test_content_without_prices_upgrades(self) -> None:
        assert should_upgrade_to_browser("Talk to our team about plans. " * 30, ("$",)) is True

    def test_content_missing_expected_symbol_upgrades(self) -> None:
        assert should_upgrade_to_browser(self.PRICED, ("₹", "INR")) is True

    def test_priced_content_with_symbol_stays_cheap(self) -> None:
        assert should_upgrade_to_browser(self.PRICED, ("$", "USD")) is False


class TestDetermineBestScraper:
    def test_consistent_recent_sources_win(self) -> None:
        sources = [CrawlerSource.BROWSER, CrawlerSource.BROWSER, CrawlerSource.HTML]
        assert determine_best_scraper(sources) is CrawlerSource.BROWSER

    def test_mixed_recent_sources_have_no_winner(self) -> None:
        sources = [CrawlerSource.BROWSER, CrawlerSource.HTML, CrawlerSource.HTML]
        assert determine_best_scraper(sources) is None

    @pytest.mark.parametrize("sources", [[], [CrawlerSource.HTML]])
    def test_short_history_has_no_winner(self, sources) -> None:
        assert determine_best_scraper(sources) is None
