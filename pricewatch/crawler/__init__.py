"""
Fetching, extraction and crawl gating.
"""

from pricewatch.crawler.browser import BrowserHandle
from pricewatch.crawler.guardrails import CrawlGuardrails
from pricewatch.crawler.orchestrator import FetchOrchestrator, build_fetch_orchestrator
from pricewatch.crawler.regions import RegionContext, get_region_context

__all__ = [
    "BrowserHandle",
    "CrawlGuardrails",
    "FetchOrchestrator",
    "RegionContext",
    "build_fetch_orchestrator",
    "get_region_context",
]
