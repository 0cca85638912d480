"""
Fetch strategy exports.
"""

from pricewatch.crawler.strategies.base import FetchStrategy
from pricewatch.crawler.strategies.browser import BrowserStrategy
from pricewatch.crawler.strategies.html import HtmlStrategy
from pricewatch.crawler.strategies.managed_api import ManagedApiStrategy

__all__ = ["BrowserStrategy", "FetchStrategy", "HtmlStrategy", "ManagedApiStrategy"]
