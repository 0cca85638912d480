"""
Region context provider.

Maps a logical region key to the visitor profile (locale, timezone,
geolocation, currency symbols and language headers) used to elicit
region-specific pricing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

_CHROME_VERSION = "Chrome/120.0.0.0 Safari/537.36"
_WEBKIT = "AppleWebKit/537.36 (KHTML, like Gecko)"

BROWSER_VIEWPORT = {"width": 1440, "height": 900}
DEVICE_SCALE_FACTOR = 2

SYMBOL_TO_CURRENCY = {
    "$": "USD",
    "€": "EUR",
    "₹": "INR",
    "Rs": "INR",
    "£": "GBP",
}


@dataclass(frozen=True)
class RegionContext:
    """
    Simulated-visitor profile for one region.
    """

    key: str
    locale: str
    timezone: str
    latitude: float
    longitude: float
    currency: str
    currency_symbols: tuple[str, ...]
    accept_language: str
    user_agent: str
    requires_browser: bool = False

    @property
    def geolocation(self) -> dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


REGIONS: dict[str, RegionContext] = {
    "us": RegionContext(
        key="us",
        locale="en-US",
        timezone="America/New_York",
        latitude=40.7128,
        longitude=-74.006,
        currency="USD",
        currency_symbols=("$", "USD"),
        accept_language="en-US,en;q=0.9",
        user_agent=f"Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) {_WEBKIT} {_CHROME_VERSION}",
    ),
    "in": RegionContext(
        key="in",
        locale="en-IN",
        timezone="Asia/Kolkata",
        latitude=19.076,
        longitude=72.8777,
        currency="INR",
        currency_symbols=("₹", "INR", "Rs"),
        accept_language="en-IN,en;q=0.9,hi;q=0.8",
        user_agent=f"Mozilla/5.0 (Windows NT 10.0; Win64; x64) {_WEBKIT} {_CHROME_VERSION}",
    ),
    "eu": RegionContext(
        key="eu",
        locale="en-DE",
        timezone="Europe/Berlin",
        latitude=52.52,
        longitude=13.405,
        currency="EUR",
        currency_symbols=("€", "EUR"),
        accept_language="en-DE,en;q=0.9,de;q=0.8",
        user_agent=f"Mozilla/5.0 (X11; Linux x86_64) {_WEBKIT} {_CHROME_VERSION}",
    ),
    "global": RegionContext(
        key="global",
        locale="en-US",
        timezone="UTC",
        latitude=0.0,
        longitude=0.0,
        currency="USD",
        currency_symbols=("$", "€", "₹", "£"),
        accept_language="en-US,en;q=0.9",
        user_agent=f"Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) {_WEBKIT} {_CHROME_VERSION}",
    ),
}

DEFAULT_REGION = "global"


def get_region_context(key: str | None) -> RegionContext:
    """
    Return the context for `key`, falling back to the global profile.
    """

    normalized = (key or "").strip().lower()
    return REGIONS.get(normalized, REGIONS[DEFAULT_REGION])


def expected_currency(key: str | None) -> str:
    return get_region_context(key).currency


def currency_symbols(key: str | None) -> tuple[str, ...]:
    return get_region_context(key).currency_symbols


def browser_context_options(region: RegionContext) -> dict[str, Any]:
    """
    Keyword arguments for Playwright's `browser.new_context(...)`.
    """

    return {
        "locale": region.locale,
        "timezone_id": region.timezone,
        "geolocation": region.geolocation,
        "permissions": ["geolocation"],
        "user_agent": region.user_agent,
        "extra_http_headers": {"Accept-Language": region.accept_language},
        "viewport": dict(BROWSER_VIEWPORT),
        "device_scale_factor": DEVICE_SCALE_FACTOR,
    }


def detect_currency(text: str, default: str = "USD") -> str:
    """
    Return the ISO code of the first known currency symbol found in `text`.
    """

    for symbol, code in SYMBOL_TO_CURRENCY.items():
        if symbol in text:
            return code
    return default
