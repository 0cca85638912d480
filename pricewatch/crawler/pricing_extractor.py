"""
DOM pricing-schema extraction and the region-aware browser capture built on it.
"""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone

from bs4 import BeautifulSoup, Tag
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, Route
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from pricewatch.crawler.browser import BrowserHandle
from pricewatch.crawler.content import clean_text
from pricewatch.crawler.regions import RegionContext, browser_context_options, detect_currency
from pricewatch.crawler.strategies.browser import classify_browser_error
from pricewatch.domain.crawl import CrawlerSource, CrawlFailure
from pricewatch.domain.pricing import BillingPeriod, PricingPlan, PricingSchema
from pricewatch.failure_codes import CrawlErrorCode
from pricewatch.logging_utils import log_event

logger = logging.getLogger(__name__)

CARD_SELECTORS = (
    "[class*='pricing-card']",
    "[class*='plan-card']",
    "[class*='price-card']",
    "[class*='tier']",
    "[data-plan]",
    "[data-pricing]",
    ".pricing-table > div",
    ".pricing-cards > div",
)
NAME_SELECTOR = "h2, h3, h4, [class*='name'], [class*='title']"
CTA_SELECTOR = "button, a[class*='cta'], a[class*='button'], [class*='action']"
BADGE_SELECTOR = "[class*='badge'], [class*='tag'], [class*='popular'], [class*='recommended']"
FEATURE_SELECTOR = "li, [class*='feature']"
SECTION_SELECTORS = (
    "#pricing",
    "[id*='pricing']",
    "[class*='pricing']",
    "[data-section='pricing']",
    "section:has([class*='price'])",
)

BLOCKED_RESOURCE_TYPES = {"image", "font", "media", "stylesheet"}
BLOCKED_URL_KEYWORDS = (
    "analytics",
    "tracking",
    "ads",
    "pixel",
    "gtm",
    "facebook",
    "twitter",
    "linkedin",
)
# A keyword blocks only at the start of a host or path segment.
BLOCKED_URL_PATTERN = re.compile(
    "/(?:" + "|".join(re.escape(keyword) for keyword in BLOCKED_URL_KEYWORDS) + ")",
    re.IGNORECASE,
)

MIN_CARD_TEXT_LENGTH = 20
MAX_FEATURE_LENGTH = 100
MAX_FEATURES = 10
MAX_FALLBACK_PLANS = 5
SCREENSHOT_QUALITY = 80

MONTHLY_PATTERN = re.compile(r"/\s*mo\b|month", re.IGNORECASE)
YEARLY_PATTERN = re.compile(r"/\s*yr\b|year|annual", re.IGNORECASE)
ONE_TIME_PATTERN = re.compile(r"one.?time|lifetime", re.IGNORECASE)
HIGHLIGHT_BADGE_PATTERN = re.compile(r"popular|recommended|best|featured", re.IGNORECASE)
FREE_PRICE_PATTERN = re.compile(r"^\s*(?:free\b|[$€₹£]\s*0(?:\.00)?\b)", re.IGNORECASE)
CONTACT_PATTERN = re.compile(r"contact|custom|talk to sales|enterprise|let's talk", re.IGNORECASE)
NUMBER_PATTERN = re.compile(r"\d[\d,]*(?:\.\d+)?")


def price_pattern(symbols: tuple[str, ...]) -> re.Pattern[str]:
    """
    Regex matching an amount prefixed by one of `symbols`.
    """

    ordered = sorted(symbols, key=len, reverse=True)
    alternation = "|".join(re.escape(symbol) for symbol in ordered)
    return re.compile(rf"(?:{alternation})\s*[\d,]+(?:\.\d{{2}})?")


def parse_price_numeric(price_raw: str | None) -> float | None:
    """
    Parse a display price; contact-sales and unparseable prices yield None.
    """

    if not price_raw:
        return None
    if FREE_PRICE_PATTERN.search(price_raw):
        return 0.0
    if CONTACT_PATTERN.search(price_raw):
        return None
    match = NUMBER_PATTERN.search(price_raw)
    if match is None:
        return None
    try:
        return float(match.group(0).replace(",", ""))
    except ValueError:
        return None


def detect_billing(text: str) -> BillingPeriod:
    if MONTHLY_PATTERN.search(text):
        return BillingPeriod.MONTHLY
    if YEARLY_PATTERN.search(text):
        return BillingPeriod.YEARLY
    if ONE_TIME_PATTERN.search(text):
        return BillingPeriod.ONE_TIME
    return BillingPeriod.UNKNOWN


def _unique_texts(nodes: list[Tag], *, max_length: int | None = None) -> list[str]:
    seen: set[str] = set()
    texts: list[str] = []
    for node in nodes:
        text = clean_text(node.get_text(" ", strip=True))
        if not text or text in seen:
            continue
        if max_length is not None and len(text) >= max_length:
            continue
        seen.add(text)
        texts.append(text)
    return texts


def _select_cards(soup: BeautifulSoup) -> list[Tag]:
    for selector in CARD_SELECTORS:
        cards = soup.select(selector)
        if len(cards) >= 2:
            return cards
    return []


def _plan_from_card(card: Tag, index: int, pattern: re.Pattern[str]) -> PricingPlan | None:
    text = clean_text(card.get_text(" ", strip=True))
    if len(text) < MIN_CARD_TEXT_LENGTH:
        return None

    name_node = card.select_one(NAME_SELECTOR)
    name = clean_text(name_node.get_text(" ", strip=True)) if name_node is not None else ""
    if not name:
        name = f"Plan {index + 1}"

    match = pattern.search(text)
    if match is not None:
        price_raw: str | None = match.group(0).strip()
    elif re.search(r"\bfree\b", text, re.IGNORECASE):
        price_raw = "Free"
    elif CONTACT_PATTERN.search(text):
        price_raw = "Custom"
    else:
        price_raw = None

    cta_node = card.select_one(CTA_SELECTOR)
    cta = clean_text(cta_node.get_text(" ", strip=True)) if cta_node is not None else None

    return PricingPlan(
        name=name,
        price_raw=price_raw,
        price_numeric=parse_price_numeric(price_raw),
        billing=detect_billing(text),
        features=tuple(
            _unique_texts(card.select(FEATURE_SELECTOR), max_length=MAX_FEATURE_LENGTH)[:MAX_FEATURES]
        ),
        cta=cta or None,
        badges=tuple(_unique_texts(card.select(BADGE_SELECTOR))),
    )


def _is_free_plan(plan: PricingPlan) -> bool:
    if plan.price_raw and FREE_PRICE_PATTERN.search(plan.price_raw):
        return True
    return "free" in plan.name.lower()


def _highlighted_plan(plans: list[PricingPlan]) -> str | None:
    for plan in plans:
        if any(HIGHLIGHT_BADGE_PATTERN.search(badge) for badge in plan.badges):
            return plan.name
    # No badge: fall back to the second card.
    if len(plans) > 1:
        return plans[1].name
    return None


def extract_pricing_schema(
    html: str,
    *,
    region: RegionContext,
    source_url: str,
    captured_at: datetime | None = None,
) -> PricingSchema:
    """
    Build a `PricingSchema` from rendered pricing-page HTML.

    Plan cards come from the first card selector matching at least two
    elements. When no cards are found, bare prices in the page text become
    "Plan N" entries.
    """

    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(["script", "style", "noscript", "template"]):
        if not tag.decomposed:
            tag.decompose()
    pattern = price_pattern(region.currency_symbols)

    plans: list[PricingPlan] = []
    for index, card in enumerate(_select_cards(soup)):
        plan = _plan_from_card(card, index, pattern)
        if plan is not None:
            plans.append(plan)

    if not plans:
        body = soup.find("body") or soup
        body_text = clean_text(body.get_text(" ", strip=True))
        for index, match in enumerate(pattern.finditer(body_text)):
            if index >= MAX_FALLBACK_PLANS:
                break
            price_raw = match.group(0).strip()
            plans.append(
                PricingPlan(
                    name=f"Plan {index + 1}",
                    price_raw=price_raw,
                    price_numeric=parse_price_numeric(price_raw),
                )
            )

    price_text = " ".join(plan.price_raw or "" for plan in plans)
    return PricingSchema(
        plans=tuple(plans),
        has_free_tier=any(_is_free_plan(plan) for plan in plans),
        highlighted_plan=_highlighted_plan(plans),
        currency=detect_currency(price_text, default=region.currency),
        captured_at=captured_at or datetime.now(timezone.utc),
        source_url=source_url,
    )


@dataclass(frozen=True)
class GeoScrapeSuccess:
    schema: PricingSchema
    screenshot: bytes | None
    dom_hash: str
    detected_currency: str
    region: str

    success = True


class GeoPricingScraper:
    """
    Capture a pricing schema as a visitor from one region would see it.
    """

    def __init__(self, *, browser: BrowserHandle, timeout_seconds: float = 30.0) -> None:
        self._browser = browser
        self._timeout_ms = timeout_seconds * 1000

    async def scrape(self, url: str, region: RegionContext) -> GeoScrapeSuccess | CrawlFailure:
        try:
            async with self._browser.new_page(**browser_context_options(region)) as page:
                await page.route("**/*", _block_heavy_requests)
                await page.goto(url, timeout=self._timeout_ms, wait_until="domcontentloaded")
                await page.wait_for_timeout(2000)
                await page.evaluate("window.scrollTo(0, document.body.scrollHeight / 2)")
                await page.wait_for_timeout(1000)
                html = await page.content()
                screenshot = await _capture_pricing_section(page)
        except PlaywrightTimeoutError as exc:
            return CrawlFailure(CrawlErrorCode.TIMEOUT, f"Navigation timed out: {exc}", CrawlerSource.BROWSER)
        except PlaywrightError as exc:
            message = str(exc)
            return CrawlFailure(classify_browser_error(message), message, CrawlerSource.BROWSER)

        schema = extract_pricing_schema(html, region=region, source_url=url)
        if not schema.plans:
            return CrawlFailure(CrawlErrorCode.EMPTY, "No pricing plans detected", CrawlerSource.BROWSER)

        dom_hash = hashlib.sha256(html.encode("utf-8")).hexdigest()[:16]
        log_event(
            logger,
            logging.INFO,
            "geo_pricing_captured",
            url=url,
            region=region.key,
            plans=len(schema.plans),
            currency=schema.currency,
        )
        return GeoScrapeSuccess(
            schema=schema,
            screenshot=screenshot,
            dom_hash=dom_hash,
            detected_currency=schema.currency,
            region=region.key,
        )


def is_blocked_request(url: str, resource_type: str) -> bool:
    return resource_type in BLOCKED_RESOURCE_TYPES or BLOCKED_URL_PATTERN.search(url) is not None


async def _block_heavy_requests(route: Route) -> None:
    request = route.request
    if is_blocked_request(request.url, request.resource_type):
        await route.abort()
        return
    await route.continue_()


async def _capture_pricing_section(page: Page) -> bytes | None:
    for selector in SECTION_SELECTORS:
        locator = page.locator(selector).first
        try:
            if await locator.count() == 0:
                continue
            return await locator.screenshot(type="jpeg", quality=SCREENSHOT_QUALITY)
        except PlaywrightError:
            continue
    try:
        return await page.screenshot(full_page=True, type="jpeg", quality=SCREENSHOT_QUALITY)
    except PlaywrightError as exc:
        log_event(logger, logging.WARNING, "pricing_screenshot_failed", error=str(exc))
        return None
