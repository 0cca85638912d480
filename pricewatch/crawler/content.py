"""
BeautifulSoup-based content extraction shared by the HTML and browser strategies.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from bs4 import BeautifulSoup, NavigableString, Tag

from pricewatch.diff.normalize import hash_text, normalize_text

NOISE_TAGS = ("script", "style", "noscript", "iframe", "nav", "footer", "header", "aside")
NOISE_SELECTORS = (
    "[class*='cookie']",
    "[class*='banner']",
    "[class*='popup']",
    "[id*='cookie']",
    "[aria-hidden='true']",
    ".sr-only",
    ".visually-hidden",
)
PRICING_SELECTORS = (
    "[class*='price']",
    "[class*='plan']",
    "[class*='tier']",
    "[data-plan]",
)
EXTENDED_PRICING_SELECTORS = (
    "[class*='pricing']",
    "[class*='card']",
    "[data-price]",
)

PRICE_LEAF_PATTERN = re.compile(r"\$[\d,]+|\d+\s*/\s*mo|free|enterprise|contact", re.IGNORECASE)
PRICING_TEXT_PATTERN = re.compile(r"\$[\d,]+|\d+\s*/\s*mo|free|credits|month|year", re.IGNORECASE)

MIN_LINE_LENGTH = 10
MIN_PARAGRAPH_LENGTH = 20
MIN_FALLBACK_TEXT_LENGTH = 15
FALLBACK_LINE_THRESHOLD = 10

_WHITESPACE = re.compile(r"\s+")
_SYMBOL_CHARS = set("':;-_=+^\".,|")
_DOT_DASH_CHARS = set(".'-_:=+")
_REPEATED_CHAR = re.compile(r"(.)\1{4,}")
_MARKDOWN_LINK = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_MARKDOWN_SYNTAX = re.compile(r"[#*_~`|]")


def clean_text(value: str) -> str:
    return _WHITESPACE.sub(" ", value).strip()


def is_ascii_art(text: str) -> bool:
    """
    True when `text` looks like decorative glyphs rather than prose.
    """

    letters = sum(1 for char in text if char.isascii() and char.isalpha())
    symbols = sum(1 for char in text if char in _SYMBOL_CHARS)
    if symbols > letters * 2 and len(text) > 50:
        return True
    if _REPEATED_CHAR.search(text):
        return True
    dot_dash = sum(1 for char in text if char in _DOT_DASH_CHARS)
    return len(text) > 30 and dot_dash / len(text) > 0.5


def remove_noise(soup: BeautifulSoup) -> None:
    for tag in soup.find_all(list(NOISE_TAGS)):
        # Nested noise is destroyed together with its ancestor.
        if not tag.decomposed:
            tag.decompose()
    for selector in NOISE_SELECTORS:
        for node in soup.select(selector):
            if not node.decomposed:
                node.decompose()


class _LineCollector:
    def __init__(self, *, ascii_filter: bool) -> None:
        self._ascii_filter = ascii_filter
        self._seen: set[str] = set()
        self.lines: list[str] = []

    def add(self, text: str) -> None:
        cleaned = clean_text(text)
        if len(cleaned) <= MIN_LINE_LENGTH or cleaned in self._seen:
            return
        if self._ascii_filter and is_ascii_art(cleaned):
            return
        self._seen.add(cleaned)
        self.lines.append(cleaned)


def _leaf_elements(root: Tag) -> Iterable[Tag]:
    for node in root.find_all(True):
        if node.find(True) is None:
            yield node


def extract_markdown(
    html: str,
    *,
    ascii_filter: bool = False,
    extended_pricing: bool = False,
    text_fallback: bool = False,
) -> str:
    """
    Build a deduplicated markdown-like representation of a page.

    Headings come first, then pricing-like elements, paragraphs and list
    items, table rows and finally price-bearing leaf text. The browser
    strategy enables the ASCII-art filter, the extra pricing selectors and
    the visible-text fallback.
    """

    soup = BeautifulSoup(html, "html.parser")
    remove_noise(soup)
    collector = _LineCollector(ascii_filter=ascii_filter)

    for level in range(1, 7):
        for heading in soup.find_all(f"h{level}"):
            text = clean_text(heading.get_text(" ", strip=True))
            if text:
                collector.add(f"{'#' * level} {text}")

    for selector in PRICING_SELECTORS:
        for node in soup.select(selector):
            collector.add(node.get_text(" ", strip=True))

    if extended_pricing:
        for selector in EXTENDED_PRICING_SELECTORS:
            for node in soup.select(selector):
                text = node.get_text(" ", strip=True)
                if PRICING_TEXT_PATTERN.search(text):
                    collector.add(text)

    for node in soup.find_all(["p", "li"]):
        text = clean_text(node.get_text(" ", strip=True))
        if len(text) > MIN_PARAGRAPH_LENGTH:
            collector.add(text)

    for row in soup.find_all("tr"):
        cells = [
            clean_text(cell.get_text(" ", strip=True)) for cell in row.find_all(["td", "th"])
        ]
        cells = [cell for cell in cells if cell]
        if cells:
            collector.add(f"| {' | '.join(cells)} |")

    for leaf in _leaf_elements(soup):
        text = clean_text(leaf.get_text(" ", strip=True))
        if text and PRICE_LEAF_PATTERN.search(text):
            collector.add(text)

    if text_fallback and len(collector.lines) < FALLBACK_LINE_THRESHOLD:
        root = soup.find("main") or soup.find("body") or soup
        for string in root.find_all(string=True):
            if not isinstance(string, NavigableString):
                continue
            text = clean_text(str(string))
            if len(text) > MIN_FALLBACK_TEXT_LENGTH:
                collector.add(text)

    return "\n\n".join(collector.lines)


def markdown_to_raw_text(markdown: str, *, strip_links: bool = False) -> str:
    text = _MARKDOWN_LINK.sub(r"\1", markdown) if strip_links else markdown
    text = _MARKDOWN_SYNTAX.sub("", text)
    return clean_text(text)


def content_hash(raw_text: str) -> str:
    """
    SHA-256 of the normalized text, stable across boilerplate churn.
    """

    return hash_text(normalize_text(raw_text))
