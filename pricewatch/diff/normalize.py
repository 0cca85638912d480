"""
Text normalization used before hashing and diffing page content.

Boilerplate that churns without carrying competitive signal (copyright
years, cookie notices, relative dates) is stripped so that two captures of
an unchanged page hash identically.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from datetime import datetime, timezone

BOILERPLATE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"©\s*\d{4}(?:\s*[-–]\s*\d{4})?"),
    re.compile(r"copyright\s*(?:©\s*)?\d{4}(?:\s*[-–]\s*\d{4})?"),
    re.compile(r"all rights reserved\.?"),
    re.compile(r"privacy policy"),
    re.compile(r"terms of (?:service|use)|terms (?:and|&) conditions"),
    re.compile(r"cookie policy"),
    re.compile(r"we use cookies[^.]*\.?"),
    re.compile(r"accept (?:all )?cookies"),
    re.compile(r"subscribe to (?:our )?newsletter[^.]*\.?"),
    re.compile(r"follow us on[^.]*\.?"),
    re.compile(
        r"\b(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?\s+\d{1,2},?\s+\d{4}\b"
    ),
    re.compile(r"\b\d{1,2}[/-]\d{1,2}[/-]\d{2,4}\b"),
    re.compile(r"\b\d{4}-\d{2}-\d{2}\b"),
    re.compile(r"\b\d+\s+(?:second|minute|hour|day|week|month|year)s?\s+ago\b"),
    re.compile(r"last updated:?[^.]*\.?"),
)

URL_PATTERN = re.compile(r"https?://\S+")
EMAIL_PATTERN = re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+")
WHITESPACE_PATTERN = re.compile(r"\s+")

_QUOTE_TRANSLATION = str.maketrans(
    {
        "‘": "'",
        "’": "'",
        "“": '"',
        "”": '"',
        "–": "-",
        "—": "-",
    }
)


@dataclass(frozen=True)
class NormalizedSnapshot:
    original: str
    normalized: str
    content_hash: str
    created_at: datetime


def normalize_text(text: str) -> str:
    """
    Lowercase `text`, strip boilerplate, URLs and e-mails, and collapse whitespace.
    """

    normalized = text.lower()
    for pattern in BOILERPLATE_PATTERNS:
        normalized = pattern.sub(" ", normalized)
    normalized = URL_PATTERN.sub(" ", normalized)
    normalized = EMAIL_PATTERN.sub(" ", normalized)
    normalized = normalized.translate(_QUOTE_TRANSLATION)
    return WHITESPACE_PATTERN.sub(" ", normalized).strip()


def hash_text(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def create_normalized_snapshot(text: str) -> NormalizedSnapshot:
    normalized = normalize_text(text)
    return NormalizedSnapshot(
        original=text,
        normalized=normalized,
        content_hash=hash_text(normalized),
        created_at=datetime.now(timezone.utc),
    )
