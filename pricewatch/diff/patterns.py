"""
Keyword pattern tables for text-change classification.

Tables are plain data so they can be tuned or swapped without touching the
matching logic in `meaningfulness`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from pricewatch.domain.diff import SignalType


def _compile(*patterns: str, flags: int = re.IGNORECASE) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(pattern, flags) for pattern in patterns)


PRICING_PATTERNS = _compile(
    r"\$\d+",
    r"€\d+",
    r"£\d+",
    r"\d+\s*(?:/|per)\s*(?:month|year|mo|yr)",
    r"free\s+trial",
    r"\d+%\s*(?:off|discount)",
    r"\bpricing\b",
    r"\bsubscription\b",
    r"billed\s+(?:monthly|annually|yearly)",
)

PLAN_PATTERNS = _compile(
    r"\b(?:basic|starter|pro|premium|enterprise|team|business|free|plus)\s*(?:plan|tier)?\b",
    r"\b(?:plan|tier)s?\b",
    r"\bupgrade\b",
    r"\bdowngrade\b",
)

CTA_PATTERNS = _compile(
    r"get\s+started",
    r"start\s+free",
    r"try\s+(?:it\s+)?for\s+free",
    r"contact\s+sales",
    r"book\s+a\s+demo",
    r"request\s+(?:a\s+)?demo",
    r"sign\s+up",
    r"buy\s+now",
    r"\bsubscribe\b",
    r"talk\s+to\s+sales",
)

FEATURE_PATTERNS = _compile(
    r"\b(?:feature|includes?|included|unlimited|limited|up to \d+)\b",
    r"[✓✔☑]",
    r"\d+\s*(?:gb|tb|mb|users?|seats?|projects?|integrations?)\b",
)

POSITIONING_PATTERNS = (
    re.compile(r"^[A-Z].*[.!]$", re.MULTILINE),
    *_compile(
        r"\bthe\s+#?\d+\b|\b(?:best|leading|top|fastest|easiest|simplest|most)\b",
        r"\b(?:introducing|announcing|new|launch)\b",
    ),
)

NOISE_PATTERNS = _compile(
    r"\b\d{4}\b",
    r"\bcookies?\b",
    r"\bprivacy\b",
    r"\bterms\b",
    r"all rights reserved",
)


@dataclass(frozen=True)
class SignalFamily:
    signal_type: SignalType
    patterns: tuple[re.Pattern[str], ...]
    reason: str


# Checked in order; the first family that matches wins.
SIGNAL_FAMILIES: tuple[SignalFamily, ...] = (
    SignalFamily(SignalType.PRICING, PRICING_PATTERNS, "Pricing change detected"),
    SignalFamily(SignalType.PLAN, PLAN_PATTERNS, "Plan or tier change detected"),
    SignalFamily(SignalType.CTA, CTA_PATTERNS, "Call-to-action change detected"),
    SignalFamily(SignalType.FEATURE, FEATURE_PATTERNS, "Feature change detected"),
    SignalFamily(SignalType.POSITIONING, POSITIONING_PATTERNS, "Positioning or messaging change detected"),
)


def matches_any(text: str, patterns: tuple[re.Pattern[str], ...]) -> bool:
    return any(pattern.search(text) for pattern in patterns)
