"""
tests/test_meaningfulness.py

Unit tests for text-change triage.

Coverage
--------
- No-change and below-threshold cases
- Noise-only changes (years, legal text)
- Signal families in priority order: pricing, plan, CTA, feature, positioning
- Substantial fallback and minor changes
- Custom family tables
"""

from __future__ import annotations

import re

import pytest

from pricewatch.diff.meaningfulness import MeaningfulnessClassifier, classify
from pricewatch.diff.patterns import SignalFamily
from pricewatch.domain.diff import SignalType

LOREM_BEFORE = "lorem ipsum dolor sit amet consectetur"
LOREM_AFTER = (
    "lorem ipsum dolor sit amet consectetur adipiscing elit sed do eiusmod tempor "
    "incididunt ut labore et dolore magna aliqua ut enim ad minim veniam quis nostrud"
)


class TestNoChange:
    def test_equal_hashes(self) -> None:
        result = classify("a", "b", old_hash="same", new_hash="same")
        assert result.is_meaningful is False
        assert result.reason == "No changes detected"

    def test_identical_text(self) -> None:
        assert classify("Pro $49", "Pro $49").reason == "No changes detected"


class TestNoise:
    def test_copyright_year_bump_is_noise(self) -> None:
        result = classify(
            "Copyright 2023 Acme Inc. All rights reserved.",
            "Copyright 2024 Acme Inc. All rights reserved.",
        )
        assert result.is_meaningful is False
        assert result.reason == "Only noise changes (dates, legal text)"
        assert result.signal_type is None

    def test_noise_with_price_is_not_noise_only(self) -> None:
        classifier = MeaningfulnessClassifier()
        assert classifier.is_noise_only("Updated 2024 pricing: $49") is False
        assert classifier.is_noise_only("Updated terms 2024") is True


class TestSignalFamilies:
    @pytest.mark.parametrize(
        ("before", "after", "signal_type", "reason"),
        [
            (
                "Pro plan costs $49 per month. Great for teams.",
                "Pro plan costs $79 per month. Great for teams.",
                SignalType.PRICING,
                "Pricing change detected",
            ),
            (
                "Our Starter plan is great for hobbyists.",
                "Our Business plan is great for hobbyists.",
                SignalType.PLAN,
                "Plan or tier change detected",
            ),
            (
                "Click below to get started today",
                "Click below to book a demo today",
                SignalType.CTA,
                "Call-to-action change detected",
            ),
            (
                "Includes 10 integrations for everyone",
                "Includes 25 integrations for everyone",
                SignalType.FEATURE,
                "Feature change detected",
            ),
            (
                "we are the fastest way to ship",
                "we are the simplest way to ship",
                SignalType.POSITIONING,
                "Positioning or messaging change detected",
            ),
        ],
    )
    def test_family_is_detected(self, before, after, signal_type, reason) -> None:
        result = classify(before, after)
        assert result.is_meaningful is True
        assert result.signal_type is signal_type
        assert result.reason == reason

    def test_pricing_wins_over_plan(self) -> None:
        result = classify("Starter plan at $10 monthly", "Starter plan at $15 monthly")
        assert result.signal_type is SignalType.PRICING


class TestFallbacks:
    def test_long_unclassified_change_is_substantial(self) -> None:
        result = classify(LOREM_BEFORE, LOREM_AFTER)
        assert result.is_meaningful is True
        assert result.reason == "Substantial content change detected"
        assert result.signal_type is None

    def test_short_unclassified_change_is_minor(self) -> None:
        result = classify("alpha beta gamma delta", "alpha beta gamma epsilon")
        assert result.is_meaningful is False
        assert result.reason == "Minor change below significance threshold"

    def test_custom_family_table(self) -> None:
        classifier = MeaningfulnessClassifier(
            families=(
                SignalFamily(
                    SignalType.FEATURE,
                    (re.compile(r"epsilon"),),
                    "Greek letter detected",
                ),
            ),
        )
        result = classifier.classify("alpha beta gamma delta", "alpha beta gamma epsilon")
        assert result.is_meaningful is True
        assert result.reason == "Greek letter detected"
