"""
Text-level triage: is a page-text change competitively meaningful?

Advisory only; the structured pricing differ is the authoritative signal.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from pricewatch.diff.patterns import (
    CTA_PATTERNS,
    NOISE_PATTERNS,
    PLAN_PATTERNS,
    PRICING_PATTERNS,
    SIGNAL_FAMILIES,
    SignalFamily,
    matches_any,
)
from pricewatch.diff.text_diff import compute_diff
from pricewatch.domain.diff import MeaningfulnessResult

SUBSTANTIAL_CHANGE_LENGTH = 100


class MeaningfulnessClassifier:
    """
    Classify a text change against ordered keyword families.
    """

    def __init__(
        self,
        *,
        families: Sequence[SignalFamily] = SIGNAL_FAMILIES,
        noise_patterns: tuple[re.Pattern[str], ...] = NOISE_PATTERNS,
        substantial_change_length: int = SUBSTANTIAL_CHANGE_LENGTH,
    ) -> None:
        self.families = tuple(families)
        self.noise_patterns = noise_patterns
        self.substantial_change_length = substantial_change_length

    def is_noise_only(self, text: str) -> bool:
        if not matches_any(text, self.noise_patterns):
            return False
        return not (
            matches_any(text, PRICING_PATTERNS)
            or matches_any(text, PLAN_PATTERNS)
            or matches_any(text, CTA_PATTERNS)
        )

    def classify(
        self,
        old_text: str,
        new_text: str,
        *,
        old_hash: str | None = None,
        new_hash: str | None = None,
    ) -> MeaningfulnessResult:
        diff = compute_diff(old_text, new_text, old_hash=old_hash, new_hash=new_hash)
        if not diff.has_changes:
            return MeaningfulnessResult(is_meaningful=False, reason="No changes detected")

        changed_text = diff.changed_text
        if self.is_noise_only(changed_text):
            return MeaningfulnessResult(
                is_meaningful=False,
                reason="Only noise changes (dates, legal text)",
            )

        for family in self.families:
            if matches_any(changed_text, family.patterns):
                return MeaningfulnessResult(
                    is_meaningful=True,
                    reason=family.reason,
                    signal_type=family.signal_type,
                )

        if len(changed_text) > self.substantial_change_length:
            return MeaningfulnessResult(
                is_meaningful=True,
                reason="Substantial content change detected",
            )
        return MeaningfulnessResult(
            is_meaningful=False,
            reason="Minor change below significance threshold",
        )


_default_classifier = MeaningfulnessClassifier()


def classify(
    old_text: str,
    new_text: str,
    *,
    old_hash: str | None = None,
    new_hash: str | None = None,
) -> MeaningfulnessResult:
    return _default_classifier.classify(old_text, new_text, old_hash=old_hash, new_hash=new_hash)
