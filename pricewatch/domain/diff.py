"""
pricewatch/domain/diff.py

Diff engine outputs for structured pricing and free-text comparisons.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class PricingDiffType(str, Enum):
    PRICE_INCREASE = "price_increase"
    PRICE_DECREASE = "price_decrease"
    PLAN_ADDED = "plan_added"
    PLAN_REMOVED = "plan_removed"
    FREE_TIER_REMOVED = "free_tier_removed"
    FREE_TIER_ADDED = "free_tier_added"
    PLAN_PROMOTED = "plan_promoted"
    CTA_CHANGED = "cta_changed"
    REGIONAL_DIFFERENCE = "regional_difference"


class SignalType(str, Enum):
    PRICING = "pricing"
    PLAN = "plan"
    CTA = "cta"
    FEATURE = "feature"
    POSITIONING = "positioning"


@dataclass(frozen=True)
class DetectedDiff:
    """
    One detected change between two pricing captures.
    """

    type: PricingDiffType
    severity: float
    description: str
    plan_name: str | None = None
    before: str | None = None
    after: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "severity": self.severity,
            "description": self.description,
            "plan_name": self.plan_name,
            "before": self.before,
            "after": self.after,
        }


@dataclass(frozen=True)
class PricingDiffResult:
    has_meaningful_changes: bool
    diffs: list[DetectedDiff]
    overall_severity: float
    summary: str


@dataclass(frozen=True)
class ChangedBlock:
    before: str | None = None
    after: str | None = None


@dataclass(frozen=True)
class TextDiffResult:
    """
    Sentence-block set difference between two page texts.
    """

    has_changes: bool
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    changed_blocks: list[ChangedBlock] = field(default_factory=list)

    @property
    def changed_text(self) -> str:
        return " ".join([*self.removed, *self.added])


@dataclass(frozen=True)
class MeaningfulnessResult:
    is_meaningful: bool
    reason: str
    signal_type: SignalType | None = None
