"""
pricewatch/domain/alerts.py

Alert decision and rendered alert content.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from pricewatch.domain.diff import PricingDiffType


class AlertSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class AlertDecision:
    should_alert: bool
    reason: str
    severity: AlertSeverity
    priority: int


@dataclass(frozen=True)
class AlertContext:
    """
    Suppression and cooldown state the caller supplies for one competitor.
    """

    last_alert_at: datetime | None = None
    suppressed_types: frozenset[PricingDiffType] = field(default_factory=frozenset)
    now: datetime | None = None


@dataclass(frozen=True)
class FormattedAlert:
    title: str
    headline: str
    body: str
    cta_text: str
    emoji: str
    severity: AlertSeverity
    priority: int = 0


@dataclass(frozen=True)
class RegionalAlert:
    """
    Alert-ready rendering of one regional price difference.
    """

    title: str
    description: str
    severity: AlertSeverity
    plan_name: str
    before: str
    after: str
    percent_change: int
    is_discount: bool
    type: PricingDiffType = PricingDiffType.REGIONAL_DIFFERENCE
