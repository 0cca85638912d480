"""
Deterministic alert gates.

A diff alerts only if it passes every gate, in order: allow-listed type,
minimum severity, not suppressed, and outside the per-competitor cooldown.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone

from pricewatch.config import AlertSettings, get_alert_settings
from pricewatch.domain.alerts import AlertContext, AlertDecision, AlertSeverity
from pricewatch.domain.diff import DetectedDiff, PricingDiffType

ALERTABLE_DIFF_TYPES: frozenset[PricingDiffType] = frozenset(
    {
        PricingDiffType.PRICE_INCREASE,
        PricingDiffType.PRICE_DECREASE,
        PricingDiffType.PLAN_ADDED,
        PricingDiffType.PLAN_REMOVED,
        PricingDiffType.FREE_TIER_REMOVED,
        PricingDiffType.FREE_TIER_ADDED,
    }
)

PRIORITY_BOOSTS: dict[PricingDiffType, int] = {
    PricingDiffType.FREE_TIER_REMOVED: 2,
    PricingDiffType.PLAN_REMOVED: 1,
    PricingDiffType.PRICE_INCREASE: 1,
}
MAX_PRIORITY = 10


def map_severity(severity: float) -> AlertSeverity:
    if severity >= 0.8:
        return AlertSeverity.HIGH
    if severity >= 0.5:
        return AlertSeverity.MEDIUM
    return AlertSeverity.LOW


def calculate_priority(diff: DetectedDiff) -> int:
    # Half-up rounding: 0.85 scores 9, not 8.
    priority = math.floor(diff.severity * 10 + 0.5) + PRIORITY_BOOSTS.get(diff.type, 0)
    return min(priority, MAX_PRIORITY)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AlertRulesEngine:
    def __init__(
        self,
        *,
        settings: AlertSettings,
        alertable_types: Iterable[PricingDiffType] = ALERTABLE_DIFF_TYPES,
    ) -> None:
        self.settings = settings
        self.alertable_types = frozenset(alertable_types)

    def decide(self, diff: DetectedDiff, context: AlertContext | None = None) -> AlertDecision:
        """
        Apply the gates to one diff; the first failing gate supplies the reason.
        """

        context = context or AlertContext()

        if diff.type not in self.alertable_types:
            return AlertDecision(
                should_alert=False,
                reason=f'Diff type "{diff.type.value}" is not in alertable types',
                severity=AlertSeverity.LOW,
                priority=0,
            )

        if diff.severity < self.settings.min_severity:
            return AlertDecision(
                should_alert=False,
                reason=f"Severity {diff.severity:.2f} below threshold {self.settings.min_severity}",
                severity=AlertSeverity.LOW,
                priority=0,
            )

        if diff.type in context.suppressed_types:
            return AlertDecision(
                should_alert=False,
                reason=f'Diff type "{diff.type.value}" is suppressed by user',
                severity=map_severity(diff.severity),
                priority=0,
            )

        if context.last_alert_at is not None:
            now = _as_utc(context.now or datetime.now(timezone.utc))
            hours_since = (now - _as_utc(context.last_alert_at)).total_seconds() / 3600
            if hours_since < self.settings.cooldown_hours:
                return AlertDecision(
                    should_alert=False,
                    reason=f"Within cooldown period ({hours_since:.1f}h since last alert)",
                    severity=map_severity(diff.severity),
                    priority=0,
                )

        return AlertDecision(
            should_alert=True,
            reason="All alert rules passed",
            severity=map_severity(diff.severity),
            priority=calculate_priority(diff),
        )

    def filter_alertable_diffs(
        self,
        diffs: Sequence[DetectedDiff],
        context: AlertContext | None = None,
        *,
        max_alerts: int | None = None,
    ) -> list[DetectedDiff]:
        """
        Diffs that pass every gate, highest severity first, truncated to `max_alerts`.

        A missing or non-positive `max_alerts` falls back to the configured cap.
        """

        limit = max_alerts if max_alerts and max_alerts > 0 else self.settings.max_alerts_per_run
        survivors = [diff for diff in diffs if self.decide(diff, context).should_alert]
        survivors.sort(key=lambda diff: diff.severity, reverse=True)
        return survivors[:limit]


def should_trigger_alert(diff: DetectedDiff, context: AlertContext | None = None) -> AlertDecision:
    return AlertRulesEngine(settings=get_alert_settings()).decide(diff, context)


def filter_alertable_diffs(
    diffs: Sequence[DetectedDiff],
    context: AlertContext | None = None,
    *,
    max_alerts: int | None = None,
) -> list[DetectedDiff]:
    engine = AlertRulesEngine(settings=get_alert_settings())
    return engine.filter_alertable_diffs(diffs, context, max_alerts=max_alerts)
