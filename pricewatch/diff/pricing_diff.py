"""
Structured pricing differ.

Compares two captures of the same page and emits severity-weighted diffs.
Plans are matched across captures by normalized name, never by position.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from pricewatch.domain.diff import DetectedDiff, PricingDiffResult, PricingDiffType
from pricewatch.domain.pricing import PricingPlan, PricingSchema

SEVERITY_WEIGHTS: dict[PricingDiffType, float] = {
    PricingDiffType.PRICE_INCREASE: 0.9,
    PricingDiffType.PRICE_DECREASE: 0.85,
    PricingDiffType.PLAN_ADDED: 0.8,
    PricingDiffType.PLAN_REMOVED: 0.95,
    PricingDiffType.FREE_TIER_REMOVED: 1.0,
    PricingDiffType.FREE_TIER_ADDED: 0.7,
    PricingDiffType.PLAN_PROMOTED: 0.5,
    PricingDiffType.CTA_CHANGED: 0.4,
    PricingDiffType.REGIONAL_DIFFERENCE: 0.6,
}

MIN_PRICE_CHANGE_PERCENT = 5.0
MIN_REGIONAL_DIFFERENCE_PERCENT = 10.0
ADDITIONAL_DIFF_WEIGHT = 0.2
SUMMARY_DIFF_LIMIT = 3

_WHITESPACE = re.compile(r"\s+")
_PRICE_NUMBER = re.compile(r"[\d,]+(?:\.\d{2})?")


@dataclass(frozen=True)
class CtaTransition:
    from_keyword: str
    to_keyword: str
    severity: float


# Only these transitions count as a semantic CTA change.
CTA_TRANSITIONS: tuple[CtaTransition, ...] = (
    CtaTransition("free", "paid", 0.7),
    CtaTransition("trial", "paid", 0.6),
    CtaTransition("start", "contact", 0.5),
)


def normalize_plan_name(name: str) -> str:
    return _WHITESPACE.sub(" ", name.lower()).strip()


def extract_numeric_price(plan: PricingPlan) -> float | None:
    """
    Numeric price from the display string, falling back to `price_numeric`.
    """

    if plan.price_raw:
        match = _PRICE_NUMBER.search(plan.price_raw)
        if match is not None:
            digits = match.group(0).replace(",", "")
            if digits:
                try:
                    return float(digits)
                except ValueError:
                    pass
    return plan.price_numeric


def find_matching_plan(plans: tuple[PricingPlan, ...], name: str) -> PricingPlan | None:
    normalized = normalize_plan_name(name)
    for plan in plans:
        if normalize_plan_name(plan.name) == normalized:
            return plan
    return None


def format_plan_summary(plan: PricingPlan) -> str:
    return f"{plan.name}: {plan.price_raw or 'N/A'} ({plan.billing.value})"


def calculate_overall_severity(diffs: list[DetectedDiff]) -> float:
    """
    Largest severity plus 20% of each additional one, capped at 1.0.
    """

    if not diffs:
        return 0.0
    severities = sorted((diff.severity for diff in diffs), reverse=True)
    total = severities[0] + sum(severity * ADDITIONAL_DIFF_WEIGHT for severity in severities[1:])
    return min(total, 1.0)


def generate_summary(diffs: list[DetectedDiff]) -> str:
    if not diffs:
        return "No meaningful pricing changes detected"
    ranked = sorted(diffs, key=lambda diff: diff.severity, reverse=True)
    parts = [diff.description for diff in ranked[:SUMMARY_DIFF_LIMIT]]
    if len(diffs) > SUMMARY_DIFF_LIMIT:
        parts.append(f"and {len(diffs) - SUMMARY_DIFF_LIMIT} more changes")
    return ". ".join(parts)


class PricingDiffer:
    """
    Pure, stateless comparison of two pricing captures.
    """

    def __init__(self, *, min_price_change_percent: float = MIN_PRICE_CHANGE_PERCENT) -> None:
        self.min_price_change_percent = min_price_change_percent

    def diff(self, before: PricingSchema | None, after: PricingSchema) -> PricingDiffResult:
        if before is None:
            return PricingDiffResult(
                has_meaningful_changes=False,
                diffs=[],
                overall_severity=0.0,
                summary="Initial snapshot captured",
            )

        diffs: list[DetectedDiff] = []
        diffs.extend(self._free_tier_changes(before, after))
        diffs.extend(self._plan_changes(before, after))
        diffs.extend(self._price_changes(before, after))
        diffs.extend(self._cta_changes(before, after))
        diffs.extend(self._promotion_changes(before, after))

        return PricingDiffResult(
            has_meaningful_changes=bool(diffs),
            diffs=diffs,
            overall_severity=calculate_overall_severity(diffs),
            summary=generate_summary(diffs),
        )

    def _free_tier_changes(self, before: PricingSchema, after: PricingSchema) -> list[DetectedDiff]:
        if before.has_free_tier and not after.has_free_tier:
            return [
                DetectedDiff(
                    type=PricingDiffType.FREE_TIER_REMOVED,
                    severity=SEVERITY_WEIGHTS[PricingDiffType.FREE_TIER_REMOVED],
                    before="Free tier available",
                    after="Free tier removed",
                    description="Free tier has been removed from pricing",
                )
            ]
        if not before.has_free_tier and after.has_free_tier:
            return [
                DetectedDiff(
                    type=PricingDiffType.FREE_TIER_ADDED,
                    severity=SEVERITY_WEIGHTS[PricingDiffType.FREE_TIER_ADDED],
                    before="No free tier",
                    after="Free tier added",
                    description="Free tier has been added to pricing",
                )
            ]
        return []

    def _plan_changes(self, before: PricingSchema, after: PricingSchema) -> list[DetectedDiff]:
        before_names = {normalize_plan_name(plan.name) for plan in before.plans}
        after_names = {normalize_plan_name(plan.name) for plan in after.plans}
        diffs: list[DetectedDiff] = []

        for plan in after.plans:
            if normalize_plan_name(plan.name) not in before_names:
                diffs.append(
                    DetectedDiff(
                        type=PricingDiffType.PLAN_ADDED,
                        severity=SEVERITY_WEIGHTS[PricingDiffType.PLAN_ADDED],
                        plan_name=plan.name,
                        after=format_plan_summary(plan),
                        description=f'New plan "{plan.name}" added at {plan.price_raw or "unknown price"}',
                    )
                )

        for plan in before.plans:
            if normalize_plan_name(plan.name) not in after_names:
                diffs.append(
                    DetectedDiff(
                        type=PricingDiffType.PLAN_REMOVED,
                        severity=SEVERITY_WEIGHTS[PricingDiffType.PLAN_REMOVED],
                        plan_name=plan.name,
                        before=format_plan_summary(plan),
                        description=f'Plan "{plan.name}" has been removed',
                    )
                )
        return diffs

    def _price_changes(self, before: PricingSchema, after: PricingSchema) -> list[DetectedDiff]:
        diffs: list[DetectedDiff] = []
        for after_plan in after.plans:
            before_plan = find_matching_plan(before.plans, after_plan.name)
            if before_plan is None:
                continue

            before_price = extract_numeric_price(before_plan)
            after_price = extract_numeric_price(after_plan)
            if before_price is None or after_price is None or before_price == after_price:
                continue
            if before_price == 0:
                continue

            is_increase = after_price > before_price
            percent_change = abs((after_price - before_price) / before_price * 100)
            if percent_change < self.min_price_change_percent:
                continue

            diff_type = PricingDiffType.PRICE_INCREASE if is_increase else PricingDiffType.PRICE_DECREASE
            direction = "increased" if is_increase else "decreased"
            diffs.append(
                DetectedDiff(
                    type=diff_type,
                    severity=SEVERITY_WEIGHTS[diff_type],
                    plan_name=after_plan.name,
                    before=before_plan.price_raw,
                    after=after_plan.price_raw,
                    description=f"{after_plan.name} price {direction} by {percent_change:.0f}%",
                )
            )
        return diffs

    def _cta_changes(self, before: PricingSchema, after: PricingSchema) -> list[DetectedDiff]:
        diffs: list[DetectedDiff] = []
        for after_plan in after.plans:
            before_plan = find_matching_plan(before.plans, after_plan.name)
            if before_plan is None or not before_plan.cta or not after_plan.cta:
                continue

            before_cta = normalize_plan_name(before_plan.cta)
            after_cta = normalize_plan_name(after_plan.cta)
            if before_cta == after_cta:
                continue

            for transition in CTA_TRANSITIONS:
                if transition.from_keyword in before_cta and transition.to_keyword in after_cta:
                    diffs.append(
                        DetectedDiff(
                            type=PricingDiffType.CTA_CHANGED,
                            severity=transition.severity,
                            plan_name=after_plan.name,
                            before=before_plan.cta,
                            after=after_plan.cta,
                            description=(
                                f'{after_plan.name} CTA changed from "{before_plan.cta}" '
                                f'to "{after_plan.cta}"'
                            ),
                        )
                    )
                    break
        return diffs

    def _promotion_changes(self, before: PricingSchema, after: PricingSchema) -> list[DetectedDiff]:
        if before.highlighted_plan == after.highlighted_plan:
            return []

        before_plan = (
            find_matching_plan(before.plans, before.highlighted_plan)
            if before.highlighted_plan
            else None
        )
        after_plan = (
            find_matching_plan(after.plans, after.highlighted_plan)
            if after.highlighted_plan
            else None
        )
        if before_plan is None and after_plan is None:
            return []

        before_name = before_plan.name if before_plan is not None else None
        after_name = after_plan.name if after_plan is not None else None
        return [
            DetectedDiff(
                type=PricingDiffType.PLAN_PROMOTED,
                severity=SEVERITY_WEIGHTS[PricingDiffType.PLAN_PROMOTED],
                plan_name=after_name,
                before=before_name or "None",
                after=after_name or "None",
                description=(
                    f'Highlighted plan changed from "{before_name or "none"}" '
                    f'to "{after_name or "none"}"'
                ),
            )
        ]


def diff_regional_pricing(
    region_a: str,
    schema_a: PricingSchema,
    region_b: str,
    schema_b: PricingSchema,
) -> list[DetectedDiff]:
    """
    Pairwise regional comparison of display prices, without currency conversion.
    """

    diffs: list[DetectedDiff] = []
    for plan_a in schema_a.plans:
        plan_b = find_matching_plan(schema_b.plans, plan_a.name)
        if plan_b is None:
            continue
        price_a = extract_numeric_price(plan_a)
        price_b = extract_numeric_price(plan_b)
        if price_a is None or price_b is None or price_a == 0:
            continue

        difference = abs((price_a - price_b) / price_a * 100)
        if difference < MIN_REGIONAL_DIFFERENCE_PERCENT:
            continue
        diffs.append(
            DetectedDiff(
                type=PricingDiffType.REGIONAL_DIFFERENCE,
                severity=SEVERITY_WEIGHTS[PricingDiffType.REGIONAL_DIFFERENCE],
                plan_name=plan_a.name,
                before=f"{region_a}: {plan_a.price_raw}",
                after=f"{region_b}: {plan_b.price_raw}",
                description=(
                    f"{plan_a.name} has {difference:.0f}% price difference between "
                    f"{region_a.upper()} and {region_b.upper()}"
                ),
            )
        )
    return diffs


_default_differ = PricingDiffer()


def diff_pricing(before: PricingSchema | None, after: PricingSchema) -> PricingDiffResult:
    return _default_differ.diff(before, after)
