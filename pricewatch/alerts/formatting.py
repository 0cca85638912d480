"""
Render diffs into alert content.
"""

from __future__ import annotations

from dataclasses import dataclass

from pricewatch.alerts.rules import calculate_priority, map_severity
from pricewatch.domain.alerts import AlertSeverity, FormattedAlert, RegionalAlert
from pricewatch.domain.diff import DetectedDiff, PricingDiffType
from pricewatch.domain.regional import RegionalPriceDifference


@dataclass(frozen=True)
class AlertTemplate:
    title: str
    cta_text: str
    emoji: str


ALERT_TEMPLATES: dict[PricingDiffType, AlertTemplate] = {
    PricingDiffType.PRICE_INCREASE: AlertTemplate("Price Increase Detected", "View Pricing Change", "📈"),
    PricingDiffType.PRICE_DECREASE: AlertTemplate("Price Drop Detected", "View Pricing Change", "📉"),
    PricingDiffType.PLAN_ADDED: AlertTemplate("New Plan Added", "View New Plan", "➕"),
    PricingDiffType.PLAN_REMOVED: AlertTemplate("Plan Removed", "View Change", "➖"),
    PricingDiffType.FREE_TIER_REMOVED: AlertTemplate("Free Tier Removed", "View Impact", "🚨"),
    PricingDiffType.FREE_TIER_ADDED: AlertTemplate("Free Tier Added", "View Free Plan", "🎁"),
    PricingDiffType.PLAN_PROMOTED: AlertTemplate("Featured Plan Changed", "View Update", "⭐"),
    PricingDiffType.CTA_CHANGED: AlertTemplate("CTA Updated", "View Change", "🔄"),
    PricingDiffType.REGIONAL_DIFFERENCE: AlertTemplate("Regional Price Difference", "Compare Regions", "🌍"),
}


def build_alert_body(diff: DetectedDiff) -> str:
    lines: list[str] = []
    if diff.before:
        lines.append(f"**Before:** {diff.before}")
    if diff.after:
        lines.append(f"**After:** {diff.after}")
    lines.append(f"\n*Severity: {map_severity(diff.severity).value.upper()}*")
    return "\n".join(lines)


def format_alert_content(diff: DetectedDiff, company_name: str) -> FormattedAlert:
    template = ALERT_TEMPLATES.get(diff.type)
    if template is None:
        raise ValueError(f"No alert template for diff type: {diff.type}")
    return FormattedAlert(
        title=template.title,
        headline=f"{template.emoji} {company_name}: {diff.description}",
        body=build_alert_body(diff),
        cta_text=template.cta_text,
        emoji=template.emoji,
        severity=map_severity(diff.severity),
        priority=calculate_priority(diff),
    )


def create_regional_diff_alert(
    difference: RegionalPriceDifference,
    competitor_name: str,
) -> RegionalAlert:
    if difference.is_discount:
        description = (
            f"{competitor_name} offers {abs(difference.price_difference_percent)}% lower pricing "
            f"in {difference.region} compared to {difference.baseline_region}"
        )
        label = "Hidden Discount"
    else:
        description = (
            f"{competitor_name} charges {difference.price_difference_percent}% more "
            f"in {difference.region} compared to {difference.baseline_region}"
        )
        label = "Premium Pricing"

    return RegionalAlert(
        title=f"{competitor_name}: {label} in {difference.region}",
        description=description,
        severity=AlertSeverity(difference.severity),
        plan_name=difference.plan_name,
        before=f"${difference.baseline_price_usd:.2f} ({difference.baseline_region})",
        after=f"${difference.region_price_usd:.2f} ({difference.region})",
        percent_change=difference.price_difference_percent,
        is_discount=difference.is_discount,
    )
