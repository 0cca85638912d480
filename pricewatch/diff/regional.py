"""
Cross-region pricing comparison for one competitor.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from pricewatch.currency import ExchangeRateService
from pricewatch.diff.pricing_diff import extract_numeric_price
from pricewatch.domain.regional import (
    RegionalComparisonResult,
    RegionalPriceDifference,
    RegionalSnapshot,
)
from pricewatch.logging_utils import log_event

logger = logging.getLogger(__name__)

BASELINE_REGION = "us"
MIN_DIFFERENCE_PERCENT = 10.0
HIGH_SEVERITY_PERCENT = 30.0
MEDIUM_SEVERITY_PERCENT = 20.0


@dataclass(frozen=True)
class _PricePoint:
    plan_key: str
    region: str
    price_usd: float


def severity_for_difference(percent_diff: float) -> str:
    magnitude = abs(percent_diff)
    if magnitude >= HIGH_SEVERITY_PERCENT:
        return "high"
    if magnitude >= MEDIUM_SEVERITY_PERCENT:
        return "medium"
    return "low"


def summarize_differences(differences: Sequence[RegionalPriceDifference]) -> str:
    if not differences:
        return "No significant regional pricing differences detected."

    discount_regions = list(dict.fromkeys(d.region for d in differences if d.is_discount))
    premium_regions = list(dict.fromkeys(d.region for d in differences if not d.is_discount))
    parts: list[str] = []
    if discount_regions:
        parts.append(f"Hidden discounts in {', '.join(discount_regions)}")
    if premium_regions:
        parts.append(f"Premium pricing in {', '.join(premium_regions)}")
    return ". ".join(parts) + "."


class RegionalComparator:
    """
    Normalize every plan price to USD and compare each region with a baseline.

    The "us" region is the baseline when present, otherwise the first region
    that priced the plan. Deviations under 10% are ignored.
    """

    def __init__(self, *, rates: ExchangeRateService) -> None:
        self._rates = rates

    async def compare(self, snapshots: Sequence[RegionalSnapshot]) -> RegionalComparisonResult:
        if len(snapshots) < 2:
            return RegionalComparisonResult(
                has_differences=False,
                summary="Insufficient regions for comparison",
            )

        groups: dict[str, list[_PricePoint]] = {}
        for snapshot in snapshots:
            rate = await self._rates.get_rate_to_usd(snapshot.currency)
            for plan in snapshot.pricing_schema.plans:
                if not plan.price_raw:
                    continue
                numeric = extract_numeric_price(plan)
                if numeric is None:
                    continue
                key = plan.name.lower().strip()
                groups.setdefault(key, []).append(
                    _PricePoint(plan_key=key, region=snapshot.region, price_usd=numeric * rate)
                )

        differences: list[RegionalPriceDifference] = []
        for plan_key, points in groups.items():
            if len(points) < 2:
                continue
            baseline = next((point for point in points if point.region == BASELINE_REGION), points[0])
            if baseline.price_usd == 0:
                continue

            for point in points:
                if point.region == baseline.region:
                    continue
                percent_diff = (point.price_usd - baseline.price_usd) / baseline.price_usd * 100
                if abs(percent_diff) < MIN_DIFFERENCE_PERCENT:
                    continue
                differences.append(
                    RegionalPriceDifference(
                        plan_name=plan_key,
                        baseline_region=baseline.region.upper(),
                        region=point.region.upper(),
                        baseline_price_usd=baseline.price_usd,
                        region_price_usd=point.price_usd,
                        price_difference_percent=math.floor(percent_diff + 0.5),
                        is_discount=percent_diff < 0,
                        severity=severity_for_difference(percent_diff),
                    )
                )

        log_event(
            logger,
            logging.INFO,
            "regional_comparison_finished",
            regions=[snapshot.region for snapshot in snapshots],
            differences=len(differences),
        )
        return RegionalComparisonResult(
            has_differences=bool(differences),
            differences=differences,
            summary=summarize_differences(differences),
        )
