"""
pricewatch/domain/regional.py

Cross-region comparison inputs and outputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pricewatch.domain.pricing import PricingSchema


@dataclass(frozen=True)
class RegionalSnapshot:
    region: str
    pricing_schema: PricingSchema
    currency: str
    snapshot_id: str | None = None


@dataclass(frozen=True)
class RegionalPriceDifference:
    """
    One plan priced differently in `region` than in `baseline_region`.
    """

    plan_name: str
    baseline_region: str
    region: str
    baseline_price_usd: float
    region_price_usd: float
    price_difference_percent: int
    is_discount: bool
    severity: str


@dataclass(frozen=True)
class RegionalComparisonResult:
    has_differences: bool
    differences: list[RegionalPriceDifference] = field(default_factory=list)
    summary: str = ""
