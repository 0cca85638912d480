"""
Shared factories for pricing test data.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

import pytest

from pricewatch.domain.pricing import BillingPeriod, PricingPlan, PricingSchema

CAPTURED_AT = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def build_plan(
    name: str,
    price_raw: str | None = None,
    price_numeric: float | None = None,
    *,
    cta: str | None = None,
    billing: BillingPeriod = BillingPeriod.MONTHLY,
) -> PricingPlan:
    return PricingPlan(
        name=name,
        price_raw=price_raw,
        price_numeric=price_numeric,
        billing=billing,
        cta=cta,
    )


def build_schema(
    *plans: PricingPlan,
    has_free_tier: bool = False,
    highlighted_plan: str | None = None,
    currency: str = "USD",
    captured_at: datetime = CAPTURED_AT,
) -> PricingSchema:
    return PricingSchema(
        plans=tuple(plans),
        has_free_tier=has_free_tier,
        highlighted_plan=highlighted_plan,
        currency=currency,
        captured_at=captured_at,
        source_url="https://acme.example/pricing",
    )


@pytest.fixture()
def make_plan() -> Callable[..., PricingPlan]:
    return build_plan


@pytest.fixture()
def make_schema() -> Callable[..., PricingSchema]:
    return build_schema
