"""Structured output contract for vision-model pricing extraction."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class VisionPlan(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    name: str = Field(min_length=1)
    price: str | None = None
    price_numeric: float | None = Field(default=None, alias="priceNumeric")
    period: str | None = None
    credits: str | None = None
    features: list[str] = Field(default_factory=list)
    is_highlighted: bool = Field(default=False, alias="isHighlighted")
    is_free: bool = Field(default=False, alias="isFree")
    is_enterprise: bool = Field(default=False, alias="isEnterprise")


class VisionPricingPayload(BaseModel):
    """Only accepted shape for model output; unknown keys are ignored."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="ignore")

    currency: str = "USD"
    currency_symbol: str | None = Field(default=None, alias="currencySymbol")
    plans: list[VisionPlan] = Field(default_factory=list)
    has_free_tier: bool = Field(default=False, alias="hasFreeTier")
    billing_options: list[str] = Field(default_factory=list, alias="billingOptions")
    promotions: list[str] = Field(default_factory=list)
    confidence: Literal["high", "medium", "low"] = "medium"
