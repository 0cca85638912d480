"""
pricewatch/schemas/pricing_checks.py

Response schemas for pricing check endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class CompetitorCheckResponse(BaseModel):
    """
    API response model for one page text check.
    """

    competitor_id: str
    status: str
    reason: str | None = None
    source: str | None = None
    error: str | None = None
    paused: bool = False
    content_hash: str | None = None
    is_meaningful: bool | None = None
    signal_type: str | None = None
    snapshot_id: str | None = None
    needs_browser: bool = False


class DetectedDiffResponse(BaseModel):
    type: str
    severity: float = Field(..., ge=0.0, le=1.0)
    description: str
    plan_name: str | None = None
    before: str | None = None
    after: str | None = None


class AlertResponse(BaseModel):
    alert_id: str
    diff_type: str
    title: str
    headline: str
    severity: str
    priority: int = Field(..., ge=0, le=10)


class PricingContextResponse(BaseModel):
    """
    API response model for one regional pricing capture.
    """

    competitor_id: str
    region: str
    status: str
    source: str | None = None
    error: str | None = None
    message: str | None = None
    snapshot_id: str | None = None
    paused: bool = False
    has_meaningful_changes: bool = False
    overall_severity: float = Field(default=0.0, ge=0.0, le=1.0)
    summary: str | None = None
    diffs: list[DetectedDiffResponse] = Field(default_factory=list)
    alerts: list[AlertResponse] = Field(default_factory=list)


class RegionalDifferenceResponse(BaseModel):
    plan_name: str
    baseline_region: str
    region: str
    baseline_price_usd: float
    region_price_usd: float
    price_difference_percent: int
    is_discount: bool
    severity: str


class RegionalComparisonResponse(BaseModel):
    competitor_id: str
    has_differences: bool
    summary: str
    differences: list[RegionalDifferenceResponse] = Field(default_factory=list)
    alert_ids: list[str] = Field(default_factory=list)
