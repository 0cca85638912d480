"""
Schema package exports.
"""

from pricewatch.schemas.pricing_checks import (
    AlertResponse,
    CompetitorCheckResponse,
    DetectedDiffResponse,
    PricingContextResponse,
    RegionalComparisonResponse,
    RegionalDifferenceResponse,
)
from pricewatch.schemas.vision import VisionPlan, VisionPricingPayload

__all__ = [
    "AlertResponse",
    "CompetitorCheckResponse",
    "DetectedDiffResponse",
    "PricingContextResponse",
    "RegionalComparisonResponse",
    "RegionalDifferenceResponse",
    "VisionPlan",
    "VisionPricingPayload",
]
