from pricewatch.services.pricing_check_service import (
    CompetitorCheckOutcome,
    PricingCheckService,
    PricingContextOutcome,
    RegionalComparisonOutcome,
    StoredAlert,
    get_pricing_check_service,
)

__all__ = [
    "CompetitorCheckOutcome",
    "PricingCheckService",
    "PricingContextOutcome",
    "RegionalComparisonOutcome",
    "StoredAlert",
    "get_pricing_check_service",
]
