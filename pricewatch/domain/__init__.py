"""
pricewatch/domain package exports.
"""

from pricewatch.domain.alerts import (
    AlertContext,
    AlertDecision,
    AlertSeverity,
    FormattedAlert,
    RegionalAlert,
)
from pricewatch.domain.competitor import (
    CompetitorCrawlState,
    CompetitorStatus,
    EligibilityDecision,
    FailureOutcome,
)
from pricewatch.domain.crawl import CrawlerSource, CrawlFailure, CrawlResult, CrawlSuccess
from pricewatch.domain.diff import (
    ChangedBlock,
    DetectedDiff,
    MeaningfulnessResult,
    PricingDiffResult,
    PricingDiffType,
    SignalType,
    TextDiffResult,
)
from pricewatch.domain.pricing import BillingPeriod, PricingPlan, PricingSchema
from pricewatch.domain.regional import (
    RegionalComparisonResult,
    RegionalPriceDifference,
    RegionalSnapshot,
)

__all__ = [
    "AlertContext",
    "AlertDecision",
    "AlertSeverity",
    "BillingPeriod",
    "ChangedBlock",
    "CompetitorCrawlState",
    "CompetitorStatus",
    "CrawlFailure",
    "CrawlResult",
    "CrawlSuccess",
    "CrawlerSource",
    "DetectedDiff",
    "EligibilityDecision",
    "FailureOutcome",
    "FormattedAlert",
    "MeaningfulnessResult",
    "PricingDiffResult",
    "PricingDiffType",
    "PricingPlan",
    "PricingSchema",
    "RegionalAlert",
    "RegionalComparisonResult",
    "RegionalPriceDifference",
    "RegionalSnapshot",
    "SignalType",
]
