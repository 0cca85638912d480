"""
Diff engine: text meaningfulness, structured pricing diff, regional comparison.
"""

from pricewatch.diff.meaningfulness import MeaningfulnessClassifier, classify
from pricewatch.diff.normalize import create_normalized_snapshot, hash_text, normalize_text
from pricewatch.diff.pricing_diff import PricingDiffer, diff_pricing, diff_regional_pricing
from pricewatch.diff.regional import RegionalComparator
from pricewatch.diff.text_diff import compute_diff, summarize_diff

__all__ = [
    "MeaningfulnessClassifier",
    "PricingDiffer",
    "RegionalComparator",
    "classify",
    "compute_diff",
    "create_normalized_snapshot",
    "diff_pricing",
    "diff_regional_pricing",
    "hash_text",
    "normalize_text",
    "summarize_diff",
]
