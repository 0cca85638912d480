"""
Alert decision rules and formatting.
"""

from pricewatch.alerts.formatting import create_regional_diff_alert, format_alert_content
from pricewatch.alerts.rules import (
    ALERTABLE_DIFF_TYPES,
    AlertRulesEngine,
    filter_alertable_diffs,
    should_trigger_alert,
)

__all__ = [
    "ALERTABLE_DIFF_TYPES",
    "AlertRulesEngine",
    "create_regional_diff_alert",
    "filter_alertable_diffs",
    "format_alert_content",
    "should_trigger_alert",
]
