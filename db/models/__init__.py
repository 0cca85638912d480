"""
Model package exports.

Import all SQLAlchemy models here so metadata registration works without
extra imports.
"""

from db.models.alert import AlertRecord
from db.models.competitor import CompetitorRecord
from db.models.pricing_snapshot import PricingSnapshotRecord
from db.models.text_snapshot import TextSnapshotRecord

__all__ = [
    "AlertRecord",
    "CompetitorRecord",
    "PricingSnapshotRecord",
    "TextSnapshotRecord",
]
