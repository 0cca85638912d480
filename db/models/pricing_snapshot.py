"""
db/models/pricing_snapshot.py

Immutable structured pricing capture per (competitor, region, time).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class PricingSnapshotRecord(Base):
    __tablename__ = "pricing_snapshots"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    competitor_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("competitors.id", ondelete="CASCADE"),
        nullable=False,
    )
    region: Mapped[str] = mapped_column(String(16), nullable=False)
    pricing_schema: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        comment="Serialized PricingSchema",
    )
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="USD")
    source: Mapped[str | None] = mapped_column(String(32), nullable=True)
    dom_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    captured_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("ix_pricing_snapshots_competitor_region_captured", "competitor_id", "region", "captured_at"),
    )
