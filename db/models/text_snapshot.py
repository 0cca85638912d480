"""
db/models/text_snapshot.py

Normalized page-text capture used for hash dedup and text diffing.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class TextSnapshotRecord(Base):
    __tablename__ = "text_snapshots"

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
    content_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    raw_text: Mapped[str] = mapped_column(Text, nullable=False)
    normalized_text: Mapped[str] = mapped_column(Text, nullable=False)
    markdown: Mapped[str | None] = mapped_column(Text, nullable=True)
    source: Mapped[str | None] = mapped_column(String(32), nullable=True)
    signal_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    is_meaningful: Mapped[bool | None] = mapped_column(nullable=True)
    captured_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("ix_text_snapshots_competitor_captured", "competitor_id", "captured_at"),
        Index("ix_text_snapshots_competitor_hash", "competitor_id", "content_hash"),
    )
