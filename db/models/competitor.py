"""
db/models/competitor.py

Competitor page under monitoring, with its crawl guardrail bookkeeping.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class CompetitorRecord(Base, TimestampMixin):
    __tablename__ = "competitors"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)

    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="active",
        comment="active | paused | error",
    )
    failure_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_failure_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_checked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    best_scraper: Mapped[str | None] = mapped_column(String(32), nullable=True)

    __table_args__ = (Index("ix_competitors_status", "status"),)
