"""
pricewatch/domain/competitor.py

Persisted crawl bookkeeping for one competitor page.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum


class CompetitorStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    ERROR = "error"


@dataclass(frozen=True)
class CompetitorCrawlState:
    """
    Guardrail-relevant state; mutated only through `with_changes`.
    """

    id: str
    name: str
    url: str
    status: CompetitorStatus = CompetitorStatus.ACTIVE
    failure_count: int = 0
    last_failure_at: datetime | None = None
    last_checked_at: datetime | None = None
    best_scraper: str | None = None

    def with_changes(self, **changes: object) -> "CompetitorCrawlState":
        return replace(self, **changes)


@dataclass(frozen=True)
class EligibilityDecision:
    allowed: bool
    reason: str | None = None


@dataclass(frozen=True)
class FailureOutcome:
    state: CompetitorCrawlState
    paused: bool
