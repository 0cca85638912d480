"""
Persistence interface consumed by the pricing pipeline.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pricewatch.domain.competitor import CompetitorCrawlState
from pricewatch.domain.crawl import CrawlerSource
from pricewatch.domain.pricing import PricingSchema
from pricewatch.domain.regional import RegionalSnapshot


@dataclass(frozen=True)
class StoredPricingSnapshot:
    id: str
    competitor_id: str
    region: str
    schema: PricingSchema
    source: CrawlerSource | None
    captured_at: datetime


@dataclass(frozen=True)
class StoredTextSnapshot:
    id: str
    competitor_id: str
    content_hash: str
    raw_text: str
    normalized_text: str
    captured_at: datetime


@dataclass(frozen=True)
class NewTextSnapshot:
    competitor_id: str
    content_hash: str
    raw_text: str
    normalized_text: str
    markdown: str | None = None
    source: CrawlerSource | None = None
    is_meaningful: bool | None = None
    signal_type: str | None = None
    captured_at: datetime | None = None


@dataclass(frozen=True)
class NewAlert:
    competitor_id: str
    diff_type: str
    severity: float
    severity_tier: str
    priority: int
    title: str
    headline: str
    body: str | None = None
    region: str | None = None
    diff_payload: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None


class PricingStore(ABC):
    """
    Row-level store: conditional updates by id and latest-first ordered reads.
    """

    @abstractmethod
    def get_competitor_state(self, competitor_id: str) -> CompetitorCrawlState | None:
        """Return current guardrail state, or None for an unknown competitor."""

    @abstractmethod
    def list_competitor_ids(self, *, active_only: bool = True) -> list[str]:
        """Return competitor ids in a stable order."""

    @abstractmethod
    def update_competitor_state(self, state: CompetitorCrawlState) -> None:
        """Persist guardrail fields for `state.id`."""

    @abstractmethod
    def latest_pricing_snapshot(self, competitor_id: str, region: str) -> StoredPricingSnapshot | None:
        """Most recent capture for one (competitor, region)."""

    @abstractmethod
    def recent_pricing_sources(self, competitor_id: str, region: str, *, limit: int) -> list[CrawlerSource]:
        """Sources of the latest `limit` captures, newest first."""

    @abstractmethod
    def insert_pricing_snapshot(
        self,
        *,
        competitor_id: str,
        region: str,
        schema: PricingSchema,
        source: CrawlerSource | None,
        dom_hash: str | None = None,
    ) -> str:
        """Store a new capture and return its id."""

    @abstractmethod
    def latest_regional_snapshots(self, competitor_id: str) -> list[RegionalSnapshot]:
        """Latest capture per region for one competitor."""

    @abstractmethod
    def latest_text_snapshot(self, competitor_id: str) -> StoredTextSnapshot | None:
        """Most recent text capture."""

    @abstractmethod
    def text_hashes_since(self, competitor_id: str, since: datetime) -> list[tuple[str, datetime]]:
        """(hash, captured_at) pairs captured at or after `since`."""

    @abstractmethod
    def insert_text_snapshot(self, snapshot: NewTextSnapshot) -> str:
        """Store a new text capture and return its id."""

    @abstractmethod
    def insert_alert(self, alert: NewAlert) -> str:
        """Store an alert and return its id."""

    @abstractmethod
    def last_alert_at(self, competitor_id: str) -> datetime | None:
        """Timestamp of the newest alert for the competitor."""
