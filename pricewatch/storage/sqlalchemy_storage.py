"""
SQLAlchemy-backed implementation of the pricing store.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models import AlertRecord, CompetitorRecord, PricingSnapshotRecord, TextSnapshotRecord
from pricewatch.domain.competitor import CompetitorCrawlState, CompetitorStatus
from pricewatch.domain.crawl import CrawlerSource
from pricewatch.domain.pricing import PricingSchema
from pricewatch.domain.regional import RegionalSnapshot
from pricewatch.storage.base import (
    NewAlert,
    NewTextSnapshot,
    PricingStore,
    StoredPricingSnapshot,
    StoredTextSnapshot,
)


def _source_or_none(value: str | None) -> CrawlerSource | None:
    if not value:
        return None
    try:
        return CrawlerSource(value)
    except ValueError:
        return None


def _to_state(row: CompetitorRecord) -> CompetitorCrawlState:
    return CompetitorCrawlState(
        id=row.id,
        name=row.name,
        url=row.url,
        status=CompetitorStatus(row.status),
        failure_count=row.failure_count,
        last_failure_at=row.last_failure_at,
        last_checked_at=row.last_checked_at,
        best_scraper=row.best_scraper,
    )


def _to_pricing_snapshot(row: PricingSnapshotRecord) -> StoredPricingSnapshot:
    return StoredPricingSnapshot(
        id=row.id,
        competitor_id=row.competitor_id,
        region=row.region,
        schema=PricingSchema.from_dict(row.pricing_schema),
        source=_source_or_none(row.source),
        captured_at=row.captured_at,
    )


class SQLAlchemyPricingStore(PricingStore):
    """
    Each write commits on its own; no transaction spans tables.
    """

    def __init__(self, *, session: Session) -> None:
        self._session = session

    def _commit(self) -> None:
        try:
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise

    def get_competitor_state(self, competitor_id: str) -> CompetitorCrawlState | None:
        row = self._session.get(CompetitorRecord, competitor_id)
        return _to_state(row) if row is not None else None

    def list_competitor_ids(self, *, active_only: bool = True) -> list[str]:
        stmt = select(CompetitorRecord.id).order_by(CompetitorRecord.name, CompetitorRecord.id)
        if active_only:
            stmt = stmt.where(CompetitorRecord.status == CompetitorStatus.ACTIVE.value)
        return list(self._session.scalars(stmt))

    def update_competitor_state(self, state: CompetitorCrawlState) -> None:
        stmt = (
            update(CompetitorRecord)
            .where(CompetitorRecord.id == state.id)
            .values(
                status=state.status.value,
                failure_count=state.failure_count,
                last_failure_at=state.last_failure_at,
                last_checked_at=state.last_checked_at,
                best_scraper=state.best_scraper,
            )
        )
        try:
            self._session.execute(stmt)
        except SQLAlchemyError:
            self._session.rollback()
            raise
        self._commit()

    def latest_pricing_snapshot(self, competitor_id: str, region: str) -> StoredPricingSnapshot | None:
        stmt = (
            select(PricingSnapshotRecord)
            .where(
                PricingSnapshotRecord.competitor_id == competitor_id,
                PricingSnapshotRecord.region == region,
            )
            .order_by(PricingSnapshotRecord.captured_at.desc())
            .limit(1)
        )
        row = self._session.scalars(stmt).first()
        return _to_pricing_snapshot(row) if row is not None else None

    def recent_pricing_sources(self, competitor_id: str, region: str, *, limit: int) -> list[CrawlerSource]:
        stmt = (
            select(PricingSnapshotRecord.source)
            .where(
                PricingSnapshotRecord.competitor_id == competitor_id,
                PricingSnapshotRecord.region == region,
            )
            .order_by(PricingSnapshotRecord.captured_at.desc())
            .limit(limit)
        )
        sources = [_source_or_none(value) for value in self._session.scalars(stmt)]
        return [source for source in sources if source is not None]

    def insert_pricing_snapshot(
        self,
        *,
        competitor_id: str,
        region: str,
        schema: PricingSchema,
        source: CrawlerSource | None,
        dom_hash: str | None = None,
    ) -> str:
        row = PricingSnapshotRecord(
            competitor_id=competitor_id,
            region=region,
            pricing_schema=schema.to_dict(),
            currency=schema.currency,
            source=source.value if source is not None else None,
            dom_hash=dom_hash,
            captured_at=schema.captured_at,
        )
        self._session.add(row)
        self._commit()
        return row.id

    def latest_regional_snapshots(self, competitor_id: str) -> list[RegionalSnapshot]:
        latest = (
            select(
                PricingSnapshotRecord.region,
                func.max(PricingSnapshotRecord.captured_at).label("captured_at"),
            )
            .where(PricingSnapshotRecord.competitor_id == competitor_id)
            .group_by(PricingSnapshotRecord.region)
            .subquery()
        )
        stmt = (
            select(PricingSnapshotRecord)
            .join(
                latest,
                (PricingSnapshotRecord.region == latest.c.region)
                & (PricingSnapshotRecord.captured_at == latest.c.captured_at),
            )
            .where(PricingSnapshotRecord.competitor_id == competitor_id)
            .order_by(PricingSnapshotRecord.region)
        )

        snapshots: list[RegionalSnapshot] = []
        seen_regions: set[str] = set()
        for row in self._session.scalars(stmt):
            if row.region in seen_regions:
                continue
            seen_regions.add(row.region)
            snapshots.append(
                RegionalSnapshot(
                    region=row.region,
                    pricing_schema=PricingSchema.from_dict(row.pricing_schema),
                    currency=row.currency or "USD",
                    snapshot_id=row.id,
                )
            )
        return snapshots

    def latest_text_snapshot(self, competitor_id: str) -> StoredTextSnapshot | None:
        stmt = (
            select(TextSnapshotRecord)
            .where(TextSnapshotRecord.competitor_id == competitor_id)
            .order_by(TextSnapshotRecord.captured_at.desc())
            .limit(1)
        )
        row = self._session.scalars(stmt).first()
        if row is None:
            return None
        return StoredTextSnapshot(
            id=row.id,
            competitor_id=row.competitor_id,
            content_hash=row.content_hash,
            raw_text=row.raw_text,
            normalized_text=row.normalized_text,
            captured_at=row.captured_at,
        )

    def text_hashes_since(self, competitor_id: str, since: datetime) -> list[tuple[str, datetime]]:
        stmt = select(TextSnapshotRecord.content_hash, TextSnapshotRecord.captured_at).where(
            TextSnapshotRecord.competitor_id == competitor_id,
            TextSnapshotRecord.captured_at >= since,
        )
        return [(content_hash, captured_at) for content_hash, captured_at in self._session.execute(stmt)]

    def insert_text_snapshot(self, snapshot: NewTextSnapshot) -> str:
        row = TextSnapshotRecord(
            competitor_id=snapshot.competitor_id,
            content_hash=snapshot.content_hash,
            raw_text=snapshot.raw_text,
            normalized_text=snapshot.normalized_text,
            markdown=snapshot.markdown,
            source=snapshot.source.value if snapshot.source is not None else None,
            is_meaningful=snapshot.is_meaningful,
            signal_type=snapshot.signal_type,
        )
        if snapshot.captured_at is not None:
            row.captured_at = snapshot.captured_at
        self._session.add(row)
        self._commit()
        return row.id

    def insert_alert(self, alert: NewAlert) -> str:
        row = AlertRecord(
            competitor_id=alert.competitor_id,
            region=alert.region,
            diff_type=alert.diff_type,
            severity=alert.severity,
            severity_tier=alert.severity_tier,
            priority=alert.priority,
            title=alert.title,
            headline=alert.headline,
            body=alert.body,
            diff_payload=dict(alert.diff_payload),
        )
        if alert.created_at is not None:
            row.created_at = alert.created_at
        self._session.add(row)
        self._commit()
        return row.id

    def last_alert_at(self, competitor_id: str) -> datetime | None:
        stmt = select(func.max(AlertRecord.created_at)).where(AlertRecord.competitor_id == competitor_id)
        return self._session.scalar(stmt)
