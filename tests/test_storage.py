"""
tests/test_storage.py

Integration tests for the SQLAlchemy pricing store on in-memory SQLite.

Coverage
--------
- Competitor state read / update / listing
- Pricing snapshots: latest per region, recent sources, schema round trip
- Latest capture per region for regional comparison
- Text snapshots: latest, hashes inside a window
- Alerts: insert and newest timestamp
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

import db.models  # noqa: F401
from db.base import Base
from db.models import CompetitorRecord, PricingSnapshotRecord
from conftest import build_plan, build_schema
from pricewatch.domain.competitor import CompetitorStatus
from pricewatch.domain.crawl import CrawlerSource
from pricewatch.storage import NewAlert, NewTextSnapshot, SQLAlchemyPricingStore

T0 = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


@pytest.fixture
def session() -> Iterator[Session]:
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    with Session(engine, expire_on_commit=False) as db_session:
        db_session.add_all(
            [
                CompetitorRecord(id="acme", name="Acme", url="https://acme.example/pricing"),
                CompetitorRecord(id="zeta", name="Zeta", url="https://zeta.example/pricing"),
                CompetitorRecord(
                    id="beta",
                    name="Beta",
                    url="https://beta.example/pricing",
                    status="error",
                    failure_count=3,
                ),
            ]
        )
        db_session.commit()
        yield db_session
    engine.dispose()


@pytest.fixture
def store(session: Session) -> SQLAlchemyPricingStore:
    return SQLAlchemyPricingStore(session=session)


# ---------------------------------------------------------------------------
# Competitors
# ---------------------------------------------------------------------------


class TestCompetitors:
    def test_unknown_competitor(self, store: SQLAlchemyPricingStore) -> None:
        assert store.get_competitor_state("missing") is None

    def test_state_is_mapped(self, store: SQLAlchemyPricingStore) -> None:
        state = store.get_competitor_state("beta")
        assert state is not None
        assert state.name == "Beta"
        assert state.status is CompetitorStatus.ERROR
        assert state.failure_count == 3
        assert state.best_scraper is None

    def test_update_persists_guardrail_fields(self, store: SQLAlchemyPricingStore, session: Session) -> None:
        state = store.get_competitor_state("acme")
        store.update_competitor_state(
            state.with_changes(
                failure_count=2,
                last_failure_at=T0,
                status=CompetitorStatus.PAUSED,
                best_scraper="playwright",
            )
        )
        session.expire_all()

        reloaded = store.get_competitor_state("acme")
        assert reloaded.failure_count == 2
        assert reloaded.status is CompetitorStatus.PAUSED
        assert reloaded.best_scraper == "playwright"
        assert _utc(reloaded.last_failure_at) == T0

    def test_list_ids(self, store: SQLAlchemyPricingStore) -> None:
        assert store.list_competitor_ids() == ["acme", "zeta"]
        assert store.list_competitor_ids(active_only=False) == ["acme", "beta", "zeta"]


# ---------------------------------------------------------------------------
# Pricing snapshots
# ---------------------------------------------------------------------------


class TestPricingSnapshots:
    def _insert(self, store, region: str, price: str, captured_at: datetime, source) -> str:
        schema = build_schema(
            build_plan("Pro", price, float(price.strip("$€"))),
            currency="EUR" if region == "eu" else "USD",
            captured_at=captured_at,
        )
        return store.insert_pricing_snapshot(
            competitor_id="acme",
            region=region,
            schema=schema,
            source=source,
            dom_hash="abc123",
        )

    def test_latest_snapshot_per_region(self, store: SQLAlchemyPricingStore) -> None:
        self._insert(store, "us", "$49", T0, CrawlerSource.BROWSER)
        latest_id = self._insert(store, "us", "$79", T0 + timedelta(hours=1), CrawlerSource.VISION)
        self._insert(store, "eu", "€45", T0 + timedelta(hours=2), CrawlerSource.BROWSER)

        latest = store.latest_pricing_snapshot("acme", "us")
        assert latest is not None
        assert latest.id == latest_id
        assert latest.source is CrawlerSource.VISION
        assert latest.schema.plans[0].price_raw == "$79"
        assert latest.schema.captured_at == T0 + timedelta(hours=1)

    def test_missing_snapshot(self, store: SQLAlchemyPricingStore) -> None:
        assert store.latest_pricing_snapshot("acme", "in") is None

    def test_recent_sources_newest_first(self, store: SQLAlchemyPricingStore, session: Session) -> None:
        self._insert(store, "us", "$49", T0, CrawlerSource.BROWSER)
        self._insert(store, "us", "$49", T0 + timedelta(hours=1), CrawlerSource.VISION)
        self._insert(store, "us", "$49", T0 + timedelta(hours=2), CrawlerSource.VISION)
        session.add(
            PricingSnapshotRecord(
                competitor_id="acme",
                region="us",
                pricing_schema={},
                source="legacy-tier",
                captured_at=T0 - timedelta(hours=1),
            )
        )
        session.commit()

        assert store.recent_pricing_sources("acme", "us", limit=2) == [
            CrawlerSource.VISION,
            CrawlerSource.VISION,
        ]
        assert store.recent_pricing_sources("acme", "us", limit=10) == [
            CrawlerSource.VISION,
            CrawlerSource.VISION,
            CrawlerSource.BROWSER,
        ]

    def test_latest_regional_snapshots(self, store: SQLAlchemyPricingStore) -> None:
        self._insert(store, "us", "$49", T0, CrawlerSource.BROWSER)
        us_latest = self._insert(store, "us", "$79", T0 + timedelta(hours=1), CrawlerSource.BROWSER)
        self._insert(store, "eu", "€45", T0, CrawlerSource.BROWSER)

        snapshots = store.latest_regional_snapshots("acme")
        assert [snapshot.region for snapshot in snapshots] == ["eu", "us"]
        assert snapshots[0].currency == "EUR"
        assert snapshots[1].snapshot_id == us_latest
        assert snapshots[1].pricing_schema.plans[0].price_numeric == 79.0


# ---------------------------------------------------------------------------
# Text snapshots and alerts
# ---------------------------------------------------------------------------


def _text(content_hash: str, captured_at: datetime) -> NewTextSnapshot:
    return NewTextSnapshot(
        competitor_id="acme",
        content_hash=content_hash,
        raw_text=f"raw {content_hash}",
        normalized_text=f"normalized {content_hash}",
        source=CrawlerSource.HTML,
        is_meaningful=False,
        captured_at=captured_at,
    )


class TestTextSnapshots:
    def test_latest_text_snapshot(self, store: SQLAlchemyPricingStore) -> None:
        assert store.latest_text_snapshot("acme") is None
        store.insert_text_snapshot(_text("old", T0 - timedelta(days=1)))
        newest_id = store.insert_text_snapshot(_text("new", T0))

        latest = store.latest_text_snapshot("acme")
        assert latest.id == newest_id
        assert latest.raw_text == "raw new"
        assert latest.normalized_text == "normalized new"

    def test_hashes_since_cutoff(self, store: SQLAlchemyPricingStore) -> None:
        store.insert_text_snapshot(_text("ancient", T0 - timedelta(days=30)))
        store.insert_text_snapshot(_text("recent", T0 - timedelta(days=2)))

        hashes = store.text_hashes_since("acme", T0 - timedelta(days=7))
        assert [content_hash for content_hash, _ in hashes] == ["recent"]
        assert _utc(hashes[0][1]) == T0 - timedelta(days=2)


class TestAlerts:
    def test_last_alert_at(self, store: SQLAlchemyPricingStore) -> None:
        assert store.last_alert_at("acme") is None
        for offset in (0, 3, 1):
            store.insert_alert(
                NewAlert(
                    competitor_id="acme",
                    diff_type="price_increase",
                    severity=0.9,
                    severity_tier="high",
                    priority=10,
                    title="Price Increase Detected",
                    headline="Acme: Pro price increased by 61%",
                    region="us",
                    diff_payload={"type": "price_increase"},
                    created_at=T0 + timedelta(hours=offset),
                )
            )
        assert _utc(store.last_alert_at("acme")) == T0 + timedelta(hours=3)
        assert store.last_alert_at("zeta") is None
