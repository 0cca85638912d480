"""
pricewatch/services/pricing_check_service.py

Per-competitor pipeline: guardrails, fetch, extraction, diffing and alerts.

Every stage for one competitor is awaited before the next one starts.
Callers supply a `PricingStore` per call; the service owns the long-lived
browser handle and HTTP clients and must be closed with `aclose()`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache

from pricewatch.alerts import (
    AlertRulesEngine,
    create_regional_diff_alert,
    format_alert_content,
)
from pricewatch.alerts.rules import calculate_priority
from pricewatch.config import (
    AlertSettings,
    CrawlerSettings,
    ExchangeRateSettings,
    GuardrailSettings,
    VisionSettings,
    get_alert_settings,
    get_crawler_settings,
    get_exchange_rate_settings,
    get_guardrail_settings,
    get_vision_settings,
)
from pricewatch.crawler.browser import BrowserHandle
from pricewatch.crawler.guardrails import CrawlGuardrails
from pricewatch.crawler.orchestrator import FetchOrchestrator, build_fetch_orchestrator
from pricewatch.crawler.pricing_extractor import GeoPricingScraper, GeoScrapeSuccess
from pricewatch.crawler.regions import RegionContext, get_region_context
from pricewatch.crawler.selection import (
    decide_scraper,
    determine_best_scraper,
    should_upgrade_to_browser,
)
from pricewatch.crawler.vision import VisionExtraction, VisionPricingExtractor
from pricewatch.currency import ExchangeRateService
from pricewatch.diff import MeaningfulnessClassifier, PricingDiffer, RegionalComparator
from pricewatch.diff.normalize import normalize_text
from pricewatch.domain.alerts import AlertContext, RegionalAlert
from pricewatch.domain.competitor import CompetitorCrawlState, CompetitorStatus
from pricewatch.domain.crawl import CrawlerSource, CrawlFailure, CrawlSuccess
from pricewatch.domain.diff import DetectedDiff, MeaningfulnessResult, PricingDiffResult, PricingDiffType
from pricewatch.domain.pricing import PricingSchema
from pricewatch.domain.regional import RegionalComparisonResult
from pricewatch.failure_codes import CrawlErrorCode
from pricewatch.logging_utils import log_event
from pricewatch.storage import NewAlert, NewTextSnapshot, PricingStore

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]

PAGE_CHECK_REGION = "global"
BEST_SCRAPER_MIN_CONSECUTIVE = 2
REGIONAL_ALERT_SEVERITY = 0.6


@dataclass(frozen=True)
class CompetitorCheckOutcome:
    """
    Result of one page check; `status` is skipped, failed, duplicate or captured.
    """

    competitor_id: str
    status: str
    reason: str | None = None
    source: str | None = None
    error: str | None = None
    paused: bool = False
    content_hash: str | None = None
    is_meaningful: bool | None = None
    signal_type: str | None = None
    snapshot_id: str | None = None
    needs_browser: bool = False


@dataclass(frozen=True)
class StoredAlert:
    alert_id: str
    diff_type: str
    title: str
    headline: str
    severity: str
    priority: int


@dataclass(frozen=True)
class PricingContextOutcome:
    competitor_id: str
    region: str
    status: str
    source: str | None = None
    error: str | None = None
    message: str | None = None
    snapshot_id: str | None = None
    paused: bool = False
    diff: PricingDiffResult | None = None
    alerts: list[StoredAlert] = field(default_factory=list)


@dataclass(frozen=True)
class RegionalComparisonOutcome:
    competitor_id: str
    comparison: RegionalComparisonResult
    alerts: list[RegionalAlert] = field(default_factory=list)
    alert_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class _PricingCapture:
    schema: PricingSchema
    source: CrawlerSource
    dom_hash: str | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _source_or_none(value: str | None) -> CrawlerSource | None:
    if not value:
        return None
    try:
        return CrawlerSource(value)
    except ValueError:
        return None


class PricingCheckService:
    """
    Runs the pricing pipeline for one competitor at a time.
    """

    def __init__(
        self,
        *,
        crawler_settings: CrawlerSettings | None = None,
        vision_settings: VisionSettings | None = None,
        exchange_rate_settings: ExchangeRateSettings | None = None,
        alert_settings: AlertSettings | None = None,
        guardrail_settings: GuardrailSettings | None = None,
        browser: BrowserHandle | None = None,
        orchestrator: FetchOrchestrator | None = None,
        geo_scraper: GeoPricingScraper | None = None,
        vision: VisionPricingExtractor | None = None,
        rates: ExchangeRateService | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._crawler_settings = crawler_settings or get_crawler_settings()
        vision_settings = vision_settings or get_vision_settings()
        alert_settings = alert_settings or get_alert_settings()

        self._browser = browser or BrowserHandle()
        self._orchestrator = orchestrator or build_fetch_orchestrator(
            settings=self._crawler_settings,
            browser=self._browser,
        )
        self._geo_scraper = geo_scraper or GeoPricingScraper(
            browser=self._browser,
            timeout_seconds=self._crawler_settings.browser_timeout_seconds,
        )
        self._vision = vision or VisionPricingExtractor(settings=vision_settings, browser=self._browser)
        self._rates = rates or ExchangeRateService(
            settings=exchange_rate_settings or get_exchange_rate_settings()
        )
        self._guardrails = CrawlGuardrails(settings=guardrail_settings or get_guardrail_settings())
        self._classifier = MeaningfulnessClassifier()
        self._differ = PricingDiffer(min_price_change_percent=alert_settings.min_price_change_percent)
        self._rules = AlertRulesEngine(settings=alert_settings)
        self._comparator = RegionalComparator(rates=self._rates)
        self._max_alerts = alert_settings.max_alerts_per_run
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Page text check
    # ------------------------------------------------------------------

    async def check_competitor_page(
        self,
        *,
        store: PricingStore,
        competitor_id: str,
        now: datetime | None = None,
    ) -> CompetitorCheckOutcome:
        """
        Fetch the competitor page, dedup by content hash and classify the change.

        Raises:
            ValueError: `competitor_id` is unknown.
        """

        state = self._require_state(store, competitor_id)
        current = now or _utcnow()

        if not self._guardrails.is_eligible_url(state.url):
            return CompetitorCheckOutcome(
                competitor_id=competitor_id,
                status="skipped",
                reason="URL is not an eligible pricing page",
            )

        decision = self._guardrails.should_crawl(state, now=current)
        if not decision.allowed:
            log_event(
                logger,
                logging.INFO,
                "page_check_skipped",
                competitor_id=competitor_id,
                reason=decision.reason,
            )
            return CompetitorCheckOutcome(
                competitor_id=competitor_id,
                status="skipped",
                reason=decision.reason,
            )

        region = get_region_context(PAGE_CHECK_REGION)
        preferred = decide_scraper(region, last_source=_source_or_none(state.best_scraper))
        result = await self._orchestrator.fetch_with_retry(
            state.url,
            skip_managed=preferred is CrawlerSource.BROWSER,
        )

        if isinstance(result, CrawlFailure):
            outcome = self._guardrails.record_failure(state, now=current)
            store.update_competitor_state(outcome.state)
            log_event(
                logger,
                logging.WARNING,
                "page_check_failed",
                competitor_id=competitor_id,
                error=result.error.value,
                source=result.source.value if result.source else None,
                failure_count=outcome.state.failure_count,
                paused=outcome.paused,
            )
            return CompetitorCheckOutcome(
                competitor_id=competitor_id,
                status="failed",
                reason=result.message,
                source=result.source.value if result.source else None,
                error=result.error.value,
                paused=outcome.paused,
            )

        return self._store_page_text(store, state, result, region=region, now=current)

    def _store_page_text(
        self,
        store: PricingStore,
        state: CompetitorCrawlState,
        result: CrawlSuccess,
        *,
        region: RegionContext,
        now: datetime,
    ) -> CompetitorCheckOutcome:
        source = result.source
        updated = self._guardrails.record_success(state, now=now)
        if source is not None:
            updated = updated.with_changes(best_scraper=source.value)
        store.update_competitor_state(updated)

        needs_browser = source is not CrawlerSource.BROWSER and should_upgrade_to_browser(
            result.markdown,
            region.currency_symbols,
        )
        if needs_browser:
            log_event(
                logger,
                logging.INFO,
                "page_content_may_need_browser",
                competitor_id=state.id,
                source=source.value if source else None,
                chars=len(result.markdown),
            )

        normalized = normalize_text(result.raw_text)
        seen = store.text_hashes_since(state.id, self._guardrails.dedup_cutoff(now=now))
        if self._guardrails.is_hash_seen_recently(result.content_hash, seen, now=now):
            return CompetitorCheckOutcome(
                competitor_id=state.id,
                status="duplicate",
                reason="Content hash seen within dedup window",
                source=source.value if source else None,
                content_hash=result.content_hash,
                needs_browser=needs_browser,
            )

        previous = store.latest_text_snapshot(state.id)
        if previous is None:
            meaning = MeaningfulnessResult(is_meaningful=False, reason="Initial snapshot captured")
        else:
            meaning = self._classifier.classify(
                previous.raw_text,
                result.raw_text,
                old_hash=previous.content_hash,
                new_hash=result.content_hash,
            )

        signal_type = meaning.signal_type.value if meaning.signal_type else None
        snapshot_id = store.insert_text_snapshot(
            NewTextSnapshot(
                competitor_id=state.id,
                content_hash=result.content_hash,
                raw_text=result.raw_text,
                normalized_text=normalized,
                markdown=result.markdown,
                source=source,
                is_meaningful=meaning.is_meaningful,
                signal_type=signal_type,
                captured_at=now,
            )
        )
        log_event(
            logger,
            logging.INFO,
            "page_check_captured",
            competitor_id=state.id,
            source=source.value if source else None,
            meaningful=meaning.is_meaningful,
            signal_type=signal_type,
        )
        return CompetitorCheckOutcome(
            competitor_id=state.id,
            status="captured",
            reason=meaning.reason,
            source=source.value if source else None,
            content_hash=result.content_hash,
            is_meaningful=meaning.is_meaningful,
            signal_type=signal_type,
            snapshot_id=snapshot_id,
            needs_browser=needs_browser,
        )

    # ------------------------------------------------------------------
    # Structured pricing check
    # ------------------------------------------------------------------

    async def check_pricing_context(
        self,
        *,
        store: PricingStore,
        competitor_id: str,
        region: str = "us",
        now: datetime | None = None,
    ) -> PricingContextOutcome:
        """
        Capture the pricing schema for one region, diff it and store alerts.

        Raises:
            ValueError: `competitor_id` is unknown.
        """

        state = self._require_state(store, competitor_id)
        context = get_region_context(region)
        if state.status is not CompetitorStatus.ACTIVE:
            return PricingContextOutcome(
                competitor_id=competitor_id,
                region=context.key,
                status="skipped",
                message=f"Status is {state.status.value}",
            )

        recent = store.recent_pricing_sources(
            competitor_id,
            context.key,
            limit=BEST_SCRAPER_MIN_CONSECUTIVE,
        )
        preferred = decide_scraper(
            context,
            last_source=recent[0] if recent else None,
            best_scraper=determine_best_scraper(recent, min_consecutive=BEST_SCRAPER_MIN_CONSECUTIVE),
        )

        capture = await self._capture_pricing(
            state.url,
            context,
            prefer_vision=preferred is CrawlerSource.VISION,
        )
        current = now or _utcnow()
        if isinstance(capture, CrawlFailure):
            failure = self._guardrails.record_failure(state, now=current)
            store.update_competitor_state(failure.state)
            log_event(
                logger,
                logging.WARNING,
                "pricing_check_failed",
                competitor_id=competitor_id,
                region=context.key,
                error=capture.error.value,
                failure_count=failure.state.failure_count,
                paused=failure.paused,
            )
            return PricingContextOutcome(
                competitor_id=competitor_id,
                region=context.key,
                status="failed",
                source=capture.source.value if capture.source else None,
                error=capture.error.value,
                message=capture.message,
                paused=failure.paused,
            )

        updated = self._guardrails.record_success(state, now=current)
        store.update_competitor_state(updated.with_changes(best_scraper=capture.source.value))

        previous = store.latest_pricing_snapshot(competitor_id, context.key)
        diff_result = self._differ.diff(previous.schema if previous else None, capture.schema)
        snapshot_id = store.insert_pricing_snapshot(
            competitor_id=competitor_id,
            region=context.key,
            schema=capture.schema,
            source=capture.source,
            dom_hash=capture.dom_hash,
        )

        alert_context = AlertContext(last_alert_at=store.last_alert_at(competitor_id), now=current)
        alerts = self._store_diff_alerts(
            store,
            state,
            diff_result.diffs,
            alert_context,
            region=context.key,
        )
        log_event(
            logger,
            logging.INFO,
            "pricing_check_captured",
            competitor_id=competitor_id,
            region=context.key,
            source=capture.source.value,
            diffs=len(diff_result.diffs),
            alerts=len(alerts),
            overall_severity=diff_result.overall_severity,
        )
        return PricingContextOutcome(
            competitor_id=competitor_id,
            region=context.key,
            status="captured",
            source=capture.source.value,
            snapshot_id=snapshot_id,
            diff=diff_result,
            alerts=alerts,
        )

    async def _capture_pricing(
        self,
        url: str,
        region: RegionContext,
        *,
        prefer_vision: bool,
    ) -> _PricingCapture | CrawlFailure:
        if not prefer_vision:
            scraped = await self._geo_scraper.scrape(url, region)
            if isinstance(scraped, GeoScrapeSuccess):
                return _PricingCapture(
                    schema=scraped.schema,
                    source=CrawlerSource.BROWSER,
                    dom_hash=scraped.dom_hash,
                )
            # Only an empty DOM extraction is worth a model call.
            if scraped.error is not CrawlErrorCode.EMPTY:
                return scraped

        extracted = await self._vision.extract(url, region)
        if isinstance(extracted, VisionExtraction):
            return _PricingCapture(schema=extracted.schema, source=CrawlerSource.VISION)
        return extracted

    def _store_diff_alerts(
        self,
        store: PricingStore,
        state: CompetitorCrawlState,
        diffs: Sequence[DetectedDiff],
        context: AlertContext,
        *,
        region: str,
    ) -> list[StoredAlert]:
        stored: list[StoredAlert] = []
        for diff in self._rules.filter_alertable_diffs(diffs, context):
            formatted = format_alert_content(diff, state.name)
            alert_id = store.insert_alert(
                NewAlert(
                    competitor_id=state.id,
                    region=region,
                    diff_type=diff.type.value,
                    severity=diff.severity,
                    severity_tier=formatted.severity.value,
                    priority=formatted.priority,
                    title=formatted.title,
                    headline=formatted.headline,
                    body=formatted.body,
                    diff_payload=diff.to_dict(),
                    created_at=context.now,
                )
            )
            stored.append(
                StoredAlert(
                    alert_id=alert_id,
                    diff_type=diff.type.value,
                    title=formatted.title,
                    headline=formatted.headline,
                    severity=formatted.severity.value,
                    priority=formatted.priority,
                )
            )
        return stored

    # ------------------------------------------------------------------
    # Regional comparison
    # ------------------------------------------------------------------

    async def compare_regions(
        self,
        *,
        store: PricingStore,
        competitor_id: str,
        competitor_name: str | None = None,
    ) -> RegionalComparisonOutcome:
        state = self._require_state(store, competitor_id)
        name = competitor_name or state.name

        comparison = await self._comparator.compare(store.latest_regional_snapshots(competitor_id))
        differences = sorted(
            comparison.differences,
            key=lambda difference: abs(difference.price_difference_percent),
            reverse=True,
        )

        alerts: list[RegionalAlert] = []
        alert_ids: list[str] = []
        for difference in differences[: self._max_alerts]:
            alert = create_regional_diff_alert(difference, name)
            diff = DetectedDiff(
                type=PricingDiffType.REGIONAL_DIFFERENCE,
                severity=REGIONAL_ALERT_SEVERITY,
                description=alert.description,
                plan_name=alert.plan_name,
                before=alert.before,
                after=alert.after,
            )
            alert_ids.append(
                store.insert_alert(
                    NewAlert(
                        competitor_id=competitor_id,
                        region=difference.region.lower(),
                        diff_type=diff.type.value,
                        severity=diff.severity,
                        severity_tier=alert.severity.value,
                        priority=calculate_priority(diff),
                        title=alert.title,
                        headline=alert.description,
                        diff_payload={**diff.to_dict(), "percent_change": alert.percent_change},
                    )
                )
            )
            alerts.append(alert)

        return RegionalComparisonOutcome(
            competitor_id=competitor_id,
            comparison=comparison,
            alerts=alerts,
            alert_ids=alert_ids,
        )

    # ------------------------------------------------------------------
    # Batch and lifecycle
    # ------------------------------------------------------------------

    async def run_batch(
        self,
        *,
        store: PricingStore,
        competitor_ids: Sequence[str] | None = None,
        now: datetime | None = None,
    ) -> list[CompetitorCheckOutcome]:
        """
        Check competitors one after another with a pause between them.
        """

        ids = list(competitor_ids) if competitor_ids is not None else store.list_competitor_ids()
        outcomes: list[CompetitorCheckOutcome] = []
        for index, competitor_id in enumerate(ids):
            if index > 0:
                await self._sleep(self._crawler_settings.inter_competitor_delay_seconds)
            try:
                outcome = await self.check_competitor_page(
                    store=store,
                    competitor_id=competitor_id,
                    now=now,
                )
            except ValueError as exc:
                outcome = CompetitorCheckOutcome(
                    competitor_id=competitor_id,
                    status="skipped",
                    reason=str(exc),
                )
            outcomes.append(outcome)

        log_event(
            logger,
            logging.INFO,
            "batch_finished",
            competitors=len(ids),
            captured=sum(1 for outcome in outcomes if outcome.status == "captured"),
            failed=sum(1 for outcome in outcomes if outcome.status == "failed"),
        )
        return outcomes

    async def aclose(self) -> None:
        await self._orchestrator.aclose()
        await self._rates.aclose()
        await self._browser.close()

    @staticmethod
    def _require_state(store: PricingStore, competitor_id: str) -> CompetitorCrawlState:
        state = store.get_competitor_state(competitor_id)
        if state is None:
            raise ValueError(f"Unknown competitor: {competitor_id}")
        return state


@lru_cache(maxsize=1)
def get_pricing_check_service() -> PricingCheckService:
    """
    Build and cache the pricing check service.
    """

    return PricingCheckService()
