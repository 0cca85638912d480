"""
Crawl eligibility gate and success/failure bookkeeping.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from urllib.parse import urlparse

from pricewatch.config import GuardrailSettings
from pricewatch.domain.competitor import (
    CompetitorCrawlState,
    CompetitorStatus,
    EligibilityDecision,
    FailureOutcome,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CrawlGuardrails:
    """
    Decide whether a competitor page may be crawled now.

    Checks run in order and the first veto wins: status, failure pause,
    failure cooldown, then same-day dedup.
    """

    def __init__(self, *, settings: GuardrailSettings) -> None:
        self.settings = settings

    def should_crawl(
        self,
        state: CompetitorCrawlState,
        *,
        now: datetime | None = None,
    ) -> EligibilityDecision:
        current = _as_utc(now or _utcnow())

        if state.status is not CompetitorStatus.ACTIVE:
            return EligibilityDecision(allowed=False, reason=f"Status is {state.status.value}")

        if state.failure_count >= self.settings.max_failures_before_pause:
            return EligibilityDecision(allowed=False, reason="Paused due to repeated failures")

        if state.last_failure_at is not None:
            cooldown = timedelta(hours=self.settings.failure_cooldown_hours)
            if current - _as_utc(state.last_failure_at) < cooldown:
                return EligibilityDecision(allowed=False, reason="In failure cooldown period")

        if state.last_checked_at is not None:
            if _as_utc(state.last_checked_at).date() == current.date():
                return EligibilityDecision(allowed=False, reason="Already checked today")

        return EligibilityDecision(allowed=True)

    def is_eligible_url(self, url: str) -> bool:
        """
        Root pages and pricing/plans/features paths are crawlable.
        """

        try:
            parsed = urlparse(url)
            parsed.port  # raises ValueError for a non-numeric or out-of-range port
        except ValueError:
            return False
        if parsed.scheme not in {"http", "https"} or not parsed.hostname:
            return False
        if any(char.isspace() or not char.isprintable() for char in parsed.hostname):
            return False

        path = parsed.path.lower()
        if path in {"", "/"}:
            return True
        return any(pattern in path for pattern in self.settings.eligible_path_patterns)

    def record_success(
        self,
        state: CompetitorCrawlState,
        *,
        now: datetime | None = None,
    ) -> CompetitorCrawlState:
        return state.with_changes(
            last_checked_at=now or _utcnow(),
            failure_count=0,
            last_failure_at=None,
        )

    def record_failure(
        self,
        state: CompetitorCrawlState,
        *,
        now: datetime | None = None,
    ) -> FailureOutcome:
        """
        Increment the failure count; crossing the threshold moves status to error.
        """

        failure_count = state.failure_count + 1
        paused = failure_count >= self.settings.max_failures_before_pause
        updated = state.with_changes(
            failure_count=failure_count,
            last_failure_at=now or _utcnow(),
            status=CompetitorStatus.ERROR if paused else state.status,
        )
        return FailureOutcome(state=updated, paused=paused)

    def is_hash_seen_recently(
        self,
        content_hash: str,
        seen: Iterable[tuple[str, datetime]],
        *,
        now: datetime | None = None,
    ) -> bool:
        """
        True when `content_hash` was captured inside the dedup window.

        `seen` holds (hash, captured_at) pairs of earlier captures.
        """

        cutoff = _as_utc(now or _utcnow()) - timedelta(days=self.settings.hash_dedup_days)
        return any(
            existing == content_hash and _as_utc(captured_at) >= cutoff
            for existing, captured_at in seen
        )

    def dedup_cutoff(self, *, now: datetime | None = None) -> datetime:
        return _as_utc(now or _utcnow()) - timedelta(days=self.settings.hash_dedup_days)
