"""
tests/test_guardrails.py

Unit tests for crawl eligibility and success/failure bookkeeping.

Coverage
--------
- Status, failure pause, failure cooldown and same-day dedup vetoes
- Veto order (first failing check wins)
- URL eligibility by path pattern
- record_success resets failure state
- record_failure increments and pauses at the threshold
- Content-hash dedup window, including naive timestamps
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from pricewatch.config import GuardrailSettings
from pricewatch.crawler.guardrails import CrawlGuardrails
from pricewatch.domain.competitor import CompetitorCrawlState, CompetitorStatus

NOW = datetime(2024, 6, 1, 15, 0, tzinfo=timezone.utc)


@pytest.fixture()
def guardrails() -> CrawlGuardrails:
    return CrawlGuardrails(settings=GuardrailSettings())


@pytest.fixture()
def state() -> CompetitorCrawlState:
    return CompetitorCrawlState(id="c-1", name="Acme", url="https://acme.example/pricing")


# ---------------------------------------------------------------------------
# should_crawl
# ---------------------------------------------------------------------------


class TestShouldCrawl:
    def test_fresh_competitor_is_allowed(self, guardrails, state) -> None:
        decision = guardrails.should_crawl(state, now=NOW)
        assert decision.allowed is True
        assert decision.reason is None

    @pytest.mark.parametrize("status", [CompetitorStatus.PAUSED, CompetitorStatus.ERROR])
    def test_inactive_status_is_vetoed(self, guardrails, state, status) -> None:
        decision = guardrails.should_crawl(state.with_changes(status=status), now=NOW)
        assert decision.allowed is False
        assert decision.reason == f"Status is {status.value}"

    def test_repeated_failures_pause_crawling(self, guardrails, state) -> None:
        decision = guardrails.should_crawl(state.with_changes(failure_count=3), now=NOW)
        assert decision.allowed is False
        assert decision.reason == "Paused due to repeated failures"

    def test_recent_failure_is_in_cooldown(self, guardrails, state) -> None:
        recent = state.with_changes(failure_count=1, last_failure_at=NOW - timedelta(hours=2))
        decision = guardrails.should_crawl(recent, now=NOW)
        assert decision.allowed is False
        assert decision.reason == "In failure cooldown period"

    def test_old_failure_is_outside_cooldown(self, guardrails, state) -> None:
        old = state.with_changes(failure_count=1, last_failure_at=NOW - timedelta(hours=30))
        assert guardrails.should_crawl(old, now=NOW).allowed is True

    def test_same_day_check_is_vetoed(self, guardrails, state) -> None:
        checked = state.with_changes(last_checked_at=NOW.replace(hour=1))
        decision = guardrails.should_crawl(checked, now=NOW)
        assert decision.allowed is False
        assert decision.reason == "Already checked today"

    def test_previous_day_check_is_allowed(self, guardrails, state) -> None:
        checked = state.with_changes(last_checked_at=NOW - timedelta(days=1))
        assert guardrails.should_crawl(checked, now=NOW).allowed is True

    def test_status_veto_wins_over_later_checks(self, guardrails, state) -> None:
        combined = state.with_changes(
            status=CompetitorStatus.ERROR,
            failure_count=5,
            last_checked_at=NOW,
        )
        assert guardrails.should_crawl(combined, now=NOW).reason == "Status is error"

    def test_naive_timestamps_are_treated_as_utc(self, guardrails, state) -> None:
        naive = state.with_changes(last_checked_at=datetime(2024, 6, 1, 2, 0))
        assert guardrails.should_crawl(naive, now=NOW).reason == "Already checked today"


# ---------------------------------------------------------------------------
# URL eligibility
# ---------------------------------------------------------------------------


class TestEligibleUrl:
    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("https://acme.example/pricing", True),
            ("https://acme.example/en/Pricing/teams", True),
            ("https://acme.example/plans", True),
            ("https://acme.example/features", True),
            ("https://acme.example/", True),
            ("https://acme.example", True),
            ("https://acme.example/blog/launch", False),
            ("ftp://acme.example/pricing", False),
            ("not a url", False),
            ("http://ex_ample.com:abc/pricing", False),
            ("http://acme.example:99999/pricing", False),
            ("http://user@/pricing", False),
            ("http://acme\x00.example/pricing", False),
            ("https://acme.example:8443/pricing", True),
        ],
    )
    def test_path_patterns(self, guardrails, url: str, expected: bool) -> None:
        assert guardrails.is_eligible_url(url) is expected


# ---------------------------------------------------------------------------
# Outcome bookkeeping
# ---------------------------------------------------------------------------


class TestRecordOutcomes:
    def test_success_resets_failures(self, guardrails, state) -> None:
        failing = state.with_changes(failure_count=2, last_failure_at=NOW - timedelta(days=2))
        updated = guardrails.record_success(failing, now=NOW)
        assert updated.failure_count == 0
        assert updated.last_failure_at is None
        assert updated.last_checked_at == NOW

    def test_failure_below_threshold_keeps_status(self, guardrails, state) -> None:
        outcome = guardrails.record_failure(state, now=NOW)
        assert outcome.paused is False
        assert outcome.state.failure_count == 1
        assert outcome.state.last_failure_at == NOW
        assert outcome.state.status is CompetitorStatus.ACTIVE

    def test_failure_at_threshold_moves_to_error(self, guardrails, state) -> None:
        outcome = guardrails.record_failure(state.with_changes(failure_count=2), now=NOW)
        assert outcome.paused is True
        assert outcome.state.failure_count == 3
        assert outcome.state.status is CompetitorStatus.ERROR

    def test_state_is_not_mutated(self, guardrails, state) -> None:
        guardrails.record_failure(state, now=NOW)
        assert state.failure_count == 0


# ---------------------------------------------------------------------------
# Hash dedup
# ---------------------------------------------------------------------------


class TestHashDedup:
    def test_hash_inside_window_is_seen(self, guardrails) -> None:
        seen = [("abc", NOW - timedelta(days=6))]
        assert guardrails.is_hash_seen_recently("abc", seen, now=NOW) is True

    def test_hash_outside_window_is_not_seen(self, guardrails) -> None:
        seen = [("abc", NOW - timedelta(days=8))]
        assert guardrails.is_hash_seen_recently("abc", seen, now=NOW) is False

    def test_other_hashes_are_ignored(self, guardrails) -> None:
        seen = [("def", NOW - timedelta(hours=1))]
        assert guardrails.is_hash_seen_recently("abc", seen, now=NOW) is False

    def test_naive_capture_times_are_supported(self, guardrails) -> None:
        seen = [("abc", datetime(2024, 5, 30, 12, 0))]
        assert guardrails.is_hash_seen_recently("abc", seen, now=NOW) is True

    def test_dedup_cutoff_is_window_before_now(self, guardrails) -> None:
        assert guardrails.dedup_cutoff(now=NOW) == NOW - timedelta(days=7)
