"""Closed failure taxonomy shared by every fetch and extraction boundary."""

from __future__ import annotations

from enum import Enum


class CrawlErrorCode(str, Enum):
    TIMEOUT = "TIMEOUT"
    BLOCKED = "BLOCKED"
    EMPTY = "EMPTY"
    API_ERROR = "API_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    AI_ERROR = "AI_ERROR"
    NO_PRICING = "NO_PRICING"
    UNKNOWN = "UNKNOWN"


# Retrying the same strategy cannot change these outcomes.
TERMINAL_ERROR_CODES = frozenset({CrawlErrorCode.BLOCKED, CrawlErrorCode.EMPTY})

RETRYABLE_ERROR_CODES = frozenset(
    {
        CrawlErrorCode.TIMEOUT,
        CrawlErrorCode.NETWORK_ERROR,
        CrawlErrorCode.API_ERROR,
        CrawlErrorCode.UNKNOWN,
    }
)


def is_terminal(code: CrawlErrorCode) -> bool:
    return code in TERMINAL_ERROR_CODES
