"""
Exchange-rate lookup with in-process caching and a fixed fallback table.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

import httpx

from pricewatch.config import ExchangeRateSettings
from pricewatch.logging_utils import log_event

logger = logging.getLogger(__name__)

# Units of each currency per 1 USD.
FALLBACK_RATES: dict[str, float] = {
    "USD": 1.0,
    "EUR": 0.92,
    "INR": 83.5,
    "GBP": 0.79,
    "JPY": 157.0,
    "AUD": 1.54,
    "CAD": 1.36,
    "BRL": 4.97,
}


class ExchangeRateService:
    """
    Rates are cached for `cache_ttl_seconds`; failed lookups use `FALLBACK_RATES`
    and are not cached.
    """

    def __init__(
        self,
        *,
        settings: ExchangeRateSettings,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.timeout_seconds)
        self._clock = clock
        self._cached_rates: dict[str, float] | None = None
        self._fetched_at: float | None = None

    async def get_rates(self) -> dict[str, float]:
        if (
            self._cached_rates is not None
            and self._fetched_at is not None
            and self._clock() - self._fetched_at < self._settings.cache_ttl_seconds
        ):
            return self._cached_rates

        try:
            response = await self._client.get(
                self._settings.url,
                params={"base": self._settings.base_currency},
            )
        except httpx.HTTPError as exc:
            log_event(logger, logging.WARNING, "exchange_rates_fallback", reason=str(exc))
            return dict(FALLBACK_RATES)

        if not response.is_success:
            log_event(
                logger,
                logging.WARNING,
                "exchange_rates_fallback",
                reason=f"HTTP {response.status_code}",
            )
            return dict(FALLBACK_RATES)

        try:
            payload = response.json()
        except ValueError:
            log_event(logger, logging.WARNING, "exchange_rates_fallback", reason="non-JSON body")
            return dict(FALLBACK_RATES)

        rates = payload.get("rates") if isinstance(payload, dict) else None
        if not isinstance(rates, dict) or not rates:
            log_event(logger, logging.WARNING, "exchange_rates_fallback", reason="missing rates")
            return dict(FALLBACK_RATES)

        parsed = {
            str(code).upper(): float(value)
            for code, value in rates.items()
            if isinstance(value, (int, float)) and value > 0
        }
        self._cached_rates = parsed
        self._fetched_at = self._clock()
        log_event(logger, logging.INFO, "exchange_rates_refreshed", currencies=len(parsed))
        return parsed

    async def get_rate_to_usd(self, currency: str) -> float:
        """
        Multiplier converting one unit of `currency` into USD; 1 for unknown codes.
        """

        code = currency.upper()
        if code == "USD":
            return 1.0
        rates = await self.get_rates()
        rate = rates.get(code)
        if not rate:
            log_event(logger, logging.WARNING, "unknown_currency", currency=code)
            return 1.0
        return 1.0 / rate

    async def convert_to_usd(self, amount: float, currency: str) -> float:
        return amount * await self.get_rate_to_usd(currency)

    def clear_cache(self) -> None:
        self._cached_rates = None
        self._fetched_at = None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
