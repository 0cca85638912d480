"""
tests/test_exchange_rates.py

Unit tests for the exchange-rate service.

Coverage
--------
- Successful fetch, base-currency parameter, rate inversion
- TTL cache hits and expiry
- Fallback table on HTTP errors, transport errors and malformed bodies
- Fallback results are not cached
- USD and unknown currencies
"""

from __future__ import annotations

import httpx
import pytest

from pricewatch.config import ExchangeRateSettings
from pricewatch.currency.exchange_rates import FALLBACK_RATES, ExchangeRateService

RATES_URL = "https://rates.test/latest"


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class RatesHandler:
    def __init__(self, response: httpx.Response | Exception) -> None:
        self.response = response
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def _service(handler: RatesHandler, clock: FakeClock | None = None) -> ExchangeRateService:
    return ExchangeRateService(
        settings=ExchangeRateSettings(url=RATES_URL, cache_ttl_seconds=60.0),
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        clock=clock or FakeClock(),
    )


@pytest.fixture
def ok_handler() -> RatesHandler:
    return RatesHandler(httpx.Response(200, json={"base": "USD", "rates": {"EUR": 0.5, "inr": 80, "BAD": 0}}))


class TestFetch:
    @pytest.mark.asyncio
    async def test_rates_are_parsed_and_uppercased(self, ok_handler: RatesHandler) -> None:
        service = _service(ok_handler)
        rates = await service.get_rates()
        assert rates == {"EUR": 0.5, "INR": 80.0}
        assert ok_handler.requests[0].url.params["base"] == "USD"

    @pytest.mark.asyncio
    async def test_rate_to_usd_is_inverted(self, ok_handler: RatesHandler) -> None:
        service = _service(ok_handler)
        assert await service.get_rate_to_usd("eur") == pytest.approx(2.0)
        assert await service.convert_to_usd(160.0, "INR") == pytest.approx(2.0)

    @pytest.mark.asyncio
    async def test_usd_skips_lookup(self, ok_handler: RatesHandler) -> None:
        service = _service(ok_handler)
        assert await service.get_rate_to_usd("USD") == 1.0
        assert ok_handler.requests == []

    @pytest.mark.asyncio
    async def test_unknown_currency_is_one(self, ok_handler: RatesHandler) -> None:
        service = _service(ok_handler)
        assert await service.get_rate_to_usd("XYZ") == 1.0
        assert await service.get_rate_to_usd("BAD") == 1.0


class TestCache:
    @pytest.mark.asyncio
    async def test_cache_hit_within_ttl(self, ok_handler: RatesHandler) -> None:
        clock = FakeClock()
        service = _service(ok_handler, clock)
        await service.get_rates()
        clock.now += 59
        await service.get_rates()
        assert len(ok_handler.requests) == 1

    @pytest.mark.asyncio
    async def test_cache_expires_after_ttl(self, ok_handler: RatesHandler) -> None:
        clock = FakeClock()
        service = _service(ok_handler, clock)
        await service.get_rates()
        clock.now += 61
        await service.get_rates()
        assert len(ok_handler.requests) == 2

    @pytest.mark.asyncio
    async def test_clear_cache_forces_refetch(self, ok_handler: RatesHandler) -> None:
        service = _service(ok_handler)
        await service.get_rates()
        service.clear_cache()
        await service.get_rates()
        assert len(ok_handler.requests) == 2


class TestFallback:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(500, text="upstream down"),
            httpx.Response(200, text="<html>not json</html>"),
            httpx.Response(200, json={"success": False}),
            httpx.ConnectError("connection refused"),
        ],
    )
    async def test_failures_use_fallback_table(self, response) -> None:
        service = _service(RatesHandler(response))
        assert await service.get_rates() == FALLBACK_RATES
        assert await service.get_rate_to_usd("EUR") == pytest.approx(1 / 0.92)

    @pytest.mark.asyncio
    async def test_fallback_is_not_cached(self) -> None:
        handler = RatesHandler(httpx.Response(503))
        service = _service(handler)
        await service.get_rates()
        await service.get_rates()
        assert len(handler.requests) == 2
