"""Tests for the CoinGecko price client against a mocked transport."""

import asyncio

import httpx
import pytest

from blackbook.betting import Asset
from blackbook.services.coingecko import (
    CoinGeckoAPIError,
    CoinGeckoClient,
    CoinGeckoConfig,
    CoinGeckoRateLimitError,
    CoinGeckoResponseError,
)


def make_client(handler, **config) -> CoinGeckoClient:
    return CoinGeckoClient(
        CoinGeckoConfig(**config), transport=httpx.MockTransport(handler)
    )


def test_fetch_price_parses_simple_price() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200, json={"bitcoin": {"usd": 64123.5, "last_updated_at": 1767268800}}
        )

    async def run():
        async with make_client(handler, api_key="demo-key") as client:
            return await client.fetch_price(Asset.BTC)

    quote = asyncio.run(run())

    assert quote.price == 64123.5
    assert quote.timestamp.year == 2026
    request = seen[0]
    assert request.url.path == "/api/v3/simple/price"
    assert request.url.params["ids"] == "bitcoin"
    assert request.url.params["vs_currencies"] == "usd"
    assert request.headers["x-cg-demo-api-key"] == "demo-key"


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"solana": {}},
        {"solana": {"usd": None}},
        {"solana": {"usd": 0}},
        {"solana": {"usd": "abc"}},
    ],
)
def test_malformed_payload_raises_response_error(payload) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    async def run():
        async with make_client(handler) as client:
            await client.fetch_price(Asset.SOL)

    with pytest.raises(CoinGeckoResponseError):
        asyncio.run(run())


def test_client_error_is_not_retried() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(401, json={"error": "bad key"})

    async def run():
        async with make_client(handler) as client:
            await client.fetch_price(Asset.BTC)

    with pytest.raises(CoinGeckoAPIError) as exc_info:
        asyncio.run(run())
    assert exc_info.value.status_code == 401
    assert len(calls) == 1


def test_rate_limit_retried_then_succeeds() -> None:
    responses = [
        httpx.Response(429),
        httpx.Response(200, json={"solana": {"usd": 151.2}}),
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        return responses.pop(0)

    async def run():
        async with make_client(handler, max_retries=2) as client:
            return await client.fetch_price(Asset.SOL)

    assert asyncio.run(run()).price == 151.2


def test_rate_limit_exhausted() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429)

    async def run():
        async with make_client(handler, max_retries=1) as client:
            await client.fetch_price(Asset.BTC)

    with pytest.raises(CoinGeckoRateLimitError):
        asyncio.run(run())


def test_unknown_asset() -> None:
    async def run():
        async with make_client(lambda r: httpx.Response(200, json={})) as client:
            await client.fetch_price("DOGE")

    with pytest.raises(CoinGeckoAPIError, match="DOGE"):
        asyncio.run(run())


def test_cache_serves_repeat_requests() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"bitcoin": {"usd": 64000}})

    async def run():
        async with make_client(handler, cache_ttl_seconds=60) as client:
            first = await client.fetch_price(Asset.BTC)
            second = await client.fetch_price(Asset.BTC)
            return first, second, client.cache_time_remaining("BTC")

    first, second, remaining = asyncio.run(run())

    assert len(calls) == 1
    assert first == second
    assert 0 < remaining <= 60


def test_client_requires_context_manager() -> None:
    with pytest.raises(RuntimeError):
        asyncio.run(CoinGeckoClient().fetch_price(Asset.BTC))
