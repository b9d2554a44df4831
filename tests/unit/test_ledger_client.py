"""Tests for the HTTP ledger client against a mocked transport."""

import asyncio
import json

import httpx
import pytest

from blackbook.services.ledger import (
    HttpLedgerClient,
    Ledger,
    LedgerAccountNotFoundError,
    LedgerAPIError,
    LedgerConfig,
    LedgerInsufficientFundsError,
)


def make_client(handler, **config) -> HttpLedgerClient:
    return HttpLedgerClient(
        LedgerConfig(mode="http", **config), transport=httpx.MockTransport(handler)
    )


def test_http_client_satisfies_protocol() -> None:
    assert isinstance(HttpLedgerClient(), Ledger)


def test_get_balance_sends_bearer_token() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"account": "alice", "balance": 250.5})

    async def run():
        async with make_client(handler, api_token="secret") as client:
            return await client.get_balance("alice")

    assert asyncio.run(run()) == 250.5
    assert seen[0].url.path == "/api/v1/accounts/alice/balance"
    assert seen[0].headers["Authorization"] == "Bearer secret"


def test_settlement_calls_post_expected_bodies() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path, json.loads(request.content)))
        return httpx.Response(200, json={"ok": True, "balance": 120.0})

    async def run():
        async with make_client(handler) as client:
            ack = await client.credit("alice", 20.0)
            await client.record_bet_win("alice", 20.0, "bet_abc")
            await client.record_bet_loss("bob", 10.0, "bet_def")
            await client.debit("bob", 10.0)
            return ack

    ack = asyncio.run(run())

    assert ack.ok and ack.balance == 120.0
    assert seen == [
        ("POST", "/api/v1/accounts/alice/credit", {"amount": 20.0}),
        ("POST", "/api/v1/bets/bet_abc/win", {"account": "alice", "amount": 20.0}),
        ("POST", "/api/v1/bets/bet_def/loss", {"account": "bob", "amount": 10.0}),
        ("POST", "/api/v1/accounts/bob/debit", {"amount": 10.0}),
    ]


@pytest.mark.parametrize(
    "status,error",
    [
        (404, LedgerAccountNotFoundError),
        (409, LedgerInsufficientFundsError),
        (400, LedgerAPIError),
    ],
)
def test_status_codes_map_to_errors(status, error) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(status, text="nope")

    async def run():
        async with make_client(handler) as client:
            await client.debit("alice", 1.0)

    with pytest.raises(error) as exc_info:
        asyncio.run(run())
    assert exc_info.value.status_code == status
    assert len(calls) == 1


def test_server_errors_exhaust_retries() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503)

    async def run():
        async with make_client(handler, max_retries=1) as client:
            await client.get_balance("alice")

    with pytest.raises(LedgerAPIError) as exc_info:
        asyncio.run(run())
    assert exc_info.value.status_code == 503
    assert len(calls) == 1


def test_malformed_balance() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"account": "alice"})

    async def run():
        async with make_client(handler) as client:
            await client.get_balance("alice")

    with pytest.raises(LedgerAPIError, match="Malformed"):
        asyncio.run(run())


def test_credit_timeout_is_not_resent() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        if len(seen) == 1:
            raise httpx.ReadTimeout("response lost", request=request)
        return httpx.Response(200, json={"ok": True})

    async def run():
        async with make_client(handler) as client:
            await client.credit("alice", 20.0, bet_id="bet_abc")

    with pytest.raises(LedgerAPIError, match="not resent"):
        asyncio.run(run())
    assert seen == ["/api/v1/accounts/alice/credit"]


def test_debit_server_error_is_not_resent() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(502)

    async def run():
        async with make_client(handler) as client:
            await client.debit("alice", 10.0, bet_id="bet_abc")

    with pytest.raises(LedgerAPIError) as exc_info:
        asyncio.run(run())
    assert exc_info.value.status_code == 502
    assert len(calls) == 1


def test_rate_limited_mutation_is_retried() -> None:
    responses = [httpx.Response(429), httpx.Response(200, json={"ok": True})]
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return responses.pop(0)

    async def run():
        async with make_client(handler, max_retries=2) as client:
            return await client.record_bet_loss("bob", 10.0, "bet_def")

    assert asyncio.run(run()).ok
    assert len(calls) == 2


def test_mutations_carry_idempotency_key() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers.get("Idempotency-Key"))
        return httpx.Response(200, json={"ok": True, "balance": 100.0})

    async def run():
        async with make_client(handler) as client:
            await client.debit("alice", 10.0, bet_id="bet_abc")
            await client.credit("alice", 20.0, bet_id="bet_abc")
            await client.record_bet_win("alice", 20.0, "bet_abc")
            await client.record_bet_loss("alice", 10.0, "bet_xyz")
            await client.credit("alice", 5.0)
            await client.get_balance("alice")

    asyncio.run(run())
    assert seen == [
        "bet_abc:debit",
        "bet_abc:credit",
        "bet_abc:win",
        "bet_xyz:loss",
        None,
        None,
    ]
