from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from .config import LedgerConfig
from .exceptions import (
    LedgerAccountNotFoundError,
    LedgerAPIError,
    LedgerInsufficientFundsError,
)
from .models import LedgerAck

logger = logging.getLogger(__name__)


class HttpLedgerClient:
    """Async client for a remote ledger backend that owns balances and bet records."""

    def __init__(
        self,
        config: LedgerConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or LedgerConfig(mode="http")
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        logger.info(f"Initialized HttpLedgerClient (base_url={self.config.base_url})")

    async def __aenter__(self) -> HttpLedgerClient:
        limits = httpx.Limits(
            max_connections=self.config.max_connections,
            max_keepalive_connections=self.config.max_keepalive_connections,
        )
        self._client = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout_seconds,
            limits=limits,
            headers=self.config.auth_headers,
            transport=self._transport,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Closed HttpLedgerClient")

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "HttpLedgerClient must be used as async context manager"
            )
        return self._client

    async def _request(
        self,
        method: str,
        endpoint: str,
        json_data: dict[str, Any] | None = None,
        idempotency_key: str | None = None,
    ) -> dict[str, Any]:
        """Send one ledger request.

        Reads are retried on timeouts, 429 and 5xx. Mutations are only
        retried on 429: after a timeout or 5xx the ledger may already have
        applied them, so the error is raised instead of resending.
        """
        resend_allowed = method == "GET"
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        retry_count = 0
        last_error: Exception | None = None

        while retry_count < self.config.max_retries:
            try:
                response = await self.client.request(
                    method=method,
                    url=endpoint,
                    json=json_data,
                    headers=headers,
                )

                if response.status_code == 404:
                    raise LedgerAccountNotFoundError(
                        f"Resource not found: {endpoint}", status_code=404
                    )
                elif response.status_code == 409:
                    raise LedgerInsufficientFundsError(
                        f"Ledger rejected {endpoint}: {response.text}",
                        status_code=409,
                    )
                elif response.status_code == 429 or (
                    response.status_code >= 500 and resend_allowed
                ):
                    wait_time = 2 ** retry_count
                    logger.warning(
                        f"Ledger returned {response.status_code}, "
                        f"retrying in {wait_time}s..."
                    )
                    last_error = LedgerAPIError(
                        f"Ledger error {response.status_code}",
                        status_code=response.status_code,
                    )
                    retry_count += 1
                    if retry_count < self.config.max_retries:
                        await asyncio.sleep(wait_time)
                    continue
                elif response.status_code >= 400:
                    raise LedgerAPIError(
                        f"Ledger error {response.status_code}: {response.text}",
                        status_code=response.status_code,
                    )

                return response.json()

            except httpx.TimeoutException as e:
                if not resend_allowed:
                    raise LedgerAPIError(
                        f"Timed out on {method} {endpoint}; not resent, "
                        f"outcome unknown (key={idempotency_key})"
                    ) from e
                last_error = e
                retry_count += 1
                if retry_count < self.config.max_retries:
                    logger.warning(f"Timeout, retrying ({retry_count})...")
                    await asyncio.sleep(1)

            except httpx.RequestError as e:
                last_error = e
                logger.error(f"Network error: {e}")
                break

        if isinstance(last_error, LedgerAPIError):
            raise last_error
        raise LedgerAPIError(
            f"Request failed after {retry_count} retries: {last_error}"
        )

    async def get_balance(self, account: str) -> float:
        data = await self._request("GET", f"accounts/{account}/balance")
        try:
            return float(data["balance"])
        except (KeyError, TypeError, ValueError) as e:
            raise LedgerAPIError(f"Malformed balance response for {account}: {data}") from e

    async def debit(
        self, account: str, amount: float, bet_id: str | None = None
    ) -> LedgerAck:
        logger.info(f"Debiting {amount} from {account}")
        data = await self._request(
            "POST",
            f"accounts/{account}/debit",
            json_data={"amount": amount},
            idempotency_key=f"{bet_id}:debit" if bet_id else None,
        )
        return LedgerAck.from_api(data)

    async def credit(
        self, account: str, amount: float, bet_id: str | None = None
    ) -> LedgerAck:
        logger.info(f"Crediting {amount} to {account}")
        data = await self._request(
            "POST",
            f"accounts/{account}/credit",
            json_data={"amount": amount},
            idempotency_key=f"{bet_id}:credit" if bet_id else None,
        )
        return LedgerAck.from_api(data)

    async def record_bet_win(self, account: str, amount: float, bet_id: str) -> LedgerAck:
        data = await self._request(
            "POST",
            f"bets/{bet_id}/win",
            json_data={"account": account, "amount": amount},
            idempotency_key=f"{bet_id}:win",
        )
        return LedgerAck.from_api(data)

    async def record_bet_loss(self, account: str, amount: float, bet_id: str) -> LedgerAck:
        data = await self._request(
            "POST",
            f"bets/{bet_id}/loss",
            json_data={"account": account, "amount": amount},
            idempotency_key=f"{bet_id}:loss",
        )
        return LedgerAck.from_api(data)
