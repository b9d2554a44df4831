from __future__ import annotations

import asyncio
import logging
import math
import time
from typing import Any

import httpx
from pydantic import ValidationError

from .config import CoinGeckoConfig
from .exceptions import (
    CoinGeckoAPIError,
    CoinGeckoRateLimitError,
    CoinGeckoResponseError,
)
from .models import PriceQuote

logger = logging.getLogger(__name__)


class CoinGeckoClient:
    def __init__(
        self,
        config: CoinGeckoConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or CoinGeckoConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._cache: dict[str, tuple[float, PriceQuote]] = {}

        logger.info(
            f"Initialized CoinGeckoClient (assets={sorted(self.config.asset_ids)}, "
            f"cache_ttl={self.config.cache_ttl_seconds}s)"
        )

    async def __aenter__(self) -> CoinGeckoClient:
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
            logger.info("Closed CoinGeckoClient")

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "CoinGeckoClient must be used as async context manager"
            )
        return self._client

    async def _request(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        retry_count = 0
        last_error: Exception | None = None

        while retry_count < self.config.max_retries:
            try:
                response = await self.client.get(endpoint, params=params)

                if response.status_code == 429:
                    wait_time = 2 ** retry_count
                    logger.warning(f"Rate limited, waiting {wait_time}s...")
                    last_error = CoinGeckoRateLimitError(
                        "Rate limit exceeded", status_code=429
                    )
                    retry_count += 1
                    if retry_count < self.config.max_retries:
                        await asyncio.sleep(wait_time)
                    continue
                elif response.status_code >= 500:
                    wait_time = 2 ** retry_count
                    logger.warning(
                        f"Server error {response.status_code}, "
                        f"retrying in {wait_time}s..."
                    )
                    last_error = CoinGeckoAPIError(
                        f"Server error {response.status_code}",
                        status_code=response.status_code,
                    )
                    retry_count += 1
                    if retry_count < self.config.max_retries:
                        await asyncio.sleep(wait_time)
                    continue
                elif response.status_code >= 400:
                    raise CoinGeckoAPIError(
                        f"CoinGecko API error: {response.status_code}",
                        status_code=response.status_code,
                    )

                try:
                    return response.json()
                except ValueError as e:
                    raise CoinGeckoResponseError(f"Invalid JSON response: {e}") from e

            except httpx.TimeoutException as e:
                last_error = e
                retry_count += 1
                if retry_count < self.config.max_retries:
                    logger.warning(f"Timeout, retrying ({retry_count})...")
                    await asyncio.sleep(1)

            except httpx.RequestError as e:
                last_error = e
                logger.error(f"Network error: {e}")
                break

        if isinstance(last_error, CoinGeckoAPIError):
            raise last_error
        raise CoinGeckoAPIError(
            f"Request failed after {retry_count} retries: {last_error}"
        )

    def _cached(self, coin_id: str) -> PriceQuote | None:
        if self.config.cache_ttl_seconds <= 0:
            return None
        entry = self._cache.get(coin_id)
        if entry is None:
            return None
        stored_at, quote = entry
        if time.monotonic() - stored_at >= self.config.cache_ttl_seconds:
            del self._cache[coin_id]
            return None
        return quote

    def cache_time_remaining(self, asset: str) -> int:
        """Seconds until the cached quote for ``asset`` expires (0 if none)."""
        coin_id = self.config.asset_ids.get(asset)
        entry = self._cache.get(coin_id) if coin_id else None
        if entry is None or self.config.cache_ttl_seconds <= 0:
            return 0
        elapsed = time.monotonic() - entry[0]
        return math.ceil(max(0.0, self.config.cache_ttl_seconds - elapsed))

    async def fetch_price(self, asset: str) -> PriceQuote:
        coin_id = self.config.asset_ids.get(asset)
        if coin_id is None:
            raise CoinGeckoAPIError(f"No CoinGecko id configured for asset {asset!r}")

        cached = self._cached(coin_id)
        if cached is not None:
            return cached

        params = {
            "ids": coin_id,
            "vs_currencies": self.config.vs_currency,
            "include_last_updated_at": "true",
        }
        data = await self._request("simple/price", params=params)

        entry = data.get(coin_id) if isinstance(data, dict) else None
        if not isinstance(entry, dict) or self.config.vs_currency not in entry:
            raise CoinGeckoResponseError(
                f"Invalid CoinGecko response: missing {coin_id} price data"
            )

        try:
            quote = PriceQuote.from_api(entry, self.config.vs_currency)
        except (ValidationError, ValueError, TypeError) as e:
            raise CoinGeckoResponseError(
                f"Invalid CoinGecko response for {coin_id}: {e}"
            ) from e

        if not math.isfinite(quote.price) or quote.price <= 0:
            raise CoinGeckoResponseError(
                f"Invalid CoinGecko price for {coin_id}: {quote.price}"
            )

        if self.config.cache_ttl_seconds > 0:
            self._cache[coin_id] = (time.monotonic(), quote)
        return quote
