"""Polled price feed with stale-but-available snapshots."""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime, timedelta, timezone
from typing import Protocol

from .exceptions import FeedUnavailable
from .models import Asset, PriceSnapshot

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
RefreshListener = Callable[[dict[Asset, PriceSnapshot]], Awaitable[object]]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PriceQuoteLike(Protocol):
    price: float


class PriceSource(Protocol):
    async def fetch_price(self, asset: Asset) -> PriceQuoteLike: ...


class PriceFeed:
    """Latest known price per asset, refreshed wholesale from a price source.

    A failed refresh keeps the previous snapshots and raises ``FeedUnavailable``
    so callers can show a degraded state instead of silently freezing.
    """

    def __init__(
        self,
        source: PriceSource,
        assets: Iterable[Asset] = (Asset.BTC, Asset.SOL),
        request_timeout: float = 10.0,
        clock: Clock = utc_now,
    ):
        self.source = source
        self.assets: tuple[Asset, ...] = tuple(Asset(a) for a in assets)
        if not self.assets:
            raise ValueError("PriceFeed needs at least one asset")
        self.request_timeout = request_timeout
        self._clock = clock
        self._snapshots: dict[Asset, PriceSnapshot] = {}
        self._listeners: list[RefreshListener] = []
        self._refresh_lock = asyncio.Lock()
        self._last_fetched_at: datetime | None = None

        self.last_error: str | None = None
        self.last_success_at: datetime | None = None
        self.consecutive_failures = 0

    @property
    def degraded(self) -> bool:
        return self.last_error is not None

    def latest(self, asset: Asset) -> PriceSnapshot | None:
        """Most recent successful snapshot for ``asset``, or None if never fetched."""
        return self._snapshots.get(asset)

    def snapshots(self) -> dict[Asset, PriceSnapshot]:
        return dict(self._snapshots)

    def add_refresh_listener(self, listener: RefreshListener) -> None:
        self._listeners.append(listener)

    async def _fetch(self, asset: Asset) -> float:
        try:
            quote = await asyncio.wait_for(
                self.source.fetch_price(asset), timeout=self.request_timeout
            )
        except asyncio.TimeoutError:
            raise FeedUnavailable(
                f"{asset.value} price fetch timed out after {self.request_timeout}s"
            ) from None
        except Exception as e:
            raise FeedUnavailable(f"{asset.value} price fetch failed: {e}") from e

        price = getattr(quote, "price", None)
        if (
            isinstance(price, bool)
            or not isinstance(price, (int, float))
            or not math.isfinite(price)
            or price <= 0
        ):
            raise FeedUnavailable(f"Malformed {asset.value} price: {price!r}")
        return float(price)

    def _next_fetched_at(self) -> datetime:
        now = self._clock()
        if self._last_fetched_at is not None and now <= self._last_fetched_at:
            now = self._last_fetched_at + timedelta(microseconds=1)
        return now

    async def refresh(self) -> dict[Asset, PriceSnapshot]:
        async with self._refresh_lock:
            results = await asyncio.gather(
                *(self._fetch(asset) for asset in self.assets),
                return_exceptions=True,
            )

            errors = [r for r in results if isinstance(r, BaseException)]
            if errors:
                self.consecutive_failures += 1
                self.last_error = "; ".join(str(e) for e in errors)
                logger.warning(
                    f"Price refresh failed ({self.consecutive_failures} in a row), "
                    f"keeping last snapshots: {self.last_error}"
                )
                raise FeedUnavailable(self.last_error) from errors[0]

            fetched_at = self._next_fetched_at()
            self._snapshots = {
                asset: PriceSnapshot(asset=asset, price=price, fetched_at=fetched_at)
                for asset, price in zip(self.assets, results)
            }
            self._last_fetched_at = fetched_at
            self.last_success_at = fetched_at
            self.last_error = None
            self.consecutive_failures = 0

            logger.debug(
                "Updated prices - "
                + ", ".join(f"{a.value}: {s.price}" for a, s in self._snapshots.items())
            )
            snapshots = dict(self._snapshots)

        await self._notify(snapshots)
        return snapshots

    async def _notify(self, snapshots: dict[Asset, PriceSnapshot]) -> None:
        for listener in list(self._listeners):
            try:
                await listener(snapshots)
            except Exception as e:
                logger.error(f"Refresh listener {listener!r} failed: {e}")
