"""Runtime wiring: builds the betting core from Settings and drives the feed cadence."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack
from datetime import timezone
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from blackbook.config import Settings
from blackbook.services.coingecko import CoinGeckoClient
from blackbook.services.ledger import HttpLedgerClient, Ledger, PaperLedger

from .engine import BetLifecycleEngine
from .events import BetEventHub
from .exceptions import FeedUnavailable
from .feed import Clock, PriceFeed, PriceSource, utc_now
from .registry import BetRegistry
from .scheduler import SettlementScheduler

logger = logging.getLogger(__name__)

REFRESH_JOB_ID = "price-feed-refresh"


class LiveBettingService:
    """Owns the feed, registry, engine and settlement scheduler for one process.

    Use as an async context manager; entering starts the APScheduler loop and
    the fixed-cadence price refresh, leaving shuts both down.
    """

    def __init__(
        self,
        settings: Settings,
        price_source: PriceSource | None = None,
        ledger: Ledger | None = None,
        clock: Clock = utc_now,
    ):
        self.settings = settings
        self._price_source = price_source
        self._ledger = ledger
        self._clock = clock
        self._stack: AsyncExitStack | None = None

        self.events = BetEventHub()
        self.registry = BetRegistry(
            settled_history_limit=settings.betting.settled_history_limit
        )
        self.scheduler = AsyncIOScheduler(timezone=timezone.utc)

        self.feed: PriceFeed | None = None
        self.engine: BetLifecycleEngine | None = None
        self.settlement: SettlementScheduler | None = None

    async def __aenter__(self) -> LiveBettingService:
        self._stack = AsyncExitStack()
        try:
            source = self._price_source
            if source is None:
                source = await self._stack.enter_async_context(
                    CoinGeckoClient(self.settings.coingecko)
                )

            ledger = self._ledger
            if ledger is None:
                ledger = await self._open_ledger()

            feed_cfg = self.settings.feed
            betting_cfg = self.settings.betting
            self.feed = PriceFeed(
                source,
                assets=feed_cfg.assets,
                request_timeout=feed_cfg.request_timeout_seconds,
                clock=self._clock,
            )
            self.engine = BetLifecycleEngine(
                self.registry,
                self.feed,
                ledger,
                events=self.events,
                permitted_durations=betting_cfg.permitted_durations,
                payout_multiplier=betting_cfg.payout_multiplier,
                ledger_timeout=self.settings.ledger.timeout_seconds,
                max_price_age_seconds=feed_cfg.max_price_age_seconds,
                history_limit=betting_cfg.history_display_limit,
                clock=self._clock,
            )
            self.settlement = SettlementScheduler(
                self.engine, self.scheduler, clock=self._clock
            )

            await self.tick()
            self.scheduler.add_job(
                self.tick,
                IntervalTrigger(seconds=feed_cfg.refresh_interval_seconds),
                id=REFRESH_JOB_ID,
                name="Price feed refresh",
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )
            self.scheduler.start()
            logger.info(
                f"Live betting started (assets={[a.value for a in feed_cfg.assets]}, "
                f"refresh every {feed_cfg.refresh_interval_seconds}s, "
                f"ledger={self.settings.ledger.mode})"
            )
        except BaseException:
            await self._stack.aclose()
            self._stack = None
            raise
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        if self.settlement is not None:
            try:
                await self.settlement.drain()
            except Exception as e:
                logger.error(f"Final settlement sweep failed: {e}")
        if self._stack is not None:
            await self._stack.aclose()
            self._stack = None
        logger.info(
            f"Live betting stopped ({len(self.registry.active_ids())} bets still active)"
        )

    async def _open_ledger(self) -> Ledger:
        cfg = self.settings.ledger
        if cfg.paper_mode:
            return PaperLedger(cfg.paper_balances)
        assert self._stack is not None
        return await self._stack.enter_async_context(HttpLedgerClient(cfg))

    async def tick(self) -> bool:
        """Refresh prices once; a successful refresh starts the settlement sweep.

        Returns False when the feed is degraded; the next tick retries.
        """
        assert self.feed is not None
        try:
            await self.feed.refresh()
        except FeedUnavailable as e:
            logger.warning(f"Price feed degraded: {e}")
            return False
        return True
