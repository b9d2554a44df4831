"""Settlement triggers: a one-shot timer per bet plus a sweep on every price refresh."""

from __future__ import annotations

import asyncio
import logging

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from .engine import BetLifecycleEngine
from .exceptions import BetNotFound, InvalidTransition, SettlementDeferred
from .feed import Clock, PriceFeed, utc_now
from .models import Asset, Bet, PriceSnapshot, SettlementResult

logger = logging.getLogger(__name__)


def timer_job_id(bet_id: str) -> str:
    return f"settle:{bet_id}"


class SettlementScheduler:
    """Make sure every ACTIVE bet is evaluated once, at or after its end time.

    Two redundant triggers feed ``engine.settle``: the APScheduler timer armed
    when the bet is created, and a sweep after each successful feed refresh.
    Whichever arrives second finds the bet terminal and does nothing.
    The sweep runs as a separate task; ``refresh()`` returns before its
    ledger calls finish.
    """

    def __init__(
        self,
        engine: BetLifecycleEngine,
        scheduler: AsyncIOScheduler,
        feed: PriceFeed | None = None,
        clock: Clock = utc_now,
    ):
        self.engine = engine
        self.registry = engine.registry
        self.scheduler = scheduler
        self._clock = clock
        self._sweep_task: asyncio.Task | None = None

        engine.events.on_bet_created(self.arm)
        (feed or engine.feed).add_refresh_listener(self._on_refresh)

    def arm(self, bet: Bet) -> None:
        self.scheduler.add_job(
            self.on_timer,
            DateTrigger(run_date=bet.end_time),
            args=[bet.id],
            id=timer_job_id(bet.id),
            name=f"Settle {bet.asset.value} {bet.direction.value} bet {bet.id}",
            misfire_grace_time=None,
            replace_existing=True,
        )
        logger.debug(f"Armed settlement timer for {bet.id} at {bet.end_time.isoformat()}")

    def disarm(self, bet_id: str) -> bool:
        try:
            self.scheduler.remove_job(timer_job_id(bet_id))
        except JobLookupError:
            return False
        logger.debug(f"Disarmed settlement timer for {bet_id}")
        return True

    def discard(self, bet_id: str) -> Bet:
        """Drop a bet from the registry and invalidate its pending timer."""
        bet = self.registry.remove(bet_id)
        self.disarm(bet_id)
        logger.info(f"Discarded bet {bet_id} ({bet.status.value})")
        return bet

    def pending_timers(self) -> list[str]:
        prefix = timer_job_id("")
        return [
            job.id[len(prefix):]
            for job in self.scheduler.get_jobs()
            if job.id.startswith(prefix)
        ]

    async def _try_settle(self, bet_id: str, trigger: str) -> SettlementResult | None:
        try:
            bet = self.registry.get(bet_id)
        except BetNotFound:
            logger.debug(f"{trigger}: bet {bet_id} no longer registered, skipping")
            return None
        if not bet.is_active:
            logger.debug(f"{trigger}: bet {bet_id} already {bet.status.value}")
            return None

        try:
            result = await self.engine.settle(bet_id)
        except SettlementDeferred as e:
            logger.info(f"{trigger}: settlement of {bet_id} deferred to next tick: {e}")
            return None
        except (InvalidTransition, BetNotFound):
            logger.debug(f"{trigger}: bet {bet_id} settled by the other trigger")
            return None

        logger.info(f"{trigger}: settled {bet_id} as {result.bet.status.value}")
        return result

    async def on_timer(self, bet_id: str) -> SettlementResult | None:
        return await self._try_settle(bet_id, "timer")

    async def sweep(self) -> list[SettlementResult]:
        """Settle every expired ACTIVE bet concurrently."""
        now = self._clock()
        expired = []
        for bet_id in self.registry.active_ids():
            try:
                bet = self.registry.get(bet_id)
            except BetNotFound:
                continue
            if bet.is_expired(now):
                expired.append(bet_id)
        if not expired:
            return []

        outcomes = await asyncio.gather(
            *(self._try_settle(bet_id, "sweep") for bet_id in expired),
            return_exceptions=True,
        )

        results: list[SettlementResult] = []
        for bet_id, outcome in zip(expired, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"sweep: settling {bet_id} failed: {outcome!r}")
            elif outcome is not None:
                self.disarm(bet_id)
                results.append(outcome)
        return results

    async def drain(self) -> list[SettlementResult]:
        """Wait for the sweep started by the last refresh, if any."""
        task = self._sweep_task
        if task is None:
            return []
        return await task

    def _sweep_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Sweep task failed: {error!r}")

    async def _on_refresh(self, snapshots: dict[Asset, PriceSnapshot]) -> None:
        if self._sweep_task is not None and not self._sweep_task.done():
            logger.debug("Previous sweep still running; next refresh will catch up")
            return
        self._sweep_task = asyncio.create_task(self.sweep())
        self._sweep_task.add_done_callback(self._sweep_done)
