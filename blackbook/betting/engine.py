"""Bet lifecycle: validation and placement, then settlement against the feed."""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Awaitable, Iterable
from datetime import timedelta
from typing import TypeVar

from blackbook.services.ledger import Ledger

from .events import BetEventHub
from .exceptions import (
    InsufficientBalance,
    InvalidAmount,
    InvalidDuration,
    InvalidTransition,
    LedgerCallFailed,
    PriceUnavailable,
    SettlementDeferred,
)
from .feed import Clock, PriceFeed, utc_now
from .models import Asset, Bet, BetStatus, Direction, SettlementResult
from .registry import BetRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_DURATIONS = (60, 900)


def did_bet_win(direction: Direction, start_price: float, end_price: float) -> bool:
    """Resolve a bet; an unchanged price counts as not increased."""
    price_increased = end_price > start_price
    return (direction is Direction.HIGHER and price_increased) or (
        direction is Direction.LOWER and not price_increased
    )


class BetLifecycleEngine:
    def __init__(
        self,
        registry: BetRegistry,
        feed: PriceFeed,
        ledger: Ledger,
        events: BetEventHub | None = None,
        permitted_durations: Iterable[int] = DEFAULT_DURATIONS,
        payout_multiplier: float = 2.0,
        ledger_timeout: float = 10.0,
        max_price_age_seconds: float | None = 30.0,
        history_limit: int = 10,
        clock: Clock = utc_now,
    ):
        self.registry = registry
        self.feed = feed
        self.ledger = ledger
        self.events = events or BetEventHub()
        self.permitted_durations = frozenset(int(d) for d in permitted_durations)
        self.payout_multiplier = payout_multiplier
        self.ledger_timeout = ledger_timeout
        self.max_price_age_seconds = max_price_age_seconds
        self.history_limit = history_limit
        self._clock = clock

    async def _ledger_call(self, operation: str, call: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self.ledger_timeout)
        except asyncio.TimeoutError:
            raise LedgerCallFailed(
                operation, f"no answer within {self.ledger_timeout}s"
            ) from None
        except Exception as e:
            raise LedgerCallFailed(operation, str(e)) from e

    def _validate_amount(self, amount: float) -> float:
        if (
            isinstance(amount, bool)
            or not isinstance(amount, (int, float))
            or not math.isfinite(amount)
            or amount <= 0
        ):
            raise InvalidAmount(f"Bet amount must be a positive number, got {amount!r}")
        return float(amount)

    def _validate_duration(self, duration: int) -> int:
        if duration not in self.permitted_durations:
            allowed = ", ".join(str(d) for d in sorted(self.permitted_durations))
            raise InvalidDuration(
                f"Duration {duration!r}s not permitted (allowed: {allowed})"
            )
        return int(duration)

    async def place(
        self,
        account: str,
        asset: Asset | str,
        direction: Direction | str,
        amount: float,
        duration: int,
    ) -> Bet:
        amount = self._validate_amount(amount)
        duration = self._validate_duration(duration)
        asset = Asset(asset)
        direction = Direction(direction)

        async with self.registry.lock:
            balance = await self._ledger_call(
                "get_balance", self.ledger.get_balance(account)
            )
            if amount > balance:
                raise InsufficientBalance(account, amount, balance)

            snapshot = self.feed.latest(asset)
            if snapshot is None:
                raise PriceUnavailable(
                    f"No {asset.value} price yet; cannot set a starting reference"
                )

            start_time = self._clock()
            bet = Bet(
                asset=asset,
                account=account,
                direction=direction,
                amount=amount,
                start_price=snapshot.price,
                duration=duration,
                start_time=start_time,
                end_time=start_time + timedelta(seconds=duration),
            )

            await self._ledger_call(
                "debit", self.ledger.debit(account, amount, bet_id=bet.id)
            )
            self.registry.insert(bet)

        logger.info(
            f"{account} placed bet {bet.id}: {amount} on {asset.value} "
            f"{direction.value} @ {bet.start_price} - resolves at "
            f"{bet.end_time.isoformat()} ({duration}s)"
        )
        self.events.bet_created(bet)
        return bet

    def _settlement_price(self, bet: Bet) -> float:
        snapshot = self.feed.latest(bet.asset)
        if snapshot is None:
            raise SettlementDeferred(
                f"No {bet.asset.value} price available to settle {bet.id}"
            )

        if snapshot.fetched_at <= bet.start_time:
            raise SettlementDeferred(
                f"No {bet.asset.value} price newer than the start of {bet.id}"
            )

        if self.max_price_age_seconds is not None:
            age = (self._clock() - snapshot.fetched_at).total_seconds()
            if age > self.max_price_age_seconds:
                raise SettlementDeferred(
                    f"{bet.asset.value} price is {age:.0f}s old; waiting for a fresh one"
                )
        return snapshot.price

    async def settle(self, bet_id: str) -> SettlementResult:
        bet = self.registry.get(bet_id)
        if not bet.is_active:
            raise InvalidTransition(f"Bet {bet_id} already settled as {bet.status.value}")

        end_price = self._settlement_price(bet)
        won = did_bet_win(bet.direction, bet.start_price, end_price)
        status = BetStatus.WON if won else BetStatus.LOST

        # No await between the ACTIVE check above and this transition.
        settled = self.registry.update_terminal(
            bet_id, end_price, status, settled_at=self._clock()
        )

        payout = settled.payout(self.payout_multiplier) if won else 0.0
        result = SettlementResult(bet=settled, won=won, payout=payout)
        try:
            if won:
                await self._ledger_call(
                    "credit", self.ledger.credit(settled.account, payout, bet_id=bet_id)
                )
                await self._ledger_call(
                    "record_bet_win",
                    self.ledger.record_bet_win(settled.account, payout, bet_id),
                )
                logger.info(
                    f"{settled.account} WON {bet_id}: {settled.asset.value} "
                    f"{settled.start_price} -> {end_price}. Payout: {payout}"
                )
            else:
                await self._ledger_call(
                    "record_bet_loss",
                    self.ledger.record_bet_loss(settled.account, settled.amount, bet_id),
                )
                logger.info(
                    f"{settled.account} LOST {bet_id}: {settled.asset.value} "
                    f"{settled.start_price} -> {end_price}. Lost: {settled.amount}"
                )
        except LedgerCallFailed as e:
            logger.error(f"Bet {bet_id} settled as {status.value} but ledger update failed: {e}")
            result = result.model_copy(update={"ledger_ok": False, "ledger_error": str(e)})

        self.events.bet_settled(settled)
        return result

    def get(self, bet_id: str) -> Bet:
        return self.registry.get(bet_id)

    def active_bets(self) -> list[Bet]:
        return self.registry.active_bets()

    def history(self, limit: int | None = None) -> list[Bet]:
        """Newest bets first, capped at ``history_limit`` unless ``limit`` is given."""
        return self.registry.history(self.history_limit if limit is None else limit)
