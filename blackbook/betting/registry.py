"""In-memory registry of in-flight and recently settled bets."""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from datetime import datetime

from .exceptions import BetNotFound, DuplicateId, InvalidTransition
from .models import Bet, BetStatus

logger = logging.getLogger(__name__)


class BetRegistry:
    """Bets keyed by ID, ACTIVE until settled and then kept for history.

    ``lock`` is the exclusive section placement holds across
    "read price snapshot -> debit -> insert".
    """

    def __init__(self, settled_history_limit: int | None = 50):
        if settled_history_limit is not None and settled_history_limit < 1:
            raise ValueError("settled_history_limit must be >= 1")
        self.settled_history_limit = settled_history_limit
        self.lock = asyncio.Lock()
        self._bets: dict[str, Bet] = {}
        self._issued_ids: set[str] = set()
        self._settled_order: OrderedDict[str, None] = OrderedDict()

    def __len__(self) -> int:
        return len(self._bets)

    def __contains__(self, bet_id: object) -> bool:
        return bet_id in self._bets

    def insert(self, bet: Bet) -> None:
        if bet.id in self._issued_ids:
            raise DuplicateId(f"Bet ID already used: {bet.id}")
        self._issued_ids.add(bet.id)
        self._bets[bet.id] = bet
        if bet.status.is_terminal:
            self._remember_settled(bet.id)

    def get(self, bet_id: str) -> Bet:
        try:
            return self._bets[bet_id]
        except KeyError:
            raise BetNotFound(f"Bet not found: {bet_id}") from None

    def update_terminal(
        self,
        bet_id: str,
        end_price: float,
        status: BetStatus,
        settled_at: datetime | None = None,
    ) -> Bet:
        bet = self.get(bet_id)
        if not bet.is_active:
            raise InvalidTransition(
                f"Bet {bet_id} is already {bet.status.value}; cannot move to {status.value}"
            )
        if not status.is_terminal:
            raise InvalidTransition(f"{status.value} is not a terminal status")

        settled = bet.model_copy(
            update={"end_price": end_price, "status": status, "settled_at": settled_at}
        )
        self._bets[bet_id] = settled
        self._remember_settled(bet_id)
        return settled

    def remove(self, bet_id: str) -> Bet:
        bet = self.get(bet_id)
        del self._bets[bet_id]
        self._settled_order.pop(bet_id, None)
        return bet

    def active_ids(self) -> tuple[str, ...]:
        """IDs of bets ACTIVE at call time; later mutation never changes the result."""
        return tuple(bet_id for bet_id, bet in self._bets.items() if bet.is_active)

    def active_bets(self) -> list[Bet]:
        return [bet for bet in self._bets.values() if bet.is_active]

    def history(self, limit: int | None = 10) -> list[Bet]:
        """Bets newest first, ACTIVE and settled alike."""
        ordered = sorted(self._bets.values(), key=lambda b: b.start_time, reverse=True)
        return ordered if limit is None else ordered[:limit]

    def _remember_settled(self, bet_id: str) -> None:
        self._settled_order[bet_id] = None
        if self.settled_history_limit is None:
            return
        while len(self._settled_order) > self.settled_history_limit:
            evicted, _ = self._settled_order.popitem(last=False)
            self._bets.pop(evicted, None)
            logger.debug(f"Evicted settled bet {evicted} from registry")
