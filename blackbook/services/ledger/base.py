"""Ledger contract consumed by the betting core."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .models import LedgerAck


@runtime_checkable
class Ledger(Protocol):
    async def get_balance(self, account: str) -> float: ...

    async def debit(
        self, account: str, amount: float, bet_id: str | None = None
    ) -> LedgerAck: ...

    async def credit(
        self, account: str, amount: float, bet_id: str | None = None
    ) -> LedgerAck: ...

    async def record_bet_win(
        self, account: str, amount: float, bet_id: str
    ) -> LedgerAck: ...

    async def record_bet_loss(
        self, account: str, amount: float, bet_id: str
    ) -> LedgerAck: ...
