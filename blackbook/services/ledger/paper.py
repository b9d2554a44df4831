"""In-memory ledger used in paper mode and by the test suite."""

from __future__ import annotations

import logging

from .exceptions import LedgerAccountNotFoundError, LedgerInsufficientFundsError
from .models import LedgerAck, LedgerEntry, LedgerEntryKind

logger = logging.getLogger(__name__)


class PaperLedger:
    """Balances plus an append-only audit trail, no network involved."""

    def __init__(self, balances: dict[str, float] | None = None):
        self._balances: dict[str, float] = dict(balances or {})
        self.entries: list[LedgerEntry] = []

        logger.info(f"Initialized PaperLedger (accounts={len(self._balances)})")

    @property
    def accounts(self) -> dict[str, float]:
        return dict(self._balances)

    def _require(self, account: str) -> float:
        try:
            return self._balances[account]
        except KeyError:
            raise LedgerAccountNotFoundError(
                f"Account not found: {account}", status_code=404
            ) from None

    def _append(
        self,
        kind: LedgerEntryKind,
        account: str,
        amount: float,
        bet_id: str | None = None,
    ) -> LedgerAck:
        balance = self._balances[account]
        self.entries.append(
            LedgerEntry(
                kind=kind,
                account=account,
                amount=amount,
                bet_id=bet_id,
                balance_after=balance,
            )
        )
        return LedgerAck(ok=True, message=f"{kind} {amount} for {account}", balance=balance)

    def entries_for(self, bet_id: str) -> list[LedgerEntry]:
        return [entry for entry in self.entries if entry.bet_id == bet_id]

    async def get_balance(self, account: str) -> float:
        return self._require(account)

    async def debit(
        self, account: str, amount: float, bet_id: str | None = None
    ) -> LedgerAck:
        balance = self._require(account)
        if amount > balance:
            raise LedgerInsufficientFundsError(
                f"Insufficient funds: {account} has {balance}, needs {amount}"
            )
        self._balances[account] = balance - amount
        return self._append("debit", account, amount, bet_id)

    async def credit(
        self, account: str, amount: float, bet_id: str | None = None
    ) -> LedgerAck:
        balance = self._require(account)
        self._balances[account] = balance + amount
        return self._append("credit", account, amount, bet_id)

    async def record_bet_win(self, account: str, amount: float, bet_id: str) -> LedgerAck:
        self._require(account)
        return self._append("bet_win", account, amount, bet_id)

    async def record_bet_loss(self, account: str, amount: float, bet_id: str) -> LedgerAck:
        self._require(account)
        return self._append("bet_loss", account, amount, bet_id)
