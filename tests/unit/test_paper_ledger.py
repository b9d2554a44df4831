"""Tests for paper-mode ledger behavior."""

import asyncio

import pytest

from blackbook.services.ledger import (
    Ledger,
    LedgerAccountNotFoundError,
    LedgerInsufficientFundsError,
    PaperLedger,
)


def test_paper_ledger_satisfies_protocol() -> None:
    assert isinstance(PaperLedger(), Ledger)


def test_debit_and_credit_move_balance() -> None:
    ledger = PaperLedger({"alice": 100.0})

    async def run() -> None:
        ack = await ledger.debit("alice", 30)
        assert ack.ok and ack.balance == 70.0
        ack = await ledger.credit("alice", 60)
        assert ack.balance == 130.0

    asyncio.run(run())
    assert [e.kind for e in ledger.entries] == ["debit", "credit"]


def test_overdraft_rejected() -> None:
    ledger = PaperLedger({"alice": 5.0})
    with pytest.raises(LedgerInsufficientFundsError):
        asyncio.run(ledger.debit("alice", 5.01))
    assert ledger.accounts["alice"] == 5.0
    assert ledger.entries == []


def test_unknown_account() -> None:
    with pytest.raises(LedgerAccountNotFoundError) as exc_info:
        asyncio.run(PaperLedger().get_balance("nobody"))
    assert exc_info.value.status_code == 404


def test_bet_records_are_audit_only() -> None:
    ledger = PaperLedger({"alice": 50.0})

    async def run() -> None:
        await ledger.record_bet_win("alice", 20.0, "bet_1")
        await ledger.record_bet_loss("alice", 10.0, "bet_2")

    asyncio.run(run())

    assert ledger.accounts["alice"] == 50.0
    assert [e.kind for e in ledger.entries_for("bet_1")] == ["bet_win"]
    assert ledger.entries_for("bet_2")[0].amount == 10.0
