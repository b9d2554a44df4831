from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

LedgerEntryKind = Literal["debit", "credit", "bet_win", "bet_loss"]


class LedgerAck(BaseModel):
    """Acknowledgement returned by every mutating ledger call."""

    ok: bool = True
    message: str = ""
    balance: float | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> LedgerAck:
        return cls(
            ok=bool(data.get("ok", True)),
            message=str(data.get("message", "")),
            balance=data.get("balance"),
        )


class LedgerEntry(BaseModel):
    """Audit trail row kept by the paper ledger."""

    kind: LedgerEntryKind
    account: str
    amount: float
    bet_id: str | None = None
    balance_after: float
    recorded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
