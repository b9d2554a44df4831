"""Domain models for live price-direction bets."""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Asset(str, Enum):
    BTC = "BTC"
    SOL = "SOL"


class Direction(str, Enum):
    HIGHER = "HIGHER"
    LOWER = "LOWER"


class BetStatus(str, Enum):
    ACTIVE = "ACTIVE"
    WON = "WON"
    LOST = "LOST"

    @property
    def is_terminal(self) -> bool:
        return self is not BetStatus.ACTIVE


def generate_bet_id() -> str:
    """Generate an opaque bet ID with 'bet_' prefix."""
    return f"bet_{uuid4().hex}"


class PriceSnapshot(BaseModel):
    """Immutable point-in-time price reading for one asset."""

    model_config = ConfigDict(frozen=True)

    asset: Asset
    price: float = Field(gt=0)
    fetched_at: datetime


class Bet(BaseModel):
    """A single wager on price direction over a fixed window.

    Instances are frozen. The registry swaps in a terminal copy exactly once
    (ACTIVE -> WON/LOST); every other field is fixed at creation.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=generate_bet_id)
    asset: Asset
    account: str
    direction: Direction
    amount: float = Field(gt=0, allow_inf_nan=False)
    start_price: float = Field(gt=0)
    end_price: float | None = None
    duration: int = Field(gt=0, description="Window length in seconds")
    start_time: datetime
    end_time: datetime
    status: BetStatus = BetStatus.ACTIVE
    settled_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def derive_end_time(cls, data: object) -> object:
        if isinstance(data, dict) and data.get("end_time") is None:
            start, duration = data.get("start_time"), data.get("duration")
            if isinstance(start, datetime) and isinstance(duration, int):
                data = {**data, "end_time": start + timedelta(seconds=duration)}
        return data

    @model_validator(mode="after")
    def check_invariants(self) -> Bet:
        if self.end_time != self.start_time + timedelta(seconds=self.duration):
            raise ValueError("end_time must equal start_time + duration")
        if (self.end_price is not None) != self.status.is_terminal:
            raise ValueError("end_price must be set if and only if the bet is settled")
        return self

    @property
    def is_active(self) -> bool:
        return self.status is BetStatus.ACTIVE

    def is_expired(self, now: datetime) -> bool:
        return self.end_time <= now

    def remaining_seconds(self, now: datetime) -> int:
        """Countdown shown next to an active bet, floored at zero."""
        return max(0, int((self.end_time - now).total_seconds()))

    @property
    def price_change_pct(self) -> float | None:
        if self.end_price is None:
            return None
        return (self.end_price - self.start_price) / self.start_price * 100

    def payout(self, multiplier: float) -> float:
        return self.amount * multiplier


class SettlementResult(BaseModel):
    """Outcome of one settlement, including how the ledger call went."""

    bet: Bet
    won: bool
    payout: float = 0.0
    ledger_ok: bool = True
    ledger_error: str | None = None
