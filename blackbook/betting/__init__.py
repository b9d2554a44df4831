"""Live price-direction betting core.

This package provides:
- Domain models (Bet, PriceSnapshot, SettlementResult) and the error taxonomy
- PriceFeed: polled prices with stale-but-available snapshots
- BetRegistry: in-memory bets keyed by opaque ID
- BetLifecycleEngine: placement and settlement
- SettlementScheduler: per-bet timers plus the refresh sweep

Runtime wiring lives in ``blackbook.betting.service``.
"""

from .engine import BetLifecycleEngine, did_bet_win
from .events import BetEventHub
from .exceptions import (
    BetNotFound,
    BettingError,
    DuplicateId,
    FeedUnavailable,
    InsufficientBalance,
    InvalidAmount,
    InvalidDuration,
    InvalidTransition,
    LedgerCallFailed,
    PriceUnavailable,
    SettlementDeferred,
)
from .feed import PriceFeed, PriceSource
from .models import Asset, Bet, BetStatus, Direction, PriceSnapshot, SettlementResult
from .registry import BetRegistry
from .scheduler import SettlementScheduler

__all__ = [
    # Models
    "Asset",
    "Bet",
    "BetStatus",
    "Direction",
    "PriceSnapshot",
    "SettlementResult",
    # Components
    "BetEventHub",
    "BetLifecycleEngine",
    "BetRegistry",
    "PriceFeed",
    "PriceSource",
    "SettlementScheduler",
    "did_bet_win",
    # Errors
    "BettingError",
    "BetNotFound",
    "DuplicateId",
    "FeedUnavailable",
    "InsufficientBalance",
    "InvalidAmount",
    "InvalidDuration",
    "InvalidTransition",
    "LedgerCallFailed",
    "PriceUnavailable",
    "SettlementDeferred",
]
