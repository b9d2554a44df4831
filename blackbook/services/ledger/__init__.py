from .base import Ledger
from .client import HttpLedgerClient
from .config import LedgerConfig
from .exceptions import (
    LedgerAccountNotFoundError,
    LedgerAPIError,
    LedgerInsufficientFundsError,
)
from .models import LedgerAck, LedgerEntry
from .paper import PaperLedger

__all__ = [
    "Ledger",
    "HttpLedgerClient",
    "PaperLedger",
    "LedgerConfig",
    "LedgerAPIError",
    "LedgerAccountNotFoundError",
    "LedgerInsufficientFundsError",
    "LedgerAck",
    "LedgerEntry",
]
