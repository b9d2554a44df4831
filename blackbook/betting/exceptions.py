class BettingError(Exception):
    """Base exception for the live betting core."""

    pass


class InvalidAmount(BettingError, ValueError):
    """Stake is zero, negative or not a finite number."""

    pass


class InvalidDuration(BettingError, ValueError):
    """Requested window is not one of the permitted durations."""

    pass


class InsufficientBalance(BettingError):
    """Stake exceeds the account balance reported by the ledger."""

    def __init__(self, account: str, amount: float, balance: float):
        super().__init__(
            f"Insufficient balance for {account}: stake {amount} exceeds balance {balance}"
        )
        self.account = account
        self.amount = amount
        self.balance = balance


class PriceUnavailable(BettingError):
    """No price snapshot exists yet, so a bet has no starting reference."""

    pass


class DuplicateId(BettingError):
    """Bet identifier already present in (or previously issued by) the registry."""

    pass


class BetNotFound(BettingError, KeyError):
    """No bet with the given identifier is held by the registry."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Bet not found"


class InvalidTransition(BettingError):
    """Bet is not ACTIVE, or the requested status is not terminal."""

    pass


class SettlementDeferred(BettingError):
    """No usable price right now; the bet stays ACTIVE until the next tick."""

    pass


class FeedUnavailable(BettingError):
    """Price source failed or returned malformed data; last snapshots retained."""

    pass


class LedgerCallFailed(BettingError):
    """A ledger call errored or did not answer within its timeout."""

    def __init__(self, operation: str, message: str):
        super().__init__(f"Ledger {operation} failed: {message}")
        self.operation = operation
