class LedgerAPIError(Exception):
    """Base exception for ledger backend errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class LedgerAccountNotFoundError(LedgerAPIError):
    """Account does not exist on the ledger."""

    pass


class LedgerInsufficientFundsError(LedgerAPIError):
    """Ledger rejected a debit larger than the account balance."""

    pass
