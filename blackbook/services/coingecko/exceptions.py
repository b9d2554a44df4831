class CoinGeckoAPIError(Exception):
    """Base exception for CoinGecko API errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class CoinGeckoRateLimitError(CoinGeckoAPIError):
    """Rate limit exceeded."""

    pass


class CoinGeckoResponseError(CoinGeckoAPIError):
    """Response was missing or carried an unusable price."""

    pass
