from .client import CoinGeckoClient
from .config import CoinGeckoConfig
from .exceptions import (
    CoinGeckoAPIError,
    CoinGeckoRateLimitError,
    CoinGeckoResponseError,
)
from .models import PriceQuote

__all__ = [
    "CoinGeckoClient",
    "CoinGeckoConfig",
    "CoinGeckoAPIError",
    "CoinGeckoRateLimitError",
    "CoinGeckoResponseError",
    "PriceQuote",
]
