from pydantic import BaseModel, Field


class CoinGeckoConfig(BaseModel):
    """Configuration for the CoinGecko price client."""

    base_url: str = "https://api.coingecko.com/api/v3"
    api_key: str = ""
    vs_currency: str = "usd"
    timeout_seconds: float = 10.0
    max_connections: int = 10
    max_keepalive_connections: int = 5
    max_retries: int = 3
    cache_ttl_seconds: float = 0.0
    asset_ids: dict[str, str] = Field(
        default_factory=lambda: {"BTC": "bitcoin", "SOL": "solana"}
    )

    @property
    def auth_headers(self) -> dict[str, str]:
        """Demo API key header, only sent when a key is configured."""
        if not self.api_key:
            return {}
        return {"x-cg-demo-api-key": self.api_key}
