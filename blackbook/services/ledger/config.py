from typing import Literal

from pydantic import BaseModel, Field


class LedgerConfig(BaseModel):
    """Configuration for the external ledger backend."""

    mode: Literal["paper", "http"] = "paper"
    base_url: str = "http://127.0.0.1:8080/api/v1"
    api_token: str = ""
    timeout_seconds: float = 10.0
    max_connections: int = 20
    max_keepalive_connections: int = 10
    max_retries: int = 3
    paper_balances: dict[str, float] = Field(
        default_factory=lambda: {"alice": 1000.0, "bob": 1000.0}
    )

    @property
    def paper_mode(self) -> bool:
        return self.mode == "paper"

    @property
    def auth_headers(self) -> dict[str, str]:
        if not self.api_token:
            return {}
        return {"Authorization": f"Bearer {self.api_token}"}
