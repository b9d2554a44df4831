from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator


class PriceQuote(BaseModel):
    """A single price reading returned by a price source."""

    price: float
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_timestamp(cls, v: Any) -> datetime:
        if v is None or v == "":
            return datetime.now(timezone.utc)
        if isinstance(v, datetime):
            return v
        if isinstance(v, (int, float)):
            return datetime.fromtimestamp(v, tz=timezone.utc)
        return datetime.fromisoformat(str(v).replace("Z", "+00:00"))

    @classmethod
    def from_api(cls, data: dict[str, Any], vs_currency: str) -> PriceQuote:
        return cls(
            price=data[vs_currency],
            timestamp=data.get("last_updated_at"),
        )
