"""Configuration management using Pydantic Settings."""

import logging
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from blackbook.betting.models import Asset
from blackbook.services.coingecko.config import CoinGeckoConfig
from blackbook.services.ledger.config import LedgerConfig

logger = logging.getLogger(__name__)


class FeedConfig(BaseModel):
    """Price feed polling parameters."""

    assets: list[Asset] = Field(default_factory=lambda: [Asset.BTC, Asset.SOL])
    refresh_interval_seconds: float = 5.0
    request_timeout_seconds: float = 10.0
    max_price_age_seconds: float | None = 30.0  # older snapshots defer settlement

    @field_validator("assets")
    @classmethod
    def require_assets(cls, v: list[Asset]) -> list[Asset]:
        if not v:
            raise ValueError("At least one asset must be tracked")
        return v


class BettingConfig(BaseModel):
    """Bet validation and payout rules."""

    permitted_durations: list[int] = Field(default_factory=lambda: [60, 900])
    payout_multiplier: float = 2.0  # winner gets stake back plus equal profit
    settled_history_limit: int = Field(default=50, ge=1)
    history_display_limit: int = Field(default=10, ge=1)

    @field_validator("permitted_durations")
    @classmethod
    def positive_durations(cls, v: list[int]) -> list[int]:
        if not v or any(d <= 0 for d in v):
            raise ValueError("Durations must be positive seconds")
        return sorted(set(v))


class Settings(BaseSettings):
    """Main configuration class."""

    # Paths
    data_dir: Path = Path("data")

    # API Keys
    logfire_token: str = ""

    # Nested configuration sections
    feed: FeedConfig = Field(default_factory=FeedConfig)
    betting: BettingConfig = Field(default_factory=BettingConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    coingecko: CoinGeckoConfig = Field(default_factory=CoinGeckoConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("data_dir", mode="after")
    @classmethod
    def resolve_data_dir(cls, v: Path) -> Path:
        """Resolve data directory to absolute path."""
        return v.resolve()

    def load_yaml_config(self) -> None:
        """Load and merge YAML configuration."""
        config_path = self.data_dir / "config.yaml"

        if not config_path.exists():
            logger.warning(
                f"Config file not found: {config_path}. "
                "Using defaults. Run 'python -m blackbook init' to create it."
            )
            return

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)

            if not yaml_config:
                logger.warning(f"Empty config file: {config_path}")
                return

            for section_name in ["feed", "betting", "ledger", "coingecko"]:
                if section_name in yaml_config:
                    section = getattr(self, section_name)
                    yaml_section = yaml_config[section_name] or {}

                    section_dict = section.model_dump()
                    section_dict.update(yaml_section)

                    new_section = section.__class__(**section_dict)
                    setattr(self, section_name, new_section)

            logger.info(f"Loaded configuration from {config_path}")

        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to load config: {e}")
            raise


@lru_cache()
def get_settings() -> Settings:
    """Get singleton Settings instance."""
    settings = Settings()
    settings.load_yaml_config()
    return settings
