"""Configuration management for DuoSpend."""

from decimal import Decimal
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError
from .models import PartnerProfile, SplitRatio


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Remote store (a stored URL set with `duospend set-url` takes precedence)
    sync_url: str | None = None
    sync_mode: Literal["atomic", "legacy"] = "atomic"
    sync_action: str = "sync"
    sync_timeout: float = Field(default=30.0, gt=0)

    # Settlement policy: share of combined spending carried by partner 1
    split_ratio: Decimal = Field(default=Decimal("0.5"), ge=0, le=1)

    # IANA timezone used for month and year bucketing
    timezone: str = "UTC"

    # Default partner names (until edited with `duospend partners`)
    partner_1_name: str = "Partner 1"
    partner_2_name: str = "Partner 2"

    # Spending coach (disabled without an API key)
    openai_api_key: str | None = None
    coach_model: str = "gpt-4o-mini"

    # Database path
    database_path: Path = Path.home() / ".duospend" / "duospend.db"

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value

    def __init__(self, **kwargs):
        """Initialize settings and create database directory if needed."""
        super().__init__(**kwargs)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def coach_enabled(self) -> bool:
        """Whether the spending coach can be offered."""
        return bool(self.openai_api_key)

    @property
    def ratio(self) -> SplitRatio:
        return SplitRatio(partner_1=self.split_ratio)

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def default_partners(self) -> PartnerProfile:
        """Partner names used until the user edits them."""
        return PartnerProfile(
            partner_1=self.partner_1_name, partner_2=self.partner_2_name
        )


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check your environment and .env file.\n"
            f"Error: {e}"
        ) from e
