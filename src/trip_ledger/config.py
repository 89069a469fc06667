"""Configuration management for trip-ledger."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Snapshot store
    database_path: Path = Path.home() / ".trip_ledger" / "trip_ledger.db"
    snapshot_key: str = "default"

    # Display
    currency_symbol: str = "₹"

    # Engine defaults
    forecast_lookahead: int = Field(default=3, ge=0)
    activity_limit: int = Field(default=8, ge=1)

    def __init__(self, **kwargs):
        """Initialize settings and create database directory if needed."""
        super().__init__(**kwargs)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check DATABASE_PATH, SNAPSHOT_KEY, "
            f"FORECAST_LOOKAHEAD and ACTIVITY_LIMIT in your environment or .env file.\n"
            f"Error: {e}"
        ) from e
