"""Configuration management for MealSplit."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MEALSPLIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database path
    database_path: Path = Path.home() / ".mealsplit" / "mealsplit.db"

    # Display settings
    currency_symbol: str = "৳"

    # Roster inserted by `mealsplit seed` (JSON list in the environment)
    default_members: list[str] = []

    # Hex SHA-256 of the admin passcode; admin commands are open when unset
    admin_passcode_hash: str | None = None

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
            f"Failed to load settings. Check the MEALSPLIT_* variables in your "
            f"environment or .env file.\n"
            f"Error: {e}"
        ) from e
