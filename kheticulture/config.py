"""Configuration settings for the Kheticulture marketplace core."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kheticulture.utils import get_kheticulture_home


class Settings(BaseSettings):
    """Marketplace settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_prefix="KHETICULTURE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra env vars not in model
    )

    # Storage
    data_dir: Path = Field(default_factory=get_kheticulture_home)
    db_path: Path | None = None  # Defaults to <data_dir>/marketplace.db

    # Application lifecycle
    reapply_cooldown_hours: int = Field(default=24, ge=0)

    # Posting limits (NPR)
    max_wage: float = Field(default=100_000, gt=0)

    # Logging
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper().strip()

    @property
    def database_path(self) -> Path:
        """Resolved SQLite database location."""
        return self.db_path or self.data_dir / "marketplace.db"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
