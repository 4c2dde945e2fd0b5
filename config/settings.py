"""Configuration management for the shop credential vault."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MULTISHOP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Layout
    project_root: Path = Path(".")
    credentials_dir: Path = Path("shops") / "credentials"
    ignore_file: Path = Path(".gitignore")

    # Audit Configuration
    rotation_age_days: int = Field(default=180, ge=1)
    check_git_history: bool = True

    # Logging Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"

    def _under_root(self, path: Path) -> Path:
        if path.is_absolute():
            return path
        return (self.project_root / path).absolute()

    @property
    def credentials_path(self) -> Path:
        """Absolute credentials directory."""
        return self._under_root(self.credentials_dir)

    @property
    def ignore_file_path(self) -> Path:
        return self._under_root(self.ignore_file)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
