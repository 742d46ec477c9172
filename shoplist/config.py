"""Configuration management using Pydantic settings.

Two-layer configuration system:
1. Environment: Loads raw values from environment variables (UPPER_CASE)
2. Settings: Clean application settings with lowercase fields and derived values
"""

import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_DEFAULT_DATABASE_URL = f"sqlite:///{_PROJECT_ROOT / 'data' / 'shopping_list.db'}"


class Environment(BaseSettings):
    """Raw environment variable loading."""

    model_config = SettingsConfigDict(
        env_file=_PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_ENV: str = Field(default="development")
    LOG_LEVEL: str | None = Field(default=None)
    GRACEFUL_SHUTDOWN_TIMEOUT: int = Field(default=30)

    # ── Persistence ────────────────────────────────────────────────────

    DATABASE_URL: str = Field(default=_DEFAULT_DATABASE_URL)
    DB_ECHO: bool = Field(default=False)

    # ── Background work ────────────────────────────────────────────────

    MEDIATOR_MAX_WORKERS: int = Field(default=4)


class Settings(BaseModel):
    """Application settings with lowercase fields and derived values."""

    model_config = ConfigDict(from_attributes=True)

    app_env: str = "development"
    log_level: str = "INFO"
    graceful_shutdown_timeout: int = 30

    database_url: str = _DEFAULT_DATABASE_URL
    db_echo: bool = False
    sqlalchemy_engine_options: dict[str, Any] = Field(default_factory=dict)

    mediator_max_workers: int = 4

    @property
    def is_testing(self) -> bool:
        return self.app_env == "testing"

    def validate_config(self) -> None:
        from shoplist.exceptions import ConfigurationError

        errors: list[str] = []

        if not self.database_url.startswith("sqlite"):
            errors.append("DATABASE_URL must point to a local SQLite database")

        if self.mediator_max_workers < 1:
            errors.append("MEDIATOR_MAX_WORKERS must be at least 1")

        if self.graceful_shutdown_timeout < 0:
            errors.append("GRACEFUL_SHUTDOWN_TIMEOUT must not be negative")

        if self.log_level not in logging.getLevelNamesMapping():
            errors.append(f"LOG_LEVEL {self.log_level!r} is not a known logging level")

        if errors:
            raise ConfigurationError(
                "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            )

    def set_engine_options_override(self, options: dict[str, Any]) -> None:
        """Override SQLAlchemy engine options (used for testing with in-memory SQLite)."""

        self.sqlalchemy_engine_options = options

    @classmethod
    def load(cls, env: "Environment | None" = None) -> "Settings":
        if env is None:
            env = Environment()

        if env.LOG_LEVEL:
            log_level = env.LOG_LEVEL.upper()
        else:
            log_level = "DEBUG" if env.APP_ENV == "development" else "INFO"

        return cls(
            app_env=env.APP_ENV,
            log_level=log_level,
            graceful_shutdown_timeout=env.GRACEFUL_SHUTDOWN_TIMEOUT,
            # Persistence
            database_url=env.DATABASE_URL,
            db_echo=env.DB_ECHO,
            # Background work
            mediator_max_workers=env.MEDIATOR_MAX_WORKERS,
        )
