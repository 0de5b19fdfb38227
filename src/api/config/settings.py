from __future__ import annotations

from functools import lru_cache
from urllib.parse import quote

from pydantic import computed_field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from elo.constants import DEFAULT_STARTING_ELO


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Elo Ratings API"
    app_env: str = "development"
    app_debug: bool = False
    app_host: str = "127.0.0.1"
    app_port: int = 8000
    app_log_level: str = "INFO"
    app_log_json: bool = True
    app_log_requests: bool = True
    app_docs_enabled: bool = True
    app_cors_origins: list[str] = []
    app_cors_allow_credentials: bool = True
    app_cors_allow_methods: list[str] = ["*"]
    app_cors_allow_headers: list[str] = ["*"]

    # If set, this value has priority over component-based database settings.
    database_url: str = ""

    # PostgreSQL components
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "elo_ratings"
    db_user: str = "postgres"
    db_password: str = ""
    db_timezone: str = "UTC"

    # SQLAlchemy/asyncpg runtime tuning
    db_echo: bool = False
    db_pool_size: int = 10
    db_max_overflow: int = 10
    db_pool_timeout_s: int = 30
    db_pool_recycle_s: int = 1800

    # Rating engine
    elo_default_starting_elo: float = DEFAULT_STARTING_ELO
    match_game_interval_minutes: int = 5
    season_lock_timeout_s: float = 5.0
    recalc_progress_interval: int = 100

    @model_validator(mode="after")
    def validate_rating_settings(self) -> Settings:
        if self.match_game_interval_minutes <= 0:
            raise ValueError("match_game_interval_minutes must be greater than 0.")
        if self.season_lock_timeout_s < 0:
            raise ValueError("season_lock_timeout_s cannot be negative.")
        if self.recalc_progress_interval <= 0:
            raise ValueError("recalc_progress_interval must be greater than 0.")
        return self

    @computed_field
    @property
    def sqlalchemy_database_url(self) -> str:
        if self.database_url.strip():
            return self.database_url
        return (
            f"postgresql+asyncpg://{quote(self.db_user, safe='')}:{quote(self.db_password, safe='')}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    @computed_field
    @property
    def is_postgres(self) -> bool:
        return self.sqlalchemy_database_url.startswith("postgresql")

    @computed_field
    @property
    def docs_url(self) -> str | None:
        return "/docs" if self.app_docs_enabled else None

    @computed_field
    @property
    def redoc_url(self) -> str | None:
        return "/redoc" if self.app_docs_enabled else None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
