"""Application configuration management."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


PROMPTS_DIR = Path(__file__).resolve().parent / "prompts"


class Settings(BaseSettings):
    """Centralised application settings derived from environment variables."""

    # Optional so the coach endpoint can report the missing key itself.
    anthropic_api_key: str | None = None

    database_url: str = Field(
        default="sqlite:///./runboard.db",
        description="SQLAlchemy-compatible database URL.",
    )
    app_host: str = Field(default="0.0.0.0")
    app_port: int = Field(default=8000, ge=1, le=65535)

    debug: bool = Field(default=False)

    strava_api_base: str = Field(default="https://www.strava.com/api/v3")
    strava_timeout_seconds: int = Field(default=30, ge=1)
    strava_page_size: int = Field(default=200, ge=1, le=200)
    strava_daily_limit: int = Field(default=2000, ge=1)
    strava_safety_margin: float = Field(default=0.9, gt=0, le=1)

    running_activity_types: str = Field(
        default="Run,VirtualRun",
        description="Comma-separated activity type tags counted as running.",
    )
    stats_cache_ttl_minutes: int = Field(default=60, ge=0)
    default_monthly_goal_km: float = Field(default=200.0, gt=0)

    prompt_config_path: Path = Field(default=PROMPTS_DIR / "coach.yaml")

    log_level: str = Field(default="INFO")
    log_dir: Path = Field(default=Path("logs"))
    scheduler_hour: int = Field(default=6, ge=0, le=23)
    scheduler_minute: int = Field(default=0, ge=0, le=59)
    scheduler_lock_file: Path = Field(default=Path(".scheduler.lock"))

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("running_activity_types")
    @classmethod
    def validate_activity_types(cls, value: str) -> str:
        types = [item.strip() for item in value.split(",") if item.strip()]
        if not types:
            raise ValueError("RUNNING_ACTIVITY_TYPES must name at least one activity type")
        return ",".join(types)

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        valid = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
        upper = value.upper()
        if upper not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(sorted(valid))}")
        return upper

    @property
    def allowed_activity_types(self) -> tuple[str, ...]:
        return tuple(self.running_activity_types.split(","))


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance so it can be reused across the app."""

    settings = Settings()
    settings.log_dir.mkdir(parents=True, exist_ok=True)
    return settings
