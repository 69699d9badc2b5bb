"""Application configuration powered by Pydantic settings."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Final

from pydantic import AnyUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process-level configuration with environment fallbacks.

    The installation itself (thermostats, pins, timelines, calendars) lives in
    the JSON file named by ``config_file`` and is validated separately into
    :class:`hotpot.models.schemas.ControllerConfig`.
    """

    model_config = SettingsConfigDict(env_prefix="HOTPOT_", env_file=".env", extra="allow")

    # App
    app_name: str = "Hotpot"
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 13196
    debug: bool = False
    log_level: str = Field(default="info")

    # Installation
    config_file: Path = Field(default=Path("hotpot.json"))
    # Use simulated sensors and pins instead of 1-wire/GPIO hardware
    simulate: bool = Field(default=False)

    # Admin alerts (empty = log only)
    alert_webhook_url: AnyUrl | str = Field(default="")

    # Sensor silence before the admin is alerted, in seconds
    sensor_alarm_s: float = Field(default=600.0)

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, v: str) -> str:
        if isinstance(v, str) and v.strip():
            return v.strip().lower()
        return "info"


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


SETTINGS: Final[Settings] = get_settings()
