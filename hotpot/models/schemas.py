"""Pydantic schemas for Hotpot configuration and API payloads."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from hotpot.core.exceptions import ConfigError
from hotpot.core.time_utils import ONE_DAY_MS, parse_hms

from .enums import Service


def _expand_path(value: str | Path) -> Path:
    return Path(os.path.expandvars(os.path.expanduser(str(value))))


# ============================================================================
# Installation configuration
# ============================================================================


class TimepointConfig(BaseModel):
    """Vertex on a timeline; ``times`` is the human-edited ``HH:MM:SS`` form."""

    model_config = ConfigDict(extra="forbid")

    time: float | None = None
    times: str | None = None
    value: float

    @model_validator(mode="after")
    def _resolve_time(self) -> TimepointConfig:
        if self.time is None and self.times is None:
            raise ValueError("Timepoint must have time or times")
        if self.time is not None and self.times is not None:
            raise ValueError("Timepoint must have time or times, not both")
        if self.time is None:
            self.time = float(parse_hms(self.times))  # type: ignore[arg-type]
            self.times = None
        return self


class TimelineConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    min: float = 0.0
    max: float = 30.0
    period: float = Field(default=ONE_DAY_MS, description="Period of the timeline in ms")
    points: list[TimepointConfig] = Field(default_factory=list)


class HistorianConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    file: Path
    interval: float | None = Field(
        default=None, gt=0, description="Sample interval in ms, required to start sampling"
    )
    unordered: bool = False

    @field_validator("file", mode="before")
    @classmethod
    def _expand(cls, v: str | Path) -> Path:
        return _expand_path(v)


class ThermostatConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., min_length=1, description="1-wire id of the DS18x20 sensor")
    poll_every: float = Field(default=20.0, gt=0, description="Polling interval in seconds")
    timeline: TimelineConfig = Field(default_factory=TimelineConfig)
    history: HistorianConfig | None = None

    @field_validator("timeline", mode="before")
    @classmethod
    def _load_timeline_file(cls, v: Any) -> Any:
        # A timeline may be given inline or as the name of a JSON file
        if isinstance(v, (str, Path)):
            path = _expand_path(v)
            try:
                return json.loads(path.read_text())
            except (OSError, json.JSONDecodeError) as exc:
                raise ValueError(f"Cannot load timeline from {path}: {exc}") from exc
        return v


class PinConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    gpio: int = Field(..., ge=0)
    history: HistorianConfig | None = None


class CalendarConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    file: Path
    update_period: float = Field(default=6.0, gt=0, description="Hours between calendar reads")
    cache_length: float = Field(default=24.0, gt=0, description="Hours of events to cache")

    @field_validator("file", mode="before")
    @classmethod
    def _expand(cls, v: str | Path) -> Path:
        return _expand_path(v)


class ControllerConfig(BaseModel):
    """Validated description of one installation."""

    model_config = ConfigDict(extra="forbid")

    thermostat: dict[Service, ThermostatConfig]
    pin: dict[Service, PinConfig]
    calendar: dict[str, CalendarConfig] = Field(default_factory=dict)
    valve_return: float = Field(
        default=8000.0, ge=0, description="Time for the Y-plan valve spring to return, in ms"
    )
    rule_interval: float = Field(
        default=5000.0, gt=0, description="Interval between rule evaluations, in ms"
    )
    write_retries: int = Field(default=3, ge=1)

    @model_validator(mode="after")
    def _require_services(self) -> ControllerConfig:
        for name in ("thermostat", "pin"):
            missing = set(Service) - set(getattr(self, name))
            if missing:
                raise ValueError(
                    f"'{name}' must configure {', '.join(sorted(missing))}"
                )
        return self

    @classmethod
    def from_file(cls, path: str | Path) -> ControllerConfig:
        path = _expand_path(path)
        try:
            raw = json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigError(f"Cannot read configuration {path}: {exc}") from exc
        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration {path}: {exc}") from exc


# ============================================================================
# API payloads
# ============================================================================


class RequestPayload(BaseModel):
    """Override pushed by a browser, calendar or other source."""

    source: str = Field(..., min_length=1)
    service: str = Field(..., min_length=1, description="Service name, or ALL")
    temperature: float | str
    until: int | float | str | None = None


class CalendarEventPayload(BaseModel):
    start: int | float | str
    end: int | float | str
    title: str = ""
    description: str = ""


class RequestResponse(BaseModel):
    source: str
    temperature: float
    until: int


class ThermostatStateResponse(BaseModel):
    temperature: float | None
    last_known_good: int
    target: float
    requests: list[RequestResponse]


class PinStateResponse(BaseModel):
    state: int
    reason: str


__all__ = [
    "CalendarConfig",
    "CalendarEventPayload",
    "ControllerConfig",
    "HistorianConfig",
    "PinConfig",
    "PinStateResponse",
    "RequestPayload",
    "RequestResponse",
    "ThermostatConfig",
    "ThermostatStateResponse",
    "TimelineConfig",
    "TimepointConfig",
]
