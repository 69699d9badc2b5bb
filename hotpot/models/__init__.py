"""Enums and pydantic schemas for Hotpot."""

from .enums import EventState, PinState, Reason, Service
from .schemas import (
    CalendarConfig,
    CalendarEventPayload,
    ControllerConfig,
    HistorianConfig,
    PinConfig,
    PinStateResponse,
    RequestPayload,
    RequestResponse,
    ThermostatConfig,
    ThermostatStateResponse,
    TimelineConfig,
    TimepointConfig,
)

__all__ = [
    "CalendarConfig",
    "CalendarEventPayload",
    "ControllerConfig",
    "EventState",
    "HistorianConfig",
    "PinConfig",
    "PinState",
    "PinStateResponse",
    "Reason",
    "RequestPayload",
    "RequestResponse",
    "Service",
    "ThermostatConfig",
    "ThermostatStateResponse",
    "TimelineConfig",
    "TimepointConfig",
]
