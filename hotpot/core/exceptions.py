"""Exception hierarchy for the Hotpot core."""

from __future__ import annotations


class HotpotError(Exception):
    """Base exception for all Hotpot errors."""


class ConfigError(HotpotError):
    """Raised when installation configuration is missing or invalid."""


# ---------------------------------------------------------------------------
# Timeline validation
# ---------------------------------------------------------------------------


class TimelineError(HotpotError, ValueError):
    """Raised when a timeline operation would break its invariants."""


class OutOfRange(TimelineError):
    """Raised for an index, time or value outside a container's domain."""


class BadOrder(TimelineError):
    """Raised when a point would not be strictly between its neighbours."""


class NotRemovable(TimelineError):
    """Raised when removal of an endpoint is attempted."""


# ---------------------------------------------------------------------------
# Hardware and I/O
# ---------------------------------------------------------------------------


class SensorError(HotpotError):
    """Raised when a temperature sensor cannot be read."""


class PinIOError(HotpotError, OSError):
    """Raised when a GPIO pin cannot be read or written."""


class ArbitrationError(HotpotError):
    """Raised when a coupled pin transition fails after retries."""

    def __init__(self, service: str, message: str) -> None:
        super().__init__(f"{service}: {message}")
        self.service = service


# ---------------------------------------------------------------------------
# Calendars and requests
# ---------------------------------------------------------------------------


class CalendarParseError(HotpotError, ValueError):
    """Raised when calendar event text cannot be parsed."""


class RequestError(HotpotError, ValueError):
    """Raised when a request payload is malformed or names an unknown service."""


__all__ = [
    "ArbitrationError",
    "BadOrder",
    "CalendarParseError",
    "ConfigError",
    "HotpotError",
    "NotRemovable",
    "OutOfRange",
    "PinIOError",
    "RequestError",
    "SensorError",
    "TimelineError",
]
