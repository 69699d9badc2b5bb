"""Overrides made to a thermostat by browsers, calendars and other sources."""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Any, Final

from hotpot.core.exceptions import RequestError
from hotpot.core.time_utils import parse_epoch_ms

# Sentinels are below absolute zero so they can never collide with a reading
BOOST: Final[int] = -274
CLEAR: Final[int] = -275
OFF: Final[int] = -276

_BOOST_RE = re.compile(r"^boost$", re.IGNORECASE)
_CLEAR_RE = re.compile(r"^clear$", re.IGNORECASE)
_OFF_RE = re.compile(r"^off$", re.IGNORECASE)


@dataclass(slots=True)
class Request:
    """A time-limited instruction to a thermostat.

    ``until`` is an epoch-ms deadline, ``0`` for no deadline, or ``BOOST``
    (hold until the measured temperature reaches ``temperature``).
    ``temperature`` is a target in °C or ``OFF``.
    """

    source: str
    temperature: float
    until: int = 0

    @property
    def is_boost(self) -> bool:
        return self.until == BOOST

    @property
    def is_off(self) -> bool:
        return self.temperature == OFF

    def expired(self, now: int, temperature: float | None) -> bool:
        if self.is_boost:
            return temperature is not None and temperature >= self.temperature
        return 0 < self.until < now

    def to_serialisable(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_payload(
        cls,
        source: str,
        temperature: float | int | str,
        until: int | float | str | None = None,
    ) -> Request:
        """Build a request from its wire form.

        ``temperature`` may be a number, a number string or ``"off"``;
        ``until`` may be epoch ms, an ISO date, ``"boost"`` or ``"clear"``.
        """

        if not isinstance(source, str) or not source:
            raise RequestError(f'Bad "source" {source!r}')
        return cls(
            source=source,
            temperature=parse_temperature(temperature),
            until=parse_until(until),
        )


def parse_temperature(value: float | int | str) -> float:
    if isinstance(value, bool):
        raise RequestError(f'Bad "temperature" {value!r}')
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if _OFF_RE.match(text):
            return float(OFF)
        try:
            return float(text)
        except ValueError:
            pass
    raise RequestError(f'Bad "temperature" {value!r}')


def parse_until(value: int | float | str | None) -> int:
    if value is None or value == "":
        return 0
    if isinstance(value, str):
        text = value.strip()
        if _BOOST_RE.match(text):
            return BOOST
        if _CLEAR_RE.match(text):
            return CLEAR
    try:
        return parse_epoch_ms(value)
    except ValueError as exc:
        raise RequestError(f'Bad "until" {value!r}') from exc


__all__ = ["BOOST", "CLEAR", "OFF", "Request", "parse_temperature", "parse_until"]
