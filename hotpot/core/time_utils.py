"""Clock helpers. All times inside the controller are epoch milliseconds."""

from __future__ import annotations

import re
from datetime import datetime

ONE_SECOND_MS = 1000
ONE_MINUTE_MS = 60 * ONE_SECOND_MS
ONE_HOUR_MS = 60 * ONE_MINUTE_MS
ONE_DAY_MS = 24 * ONE_HOUR_MS

_HMS_RE = re.compile(r"^(\d{1,2})(?::(\d{1,2})(?::(\d{1,2}))?)?$")


def now_ms() -> int:
    return int(datetime.now().timestamp() * 1000)


def midnight_ms(now: int | None = None) -> int:
    """Return local midnight of the day containing ``now`` as epoch ms."""

    current = datetime.fromtimestamp((now if now is not None else now_ms()) / 1000)
    midnight = current.replace(hour=0, minute=0, second=0, microsecond=0)
    return int(midnight.timestamp() * 1000)


def time_of_day_ms(now: int | None = None) -> int:
    now = now if now is not None else now_ms()
    return now - midnight_ms(now)


def parse_hms(value: str) -> int:
    """Parse ``HH[:MM[:SS]]`` into ms since midnight."""

    match = _HMS_RE.match(value.strip())
    if not match:
        raise ValueError(f"Cannot parse time of day '{value}'")
    hours = int(match.group(1))
    minutes = int(match.group(2) or 0)
    seconds = int(match.group(3) or 0)
    if hours > 23 or minutes > 59 or seconds > 59:
        raise ValueError(f"Time of day '{value}' out of range")
    return ((hours * 60 + minutes) * 60 + seconds) * ONE_SECOND_MS


def format_hms(ms: float) -> str:
    seconds = int(ms // ONE_SECOND_MS)
    hours, seconds = divmod(seconds, 3600)
    minutes, seconds = divmod(seconds, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def format_delta(ms: float) -> str:
    """Human-readable duration, e.g. ``1h 02m 03s``."""

    seconds = int(ms // ONE_SECOND_MS)
    hours, seconds = divmod(seconds, 3600)
    minutes, seconds = divmod(seconds, 60)
    if hours:
        return f"{hours}h {minutes:02d}m {seconds:02d}s"
    if minutes:
        return f"{minutes}m {seconds:02d}s"
    return f"{seconds}s"


def parse_epoch_ms(value: int | float | str | datetime) -> int:
    """Accept epoch ms, a numeric string, or an ISO-8601 date."""

    if isinstance(value, bool):
        raise ValueError(f"Bad time {value!r}")
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    if isinstance(value, str):
        text = value.strip()
        if re.fullmatch(r"-?\d+", text):
            return int(text)
        try:
            return int(datetime.fromisoformat(text).timestamp() * 1000)
        except ValueError as exc:
            raise ValueError(f"Bad time {value!r}") from exc
    raise ValueError(f"Bad time {value!r}")


__all__ = [
    "ONE_DAY_MS",
    "ONE_HOUR_MS",
    "ONE_MINUTE_MS",
    "ONE_SECOND_MS",
    "format_delta",
    "format_hms",
    "midnight_ms",
    "now_ms",
    "parse_epoch_ms",
    "parse_hms",
    "time_of_day_ms",
]
