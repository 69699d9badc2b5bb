"""Calendar events that become timed requests on a thermostat."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Protocol

from hotpot.core.exceptions import CalendarParseError
from hotpot.core.request import BOOST, OFF
from hotpot.core.time_utils import now_ms
from hotpot.models.enums import EventState

logger = logging.getLogger(__name__)

# service [=] [boost] (number|off), repeated; separators between events are free text
_EVENT_RE = re.compile(
    r"\b([a-z][a-z0-9_]*)\s*(?:=\s*)?(boost\s*)?(off\b|\d+(?:\.\d+)?)",
    re.IGNORECASE,
)

ALL_SERVICES = "ALL"


class EventSink(Protocol):
    """What a :class:`ScheduledEvent` calls back into. Both hooks are optional."""

    def trigger(self, event_id: Any, service: str, temperature: float, until: int) -> None: ...

    def remove(self, event_id: Any, service: str) -> None: ...


@dataclass(slots=True, frozen=True)
class ParsedEvent:
    service: str
    temperature: float
    boost: bool = False


def parse_event_text(text: str, services: Iterable[str]) -> list[ParsedEvent]:
    """Extract heating instructions from free calendar text.

    The grammar is::

        events = event { [";"] event }
        event  = service [ "=" ] spec
        spec   = [ "boost" ] temperature | "off"

    Matching is case-insensitive. ``ALL`` expands to every known service.
    All of these work::

        CH BOOST 18
        hw=50; ch=20
        HW 40 CH OFF
        all off

    Raises :class:`CalendarParseError` for a service that is not known.
    """

    known = [s.upper() for s in services]
    parsed: list[ParsedEvent] = []
    for match in _EVENT_RE.finditer(text):
        service = match.group(1).upper()
        boost = match.group(2) is not None
        spec = match.group(3)
        temperature = float(OFF) if spec.lower() == "off" else float(spec)

        if service == ALL_SERVICES:
            targets = known
        elif service in known:
            targets = [service]
        else:
            raise CalendarParseError(f"Unknown service {service} in {text!r}")
        for target in targets:
            event = ParsedEvent(service=target, temperature=temperature, boost=boost)
            logger.debug("Parsed %s", event)
            parsed.append(event)
    return parsed


class ScheduledEvent:
    """A calendar entry that drives a request over its lifetime.

    ``PENDING`` until ``start``, then ``LIVE`` (the calendar's ``trigger`` is
    called) until ``until``, then ``ENDED`` (the calendar's ``remove`` is
    called). :meth:`cancel` moves a pending or live event to ``CANCELLED``.

    An event whose start has passed but whose end has not is triggered
    immediately, during construction. An event that is already over is
    created ``ENDED`` and never triggers.

    A BOOST event has no end time and fires once: it triggers when its start
    arrives and is ``ENDED`` straight away, leaving the request to expire by
    itself once the target is reached. Since the BOOST sentinel is in the
    past, a BOOST event whose start has already gone by is created
    ``ENDED``, so refreshing a calendar never boosts a service twice.
    """

    def __init__(
        self,
        calendar: EventSink | Any,
        *,
        id: Any,  # noqa: A002
        service: str,
        temperature: float,
        start: int,
        until: int,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.calendar = calendar
        self.id = id
        self.service = service
        self.temperature = temperature
        self.start = start
        self.until = until
        self.state = EventState.pending
        self._clock = clock
        self._timer: asyncio.TimerHandle | None = None

        now = clock()
        if start > now:
            logger.debug(
                "Event %s (%s, %s) will start in %.1fs",
                id,
                service,
                temperature,
                (start - now) / 1000,
            )
            self._timer = self._arm(start - now, self.begin)
        elif until > now:
            logger.debug("Event %s began in the past", id)
            self.begin()
        else:
            logger.debug("Event %s is already finished", id)
            self.state = EventState.ended

    @property
    def is_boost(self) -> bool:
        return self.until == BOOST

    def begin(self) -> None:
        if self.state is not EventState.pending:
            return
        self._timer = None
        self.state = EventState.live
        trigger = getattr(self.calendar, "trigger", None)
        if callable(trigger):
            trigger(self.id, self.service, self.temperature, self.until)
        if self.is_boost:
            # The request now belongs to the thermostat
            self.state = EventState.ended
            logger.debug("Boost event %s handed over", self.id)
        else:
            self._timer = self._arm(max(self.until - self._clock(), 0), self.end)

    def end(self) -> None:
        if self.state is not EventState.live:
            return
        self._timer = None
        self.state = EventState.ended
        logger.debug("Event %s finished", self.id)
        self._remove()

    def cancel(self) -> None:
        """Cancel the event, releasing its timer. Terminal events are left alone."""

        if self.state in (EventState.ended, EventState.cancelled):
            return
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self.state = EventState.cancelled
        logger.debug("Event %s cancelled", self.id)
        self._remove()

    def to_serialisable(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "service": self.service,
            "temperature": self.temperature,
            "start": self.start,
            "until": self.until,
            "state": str(self.state),
        }

    def _remove(self) -> None:
        remove = getattr(self.calendar, "remove", None)
        if callable(remove):
            remove(self.id, self.service)

    @staticmethod
    def _arm(delay_ms: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return asyncio.get_running_loop().call_later(delay_ms / 1000, callback)

    def __repr__(self) -> str:
        return (
            f"ScheduledEvent(id={self.id!r}, service={self.service}, "
            f"temperature={self.temperature:g}, state={self.state})"
        )


__all__ = ["ALL_SERVICES", "EventSink", "ParsedEvent", "ScheduledEvent", "parse_event_text"]
