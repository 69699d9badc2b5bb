"""Calendars supply scheduled events that override thermostat targets."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, ValidationError

from hotpot.core.exceptions import CalendarParseError
from hotpot.core.request import BOOST, Request
from hotpot.core.scheduled_event import ScheduledEvent, parse_event_text
from hotpot.core.time_utils import ONE_HOUR_MS, now_ms, parse_epoch_ms
from hotpot.models.enums import EventState

if TYPE_CHECKING:
    from hotpot.models.schemas import CalendarConfig, CalendarEventPayload

logger = logging.getLogger(__name__)

TriggerCallback = Callable[[str, Request], None]
RemoveCallback = Callable[[str, str], None]


class StoredEvent(BaseModel):
    """One instruction as kept in a :class:`FileCalendar` file."""

    model_config = ConfigDict(extra="ignore")

    id: int
    service: str
    temperature: float
    start: int
    until: int

    @property
    def is_boost(self) -> bool:
        return self.until == BOOST


class Calendar:
    """Base class of calendars.

    Subclasses implement :meth:`fill_cache` to fetch events and turn them
    into :class:`ScheduledEvent` objects, usually via :meth:`parse_events`.
    When an event goes live the ``on_trigger`` callback receives the service
    and a :class:`Request` whose source is the calendar; when it ends or is
    cancelled ``on_remove`` receives the service and that source.
    """

    def __init__(
        self,
        name: str,
        *,
        update_period: float = 6.0,
        cache_length: float = 24.0,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.name = name
        self.update_period = update_period
        self.cache_length = cache_length
        self.schedule: list[ScheduledEvent] = []
        self.services: list[str] = []
        self.pending_update = False
        self._clock = clock
        self._on_trigger: TriggerCallback | None = None
        self._on_remove: RemoveCallback | None = None
        self._next_id = 0

    @property
    def source(self) -> str:
        return f"Calendar '{self.name}'"

    def set_services(self, services: Iterable[str]) -> None:
        self.services = [s.upper() for s in services]

    def on_trigger(self, callback: TriggerCallback | None) -> None:
        self._on_trigger = callback

    def on_remove(self, callback: RemoveCallback | None) -> None:
        self._on_remove = callback

    # ------------------------------------------------------------------
    # ScheduledEvent hooks
    # ------------------------------------------------------------------
    def trigger(self, event_id: Any, service: str, temperature: float, until: int) -> None:
        if self._on_trigger is None:
            return
        request = Request(source=self.source, temperature=temperature, until=until)
        logger.info("%s triggering event %s: %s %s", self.source, event_id, service, request)
        self._on_trigger(service, request)

    def remove(self, event_id: Any, service: str) -> None:
        if self._on_remove is None:
            return
        logger.info("%s removing event %s for %s", self.source, event_id, service)
        self._on_remove(service, self.source)

    # ------------------------------------------------------------------
    # Schedule management
    # ------------------------------------------------------------------
    async def fill_cache(self) -> None:
        """Rebuild :attr:`schedule` from the calendar's backing store."""

        raise NotImplementedError

    async def update(self) -> None:
        """Replace the current schedule with freshly fetched events."""

        logger.debug("Updating %s", self.source)
        self.pending_update = True
        try:
            self.clear_schedule()
            await self.fill_cache()
            logger.debug("Updated %s: %d events", self.source, len(self.schedule))
        except (OSError, ValueError) as exc:
            logger.error("%s update failed: %s", self.source, exc)
        finally:
            self.pending_update = False

    def clear_schedule(self) -> None:
        while self.schedule:
            self.schedule.pop().cancel()

    def stop(self) -> None:
        logger.debug("%s stopped", self.source)
        self.clear_schedule()

    def parse_events(self, start: int, end: int, description: str) -> list[ScheduledEvent]:
        """Parse instructions out of an event's text and schedule them.

        Text that cannot be parsed is logged and skipped.
        """

        try:
            parsed = parse_event_text(description, self.services)
        except CalendarParseError as exc:
            logger.warning("%s skipping event: %s", self.source, exc)
            return []

        added: list[ScheduledEvent] = []
        for item in parsed:
            event = ScheduledEvent(
                self,
                id=self._allocate_id(),
                service=item.service,
                temperature=item.temperature,
                start=start,
                until=BOOST if item.boost else end,
                clock=self._clock,
            )
            self.schedule.append(event)
            added.append(event)
        return added

    def get_state(self) -> dict[str, Any]:
        """Return the current (or next) event for each service."""

        state: dict[str, Any] = {"events": {}}
        if self.pending_update:
            state["pending_update"] = True
        active = [e for e in self.schedule if e.state in (EventState.pending, EventState.live)]
        for event in sorted(active, key=lambda e: e.start):
            state["events"].setdefault(
                event.service,
                {"temperature": event.temperature, "start": event.start, "end": event.until},
            )
        return state

    def _allocate_id(self) -> int:
        self._next_id += 1
        return self._next_id


class FileCalendar(Calendar):
    """Calendar kept as a JSON list of events in a local file.

    Each stored event is ``{id, service, temperature, start, until}`` with
    times in epoch ms (``until`` may be BOOST). Events from a front-end
    editor arrive as ``{start, end, title, description}`` and are parsed
    into one stored event per instruction, all sharing one id.
    """

    def __init__(
        self,
        name: str,
        file: str | Path,
        *,
        update_period: float = 6.0,
        cache_length: float = 24.0,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        super().__init__(
            name, update_period=update_period, cache_length=cache_length, clock=clock
        )
        self.file = Path(file)
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(
        cls, name: str, config: CalendarConfig, *, clock: Callable[[], int] = now_ms
    ) -> FileCalendar:
        return cls(
            name,
            config.file,
            update_period=config.update_period,
            cache_length=config.cache_length,
            clock=clock,
        )

    async def load(self) -> list[dict[str, Any]]:
        """Return stored events that are still to come.

        A timed event is kept until its end has passed. A BOOST event is
        kept only until its start, since it fires once at that moment.
        Malformed records are logged and skipped.
        """

        try:
            text = await asyncio.to_thread(self.file.read_text)
        except FileNotFoundError:
            return []
        if not text.strip():
            return []
        try:
            records = json.loads(text)
        except json.JSONDecodeError as exc:
            logger.error("Error loading %s: %s", self.file, exc)
            return []
        if not isinstance(records, list):
            logger.error("Error loading %s: expected a list of events", self.file)
            return []

        now = self._clock()
        events: list[dict[str, Any]] = []
        for record in records:
            try:
                stored = StoredEvent.model_validate(record)
            except ValidationError as exc:
                logger.warning(
                    "%s skipping malformed event %r: %s",
                    self.source,
                    record,
                    exc.errors(include_url=False),
                )
                continue
            if stored.is_boost:
                if stored.start <= now:
                    continue
            elif stored.until < now:
                continue
            events.append(stored.model_dump())
        return events

    async def save(self, events: list[dict[str, Any]]) -> None:
        await asyncio.to_thread(self.file.write_text, json.dumps(events, indent=1))

    async def fill_cache(self) -> None:
        events = await self.load()
        now = self._clock()
        horizon = now + self.cache_length * ONE_HOUR_MS
        for stored in events:
            if stored["start"] > horizon:
                continue
            if stored["service"] not in self.services:
                logger.warning("%s ignoring event for unknown service %s", self.source, stored)
                continue
            self.schedule.append(
                ScheduledEvent(
                    self,
                    id=stored["id"],
                    service=stored["service"],
                    temperature=float(stored["temperature"]),
                    start=int(stored["start"]),
                    until=int(stored["until"]),
                    clock=self._clock,
                )
            )

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------
    def payload_to_events(self, payload: CalendarEventPayload) -> list[dict[str, Any]]:
        text = f"{payload.title} {payload.description}"
        parsed = parse_event_text(text, self.services)
        if not parsed:
            raise CalendarParseError(f"Unable to parse {text.strip()!r}")
        start = parse_epoch_ms(payload.start)
        end = parse_epoch_ms(payload.end)
        return [
            {
                "service": item.service,
                "temperature": item.temperature,
                "start": start,
                "until": BOOST if item.boost else end,
            }
            for item in parsed
        ]

    async def add_event(self, payload: CalendarEventPayload) -> int:
        """Store a new editor event and return its id."""

        async with self._lock:
            events = await self.load()
            new_id = max((int(e["id"]) for e in events), default=0) + 1
            for stored in self.payload_to_events(payload):
                stored["id"] = new_id
                events.append(stored)
            await self.save(events)
        logger.info("%s added event %s", self.source, new_id)
        await self.update()
        return new_id

    async def change_event(self, event_id: int, payload: CalendarEventPayload) -> None:
        async with self._lock:
            replacements = self.payload_to_events(payload)
            events = [e for e in await self.load() if e["id"] != event_id]
            for stored in replacements:
                stored["id"] = event_id
                events.append(stored)
            await self.save(events)
        logger.info("%s changed event %s", self.source, event_id)
        await self.update()

    async def remove_event(self, event_id: int) -> None:
        async with self._lock:
            events = await self.load()
            await self.save([e for e in events if e["id"] != event_id])
        logger.info("%s removed event %s", self.source, event_id)
        await self.update()


__all__ = ["Calendar", "FileCalendar", "StoredEvent"]
