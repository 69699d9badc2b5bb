"""Thermostat: sensor polling plus the per-service request ledger."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any

from hotpot.core.exceptions import SensorError, TimelineError
from hotpot.core.historian import Historian
from hotpot.core.providers import SensorProvider
from hotpot.core.request import Request
from hotpot.core.time_utils import ONE_MINUTE_MS, format_delta, now_ms, time_of_day_ms
from hotpot.core.timeline import Timeline

if TYPE_CHECKING:
    from hotpot.models.schemas import ThermostatConfig

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 20.0  # seconds

# Sensor silence after which the admin is alerted
NO_RESPONSE_ALARM = 10 * ONE_MINUTE_MS

AlertHandler = Callable[[str], Awaitable[None] | None]


class Thermostat:
    """A temperature sensor together with the requests made against it.

    The sensor is polled every ``poll_every`` seconds and the last good
    reading cached in :attr:`temperature`. Requests override the timeline:

    * a BOOST request wins over everything and expires once the measured
      temperature reaches its target;
    * otherwise any OFF request turns the service off;
    * otherwise the most recently added request wins;
    * with no requests the timeline gives the target.

    Only one request per source is kept; adding a request replaces any
    earlier one from the same source. Ties are settled by insertion order,
    not by source.
    """

    def __init__(
        self,
        name: str,
        *,
        sensor: SensorProvider,
        timeline: Timeline,
        poll_every: float = DEFAULT_POLL_INTERVAL,
        history: Historian | None = None,
        fallback: SensorProvider | None = None,
        alarm_after_ms: float = NO_RESPONSE_ALARM,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.name = name
        self.sensor = sensor
        self.timeline = timeline
        self.poll_every = poll_every
        self.history = history
        self._fallback = fallback
        self._alarm_after_ms = alarm_after_ms
        self._clock = clock

        self.requests: list[Request] = []
        self.temperature: float | None = None
        self.last_known_good: int = clock()
        self.alert_handler: AlertHandler | None = None
        self._alerted = False
        self._poll_task: asyncio.Task[None] | None = None

    @classmethod
    def from_config(
        cls,
        name: str,
        config: ThermostatConfig,
        *,
        sensor: SensorProvider,
        fallback: SensorProvider | None = None,
        alarm_after_ms: float = NO_RESPONSE_ALARM,
        clock: Callable[[], int] = now_ms,
    ) -> Thermostat:
        history = (
            Historian.from_config(config.history, name, clock=clock) if config.history else None
        )
        if history is not None and history.interval is None:
            history.interval = 5 * ONE_MINUTE_MS
        return cls(
            name,
            sensor=sensor,
            timeline=Timeline.from_config(config.timeline),
            poll_every=config.poll_every,
            history=history,
            fallback=fallback,
            alarm_after_ms=alarm_after_ms,
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def initialise(self) -> Thermostat:
        """Take a first reading, falling back to the simulated sensor if one was given."""

        try:
            await self.sensor.initialise()
            self._good_reading(await self.sensor.get_temperature())
        except SensorError as exc:
            logger.error("Thermostat %s initialisation failed: %s", self.name, exc)
            if self._fallback is None:
                logger.error("No fallback sensor for %s; waiting for readings", self.name)
            else:
                logger.warning("Falling back to simulated sensor for %s", self.name)
                self.sensor = self._fallback
                await self.sensor.initialise()
                self._good_reading(await self.sensor.get_temperature())

        if self.history is not None:
            logger.debug("Starting historian for %s at %s", self.name, self.temperature)
            self.history.start(self._sample)
        logger.info("Thermostat %s initialised", self.name)
        return self

    def start(self) -> None:
        if self._poll_task and not self._poll_task.done():
            return

        async def _loop() -> None:
            while True:
                await self.poll()
                await asyncio.sleep(self.poll_every)

        self._poll_task = asyncio.create_task(_loop(), name=f"hotpot-poll-{self.name}")

    def stop(self) -> None:
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None
            logger.debug("Thermostat %s polling stopped", self.name)
        if self.history is not None:
            self.history.stop()

    async def poll(self) -> Thermostat:
        """Read the sensor once. Failures keep the previous reading."""

        try:
            temperature = await self.sensor.get_temperature()
        except SensorError as exc:
            waiting = self._clock() - self.last_known_good
            message = (
                f"{self.name} sensor has had no reading for {format_delta(waiting)}: {exc}"
            )
            logger.error(message)
            if not self._alerted and waiting >= self._alarm_after_ms:
                self._alerted = True
                await self._alert(message)
            return self

        logger.debug("%s now %s", self.name, temperature)
        self._good_reading(temperature)
        return self

    def set_alert_handler(self, handler: AlertHandler | None) -> None:
        self.alert_handler = handler

    # ------------------------------------------------------------------
    # Request ledger
    # ------------------------------------------------------------------
    def add_request(self, request: Request) -> None:
        self.purge_requests({"source": request.source}, clear=True)
        logger.debug("Add request %s %s", self.name, request)
        self.requests.append(request)

    def purge_requests(self, match: Mapping[str, Any] | None = None, clear: bool = False) -> None:
        """Remove expired requests, or all matching requests when ``clear``.

        Every field in ``match`` must equal the request's field for the
        request to be considered.
        """

        if match:
            logger.debug("Purge %s %s%s", self.name, dict(match), " clear" if clear else "")
        now = self._clock()
        fields = dict(match or {})
        kept: list[Request] = []
        for request in self.requests:
            matched = all(getattr(request, key, None) == value for key, value in fields.items())
            if matched and (clear or request.expired(now, self.temperature)):
                logger.debug("Purge %s request %s", self.name, request)
                continue
            kept.append(request)
        self.requests = kept

    def get_target_temperature(self) -> float:
        self.purge_requests()
        if self.requests:
            for request in reversed(self.requests):
                if request.is_boost:
                    return request.temperature
            if any(request.is_off for request in self.requests):
                return self.timeline.min
            return self.requests[-1].temperature

        try:
            return self.timeline.value_at_time(time_of_day_ms(self._clock()))
        except TimelineError:
            logger.exception("Timeline lookup failed for %s", self.name)
            return 0.0

    def get_maximum_temperature(self) -> float:
        self.purge_requests()
        ceiling = self.timeline.get_max_value()
        for request in self.requests:
            ceiling = max(ceiling, request.temperature)
        return ceiling

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------
    def get_state(self) -> dict[str, Any]:
        target = self.get_target_temperature()
        return {
            "temperature": self.temperature,
            "last_known_good": self.last_known_good,
            "target": target,
            "requests": [request.to_serialisable() for request in self.requests],
        }

    async def get_log(self, since: float | None = None) -> list[float] | None:
        if self.history is None:
            return None
        return await self.history.get_serialisable_history(since)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _good_reading(self, temperature: float) -> None:
        self.temperature = temperature
        self.last_known_good = self._clock()
        if self._alerted:
            logger.info("%s sensor is responding again", self.name)
        self._alerted = False

    def _sample(self) -> float | None:
        if self.temperature is None:
            return None
        return round(self.temperature * 10) / 10

    async def _alert(self, message: str) -> None:
        if self.alert_handler is None:
            return
        try:
            result = self.alert_handler(message)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Alert handler failed for %s", self.name)


__all__ = ["DEFAULT_POLL_INTERVAL", "NO_RESPONSE_ALARM", "Thermostat"]
