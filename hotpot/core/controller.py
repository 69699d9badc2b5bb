"""Controller: composes thermostats, pins, calendars and rules and runs them."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore[import-untyped]
from apscheduler.triggers.interval import IntervalTrigger  # type: ignore[import-untyped]

from hotpot.core.arbitrator import ActuatorArbitrator, Sleep
from hotpot.core.calendar import Calendar, FileCalendar
from hotpot.core.exceptions import ArbitrationError, RequestError
from hotpot.core.pin import Pin
from hotpot.core.request import CLEAR, Request
from hotpot.core.rule_engine import Rule, RuleDecision, default_rules
from hotpot.core.scheduled_event import ALL_SERVICES
from hotpot.core.thermostat import NO_RESPONSE_ALARM, Thermostat
from hotpot.core.time_utils import now_ms
from hotpot.integrations.ds18x20 import DS18x20
from hotpot.integrations.gpio import SysfsGpio
from hotpot.integrations.simulator import Simulator

if TYPE_CHECKING:
    from hotpot.models.schemas import ControllerConfig
    from hotpot.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

LOG_KINDS = ("thermostat", "pin")


class Controller:
    """The heating system as a whole.

    Owns one :class:`Thermostat` and one :class:`Pin` per service, the
    calendars that feed requests to the thermostats, and the rules that turn
    thermostat readings into pin changes through the
    :class:`ActuatorArbitrator`. :meth:`tick` is the control loop body; it is
    run every ``rule_interval_ms`` by an APScheduler job once :meth:`start`
    has been called.
    """

    def __init__(
        self,
        *,
        thermostats: Mapping[str, Thermostat],
        pins: Mapping[str, Pin],
        calendars: Mapping[str, Calendar] | None = None,
        rules: Iterable[Rule] | None = None,
        valve_return_ms: float = 8000.0,
        rule_interval_ms: float = 5000.0,
        write_retries: int = 3,
        notifier: NotificationService | None = None,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.thermostat: dict[str, Thermostat] = dict(thermostats)
        self.pin: dict[str, Pin] = dict(pins)
        self.calendar: dict[str, Calendar] = dict(calendars or {})
        self.rules: list[Rule] = list(rules) if rules is not None else default_rules()
        self.rule_interval_ms = rule_interval_ms
        self.notifier = notifier
        self.arbitrator = ActuatorArbitrator(
            self.pin, valve_return_ms=valve_return_ms, write_retries=write_retries, sleep=sleep
        )
        self.scheduler: AsyncIOScheduler | None = None
        self._clock = clock

        for name, thermostat in self.thermostat.items():
            thermostat.set_alert_handler(self._alert_for(f"Hotpot {name} sensor"))
        for calendar in self.calendar.values():
            calendar.set_services(self.thermostat)
            calendar.on_trigger(self.make_request)
            calendar.on_remove(self._remove_calendar_request)

    @classmethod
    def from_config(
        cls,
        config: ControllerConfig,
        *,
        simulate: bool = False,
        notifier: NotificationService | None = None,
        simulator: Simulator | None = None,
        alarm_after_ms: float = NO_RESPONSE_ALARM,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], int] = now_ms,
    ) -> Controller:
        """Build a controller for an installation.

        With ``simulate`` every sensor and pin is simulated. Otherwise the
        1-wire and GPIO hardware is used, and a simulated service stands in
        for any sensor or pin that fails to initialise.
        """

        simulator = simulator or Simulator()
        thermostats: dict[str, Thermostat] = {}
        for service, tcfg in config.thermostat.items():
            stand_in = simulator.get_service(service)
            thermostats[service] = Thermostat.from_config(
                service,
                tcfg,
                sensor=stand_in if simulate else DS18x20(tcfg.id),
                fallback=None if simulate else stand_in,
                alarm_after_ms=alarm_after_ms,
                clock=clock,
            )

        pins: dict[str, Pin] = {}
        for service, pcfg in config.pin.items():
            stand_in = simulator.get_service(service)
            pins[service] = Pin.from_config(
                service,
                pcfg,
                provider=stand_in if simulate else SysfsGpio(pcfg.gpio),
                fallback=None if simulate else stand_in,
                clock=clock,
            )

        calendars = {
            name: FileCalendar.from_config(name, ccfg, clock=clock)
            for name, ccfg in config.calendar.items()
        }
        return cls(
            thermostats=thermostats,
            pins=pins,
            calendars=calendars,
            valve_return_ms=config.valve_return,
            rule_interval_ms=config.rule_interval,
            write_retries=config.write_retries,
            notifier=notifier,
            sleep=sleep,
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def initialise(self) -> Controller:
        logger.info("Initialising controller")
        for pin in self.pin.values():
            await pin.initialise()
        await self.arbitrator.reset_valve()
        for thermostat in self.thermostat.values():
            await thermostat.initialise()
        for calendar in self.calendar.values():
            await calendar.update()
        logger.info("Controller initialised")
        return self

    def start(self) -> None:
        """Start sensor polling and schedule the rule loop and calendar updates."""

        for thermostat in self.thermostat.values():
            thermostat.start()

        scheduler = AsyncIOScheduler(
            timezone="UTC",
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": 60,
            },
        )
        scheduler.add_job(
            self.tick,
            IntervalTrigger(seconds=self.rule_interval_ms / 1000),
            id="rule_tick",
            name="Evaluate Rules",
            replace_existing=True,
        )
        for name, calendar in self.calendar.items():
            scheduler.add_job(
                calendar.update,
                IntervalTrigger(hours=calendar.update_period),
                id=f"calendar_{name}",
                name=f"Update {calendar.source}",
                replace_existing=True,
            )
        scheduler.start()
        self.scheduler = scheduler
        logger.info("Controller started; rules every %.1fs", self.rule_interval_ms / 1000)

    async def stop(self) -> None:
        if self.scheduler is not None:
            self.scheduler.shutdown(wait=False)
            self.scheduler = None
        for thermostat in self.thermostat.values():
            thermostat.stop()
        for calendar in self.calendar.values():
            calendar.stop()
        logger.info("Controller stopped")

    async def tick(self) -> list[RuleDecision]:
        """Purge stale requests, then evaluate every rule once.

        Rules run concurrently. A failing rule is logged (and an arbitration
        failure alerted) without affecting the others.
        """

        for thermostat in self.thermostat.values():
            thermostat.purge_requests()

        results = await asyncio.gather(
            *(rule.test(self) for rule in self.rules), return_exceptions=True
        )
        decisions: list[RuleDecision] = []
        for rule, result in zip(self.rules, results, strict=True):
            if isinstance(result, ArbitrationError):
                logger.error("%s failed: %s", rule.name, result)
                await self._send_alert("Hotpot arbitration failure", str(result))
            elif isinstance(result, Exception):
                logger.error("%s failed", rule.name, exc_info=result)
            elif isinstance(result, BaseException):
                raise result
            else:
                decisions.append(result)
        return decisions

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------
    def make_request(self, service: str, request: Request) -> None:
        """Apply ``request`` to ``service`` (or every service for ``ALL``).

        A request whose ``until`` is CLEAR withdraws the source's requests.
        """

        service = service.upper()
        if service == ALL_SERVICES:
            targets = list(self.thermostat)
        elif service in self.thermostat:
            targets = [service]
        else:
            raise RequestError(f"Unknown service {service}")

        for name in targets:
            thermostat = self.thermostat[name]
            if request.until == CLEAR:
                logger.info("Clearing %s requests from %s", name, request.source)
                thermostat.purge_requests({"source": request.source}, clear=True)
            else:
                logger.info("Request for %s: %s", name, request)
                thermostat.add_request(request)

    def _remove_calendar_request(self, service: str, source: str) -> None:
        thermostat = self.thermostat.get(service)
        if thermostat is not None:
            thermostat.purge_requests({"source": source}, clear=True)

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------
    async def get_state(self) -> dict[str, Any]:
        return {
            "time": self._clock(),
            "thermostat": {name: t.get_state() for name, t in self.thermostat.items()},
            "pin": {name: await p.get_serialisable_state() for name, p in self.pin.items()},
            "calendar": {name: c.get_state() for name, c in self.calendar.items()},
        }

    async def get_log(self, kind: str, name: str, since: float | None = None) -> list[float]:
        """Return the serialised history of a thermostat or pin.

        Raises :class:`KeyError` when there is no such log.
        """

        if kind not in LOG_KINDS:
            raise KeyError(f"Unknown log kind {kind!r}")
        source: Thermostat | Pin | None = (
            self.thermostat.get(name) if kind == "thermostat" else self.pin.get(name)
        )
        if source is None:
            raise KeyError(f"Unknown {kind} {name!r}")
        trace = await source.get_log(since)
        if trace is None:
            raise KeyError(f"{kind} {name!r} keeps no log")
        return trace

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------
    def _alert_for(self, subject: str) -> Callable[[str], Any]:
        async def _handler(message: str) -> None:
            await self._send_alert(subject, message)

        return _handler

    async def _send_alert(self, subject: str, message: str) -> None:
        if self.notifier is None:
            logger.warning("ALERT [%s] %s", subject, message)
            return
        await self.notifier.send_admin_alert(subject, message)


__all__ = ["LOG_KINDS", "Controller"]
