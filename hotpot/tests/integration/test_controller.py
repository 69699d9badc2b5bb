"""End-to-end tests of the controller running on simulated hardware."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest

from hotpot.core.controller import Controller
from hotpot.core.exceptions import ArbitrationError, RequestError
from hotpot.core.request import BOOST, CLEAR, OFF, Request
from hotpot.core.rule_engine import HotWaterRule, Rule, RuleDecision
from hotpot.integrations.simulator import SimulatedService, Simulator
from hotpot.models.enums import Reason
from hotpot.models.schemas import CalendarEventPayload, ControllerConfig

# ===================================================================
# Composition
# ===================================================================


class TestComposition:
    def test_simulated_sensor_and_pin_share_a_service(
        self, installation: dict[str, Any]
    ) -> None:
        simulator = Simulator()
        config = ControllerConfig.model_validate(installation)
        controller = Controller.from_config(config, simulate=True, simulator=simulator)
        assert controller.thermostat["CH"].sensor is simulator.get_service("CH")
        assert controller.pin["CH"].provider is simulator.get_service("CH")
        assert controller.arbitrator.valve_return_ms == 0
        assert set(controller.calendar) == {"home"}

    async def test_hardware_falls_back_to_simulation(
        self, installation: dict[str, Any]
    ) -> None:
        # No 1-wire bus or GPIO sysfs here, so every device falls back
        config = ControllerConfig.model_validate(installation)
        controller = Controller.from_config(config, sleep=AsyncMock())
        await controller.initialise()
        try:
            assert isinstance(controller.thermostat["HW"].sensor, SimulatedService)
            assert isinstance(controller.pin["HW"].provider, SimulatedService)
        finally:
            await controller.stop()

    async def test_initialise_resets_valve(self, controller: Controller) -> None:
        state = await controller.get_state()
        assert state["pin"]["CH"] == {"state": 0, "reason": Reason.reset}
        assert state["pin"]["HW"] == {"state": 0, "reason": Reason.reset}


# ===================================================================
# Control loop
# ===================================================================


class TestTick:
    async def test_cold_house_turns_both_services_on(self, controller: Controller) -> None:
        decisions = await controller.tick()
        assert {d.service: d.reason for d in decisions} == {
            "CH": Reason.too_cold,
            "HW": Reason.too_cold,
        }
        assert await controller.pin["CH"].get_state() == 1
        assert await controller.pin["HW"].get_state() == 1

    async def test_warm_enough_turns_off(self, controller: Controller) -> None:
        await controller.tick()
        controller.thermostat["HW"].temperature = 80
        controller.thermostat["CH"].add_request(Request(source="test", temperature=25))
        controller.thermostat["CH"].temperature = 21
        await controller.tick()
        assert await controller.pin["HW"].get_state() == 0
        assert controller.pin["HW"].reason == Reason.overheat
        assert await controller.pin["CH"].get_state() == 1

    async def test_boost_expires_when_reached(self, controller: Controller) -> None:
        hw = controller.thermostat["HW"]
        hw.temperature = 46
        controller.make_request("HW", Request(source="button", temperature=60, until=BOOST))
        await controller.tick()
        assert await controller.pin["HW"].get_state() == 1

        hw.temperature = 61
        await controller.tick()
        assert hw.requests == []
        assert await controller.pin["HW"].get_state() == 0

    async def test_failing_rule_does_not_stop_others(
        self, controller: Controller, caplog: pytest.LogCaptureFixture
    ) -> None:
        class BrokenRule(Rule):
            async def test(self, controller: Any) -> RuleDecision:
                raise RuntimeError("boom")

        controller.rules = [BrokenRule("CH"), HotWaterRule()]
        decisions = await controller.tick()
        assert [d.service for d in decisions] == ["HW"]
        assert "CH rule failed" in caplog.text

    async def test_arbitration_failure_alerts(
        self, controller: Controller, notifier: AsyncMock
    ) -> None:
        controller.arbitrator.set_state = AsyncMock(  # type: ignore[method-assign]
            side_effect=ArbitrationError("CH", "stuck")
        )
        await controller.tick()
        notifier.send_admin_alert.assert_awaited()
        subject, message = notifier.send_admin_alert.await_args.args
        assert subject == "Hotpot arbitration failure"
        assert "stuck" in message

    async def test_scheduled_loop(self, controller: Controller) -> None:
        controller.start()
        assert controller.scheduler is not None
        assert controller.scheduler.get_job("rule_tick") is not None
        assert controller.scheduler.get_job("calendar_home") is not None
        for _ in range(50):
            await asyncio.sleep(0.02)
            if await controller.pin["CH"].get_state() == 1:
                break
        assert await controller.pin["CH"].get_state() == 1
        await controller.stop()
        assert controller.scheduler is None


# ===================================================================
# Requests
# ===================================================================


class TestRequests:
    def test_all_services(self, controller: Controller) -> None:
        controller.make_request("all", Request(source="away", temperature=OFF))
        assert all(t.requests for t in controller.thermostat.values())

    def test_clear(self, controller: Controller) -> None:
        controller.make_request("CH", Request(source="a", temperature=22))
        controller.make_request("CH", Request(source="b", temperature=23))
        controller.make_request("CH", Request(source="a", temperature=0, until=CLEAR))
        assert [r.source for r in controller.thermostat["CH"].requests] == ["b"]

    def test_unknown_service(self, controller: Controller) -> None:
        with pytest.raises(RequestError):
            controller.make_request("POOL", Request(source="a", temperature=22))

    async def test_calendar_event_becomes_request(
        self, controller: Controller, tmp_path: Path
    ) -> None:
        calendar = controller.calendar["home"]
        now = controller._clock()
        event_id = await calendar.add_event(  # type: ignore[attr-defined]
            CalendarEventPayload(start=now - 1000, end=now + 3_600_000, title="CH 23")
        )
        requests = controller.thermostat["CH"].requests
        assert [(r.source, r.temperature) for r in requests] == [("Calendar 'home'", 23.0)]

        await calendar.remove_event(event_id)  # type: ignore[attr-defined]
        assert controller.thermostat["CH"].requests == []


# ===================================================================
# Logs and state
# ===================================================================


class TestLogs:
    async def test_pin_log(self, controller: Controller) -> None:
        await controller.tick()
        trace = await controller.get_log("pin", "HW")
        # reset wrote 1 then 0; the tick wrote 1
        assert trace[2::2] == [1, 0, 1]

    async def test_missing_logs(self, controller: Controller) -> None:
        with pytest.raises(KeyError):
            await controller.get_log("thermostat", "CH")
        with pytest.raises(KeyError):
            await controller.get_log("pin", "POOL")
        with pytest.raises(KeyError):
            await controller.get_log("boiler", "CH")

    async def test_state(self, controller: Controller) -> None:
        state = await controller.get_state()
        assert set(state) == {"time", "thermostat", "pin", "calendar"}
        assert state["thermostat"]["CH"]["target"] == 20
        assert state["calendar"]["home"] == {"events": {}}
