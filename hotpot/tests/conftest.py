from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from hotpot.core.controller import Controller
from hotpot.core.historian import Historian
from hotpot.core.pin import Pin
from hotpot.core.thermostat import Thermostat
from hotpot.core.timeline import Timeline, Timepoint
from hotpot.core.time_utils import ONE_DAY_MS
from hotpot.integrations.simulator import SimulatedService
from hotpot.models.schemas import ControllerConfig
from hotpot.services.notification_service import NotificationService

# 2023-11-14T22:13:20Z
EPOCH = 1_700_000_000_000


class ManualClock:
    """Epoch-ms clock that only moves when told to."""

    def __init__(self, now: int = EPOCH) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def flat_timeline() -> Callable[[float], Timeline]:
    def _make(value: float) -> Timeline:
        return Timeline(min=0, max=90, period=ONE_DAY_MS, points=[Timepoint(0, value)])

    return _make


@pytest.fixture()
def make_thermostat(
    clock: ManualClock, flat_timeline: Callable[[float], Timeline]
) -> Callable[..., Thermostat]:
    def _make(
        name: str = "CH",
        *,
        temperature: float | None = None,
        target: float = 20.0,
        sensor: SimulatedService | None = None,
    ) -> Thermostat:
        thermostat = Thermostat(
            name,
            sensor=sensor or SimulatedService(name, temperature=temperature or 12.0),
            timeline=flat_timeline(target),
            clock=clock,
        )
        thermostat.temperature = temperature
        return thermostat

    return _make


@pytest.fixture()
def sim_pins() -> dict[str, Pin]:
    return {name: Pin(name, SimulatedService(name)) for name in ("CH", "HW")}


@pytest.fixture()
def historian_factory(tmp_path: Path, clock: ManualClock) -> Callable[..., Historian]:
    def _make(name: str = "test", **kwargs: object) -> Historian:
        path = tmp_path / f"{name}.log"
        return Historian(path, name=name, clock=clock, **kwargs)  # type: ignore[arg-type]

    return _make


# ---------------------------------------------------------------------------
# Controller on simulated hardware
# ---------------------------------------------------------------------------


@pytest.fixture()
def installation(tmp_path: Path) -> dict[str, Any]:
    return {
        "thermostat": {
            "CH": {"id": "28-0316027f81ff", "timeline": {"points": [{"time": 0, "value": 20}]}},
            "HW": {
                "id": "28-0316027c72ff",
                "timeline": {"max": 90, "points": [{"times": "00:00", "value": 45}]},
            },
        },
        "pin": {
            "CH": {"gpio": 23},
            "HW": {"gpio": 25, "history": {"file": str(tmp_path / "hw_pin.log")}},
        },
        "calendar": {"home": {"file": str(tmp_path / "calendar.json")}},
        "valve_return": 0,
        "rule_interval": 50,
    }


@pytest.fixture()
def notifier() -> AsyncMock:
    return AsyncMock(spec=NotificationService)


@pytest.fixture()
async def controller(
    installation: dict[str, Any], notifier: AsyncMock
) -> AsyncGenerator[Controller]:
    config = ControllerConfig.model_validate(installation)
    ctl = Controller.from_config(config, simulate=True, notifier=notifier, sleep=AsyncMock())
    await ctl.initialise()
    yield ctl
    await ctl.stop()


@pytest.fixture()
async def client(controller: Controller) -> AsyncGenerator[AsyncClient]:
    from hotpot.api.main import app

    app.state.controller = controller
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.state.controller = None
