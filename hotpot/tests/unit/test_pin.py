"""Tests for hotpot.core.pin."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest

from hotpot.core.exceptions import PinIOError
from hotpot.core.pin import Pin
from hotpot.integrations.simulator import SimulatedService
from hotpot.models.schemas import PinConfig


class TestPin:
    async def test_set_state_records_reason(self) -> None:
        pin = Pin("CH", SimulatedService("CH"))
        await pin.initialise()
        await pin.set_state(1, "Too cold")
        assert await pin.get_serialisable_state() == {"state": 1, "reason": "Too cold"}

    async def test_falls_back_when_hardware_missing(self) -> None:
        hardware = AsyncMock()
        hardware.initialise.side_effect = PinIOError("no gpio")
        fallback = SimulatedService("HW")
        pin = Pin("HW", hardware, fallback=fallback)
        await pin.initialise()
        assert pin.provider is fallback

    async def test_failure_without_fallback_propagates(self) -> None:
        hardware = AsyncMock()
        hardware.initialise.side_effect = PinIOError("no gpio")
        with pytest.raises(PinIOError):
            await Pin("HW", hardware).initialise()

    async def test_history(self, tmp_path: Path, clock: Any) -> None:
        config = PinConfig.model_validate(
            {"gpio": 23, "history": {"file": str(tmp_path / "ch.log")}}
        )
        pin = Pin.from_config("CH", config, provider=SimulatedService("CH"), clock=clock)
        await pin.set_state(1)
        clock.advance(1000)
        await pin.set_state(0)
        assert await pin.get_log() == [clock() - 1000, 0, 1, 1000, 0]

    async def test_no_history(self) -> None:
        assert await Pin("CH", SimulatedService("CH")).get_log() is None
