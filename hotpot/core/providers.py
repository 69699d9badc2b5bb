"""Capability interfaces for the hardware the controller talks to.

Hardware-backed implementations live in :mod:`hotpot.integrations.ds18x20`
and :mod:`hotpot.integrations.gpio`; simulated ones in
:mod:`hotpot.integrations.simulator`. Which set is used is decided when the
controller is composed.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class SensorProvider(Protocol):
    async def initialise(self) -> None: ...

    async def get_temperature(self) -> float:
        """Return degrees C, or raise :class:`~hotpot.core.exceptions.SensorError`."""
        ...


@runtime_checkable
class PinProvider(Protocol):
    async def initialise(self) -> None: ...

    async def get_state(self) -> int: ...

    async def set_state(self, state: int) -> None:
        """Drive the pin, or raise :class:`~hotpot.core.exceptions.PinIOError`."""
        ...


__all__ = ["PinProvider", "SensorProvider"]
