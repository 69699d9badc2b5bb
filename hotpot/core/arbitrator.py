"""Serialised access to the coupled CH/HW pins of a Y-plan system."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping

from hotpot.core.exceptions import ArbitrationError, PinIOError
from hotpot.core.pin import Pin
from hotpot.models.enums import PinState, Reason, Service

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class ActuatorArbitrator:
    """Owns every write to the CH and HW pins.

    In a Y-plan system the mid-position valve is held by the HW and CH
    control lines and returns under a spring. Turning CH off while HW is
    also off would leave the valve half-way, so the pair is driven through a
    spring-return sequence instead: CH off, HW on, wait for the valve, HW
    off.

    Writes are serialised by one lock shared by both pins. A caller that
    arrives while a sequence is running waits for it and then applies its
    own change against the pin state as it is then; nothing is dropped.
    """

    def __init__(
        self,
        pins: Mapping[str, Pin],
        *,
        valve_return_ms: float = 8000.0,
        write_retries: int = 3,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if Service.CH not in pins or Service.HW not in pins:
            raise ValueError("Y-plan arbitration needs both CH and HW pins")
        self.pins = dict(pins)
        self.valve_return_ms = valve_return_ms
        self.write_retries = max(1, write_retries)
        self._sleep = sleep
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def set_state(self, service: str, state: int, reason: str = "") -> bool:
        """Drive ``service`` to ``state``. Returns False when it was already there.

        Raises :class:`ArbitrationError` when a pin write keeps failing.
        """

        pin = self._pin(service)
        async with self._lock:
            current = await self._read(service)
            if current == state:
                return False

            if service == Service.CH and state == PinState.off:
                hw_state = await self._read(Service.HW)
                if hw_state == PinState.off:
                    await self._spring_return(reason)
                    return True

            logger.info("%s %s -> %d (%s)", service, pin.name, state, reason)
            await self._write(service, state, reason)
            return True

    async def reset_valve(self) -> None:
        """Put the valve into a known position at startup."""

        async with self._lock:
            logger.info("Resetting valve")
            try:
                await self._write(Service.HW, PinState.on, Reason.reset)
                await self._sleep(self.valve_return_ms / 1000)
                await self._write(Service.CH, PinState.off, Reason.reset)
            finally:
                await self._release_hw(Reason.reset)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    async def _spring_return(self, reason: str) -> None:
        logger.info("CH off with HW off; holding HW while the valve returns")
        try:
            await self._write(Service.CH, PinState.off, reason)
            await self._write(Service.HW, PinState.on, Reason.spring_return)
            await self._sleep(self.valve_return_ms / 1000)
        finally:
            await self._release_hw(Reason.spring_return)

    async def _release_hw(self, reason: str) -> None:
        # Raises only when HW cannot be brought back to off
        await self._write(Service.HW, PinState.off, reason)

    async def _write(self, service: str, state: int, reason: str) -> None:
        pin = self._pin(service)
        last_error: PinIOError | None = None
        for attempt in range(1, self.write_retries + 1):
            try:
                await pin.set_state(state, str(reason))
                return
            except PinIOError as exc:
                last_error = exc
                logger.warning(
                    "Write %d to %s failed (attempt %d/%d): %s",
                    state,
                    service,
                    attempt,
                    self.write_retries,
                    exc,
                )
        raise ArbitrationError(
            service, f"could not set {state} after {self.write_retries} attempts: {last_error}"
        )

    async def _read(self, service: str) -> int:
        try:
            return await self._pin(service).get_state()
        except PinIOError as exc:
            raise ArbitrationError(service, f"cannot read state: {exc}") from exc

    def _pin(self, service: str) -> Pin:
        try:
            return self.pins[service]
        except KeyError:
            raise ArbitrationError(service, "no such pin") from None


__all__ = ["ActuatorArbitrator"]
