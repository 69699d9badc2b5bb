"""Simulated sensors and pins for running without connected hardware."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

logger = logging.getLogger(__name__)

# Cooling and heating rates in degrees per second, indexed by pin state
RATES: dict[str, tuple[float, float]] = {
    "HW": (-0.001, 0.015),
    "CH": (-0.003, 0.01),
}
_DEFAULT_RATES = (-0.1, 0.1)


class SimulatedService:
    """Simulates the sensor and the pin of one service.

    The temperature drifts according to the pin state: it cools while the
    pin is off and heats while it is on. Alternatively a fixed list of
    samples can be stepped through, one per read.
    """

    def __init__(
        self,
        name: str,
        *,
        temperature: float = 12.0,
        rates: tuple[float, float] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.temperature = temperature
        self.pin_state = 0
        self._rates = rates or RATES.get(name, _DEFAULT_RATES)
        self._clock = clock
        self._last_update = clock()
        self._samples: list[float] | None = None
        self._sample_index = -1

    def set_samples(self, samples: Sequence[float]) -> None:
        self._samples = list(samples)
        self._sample_index = -1

    # Sensor
    async def initialise(self) -> None:
        logger.info("%s simulation initialised", self.name)

    async def get_temperature(self) -> float:
        if self._samples:
            self._sample_index = (self._sample_index + 1) % len(self._samples)
            return self._samples[self._sample_index]
        self._advance()
        return self.temperature

    # Pin
    async def get_state(self) -> int:
        return self.pin_state

    async def set_state(self, state: int) -> None:
        self._advance()
        self.pin_state = int(state)

    def _advance(self) -> None:
        now = self._clock()
        elapsed = now - self._last_update
        self._last_update = now
        self.temperature = max(0.0, self.temperature + elapsed * self._rates[self.pin_state])


class Simulator:
    """Registry of simulated services, one per service name."""

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._services: dict[str, SimulatedService] = {}

    def get_service(self, name: str) -> SimulatedService:
        service = self._services.get(name)
        if service is None:
            service = SimulatedService(name, clock=self._clock)
            self._services[name] = service
        return service


__all__ = ["RATES", "SimulatedService", "Simulator"]
