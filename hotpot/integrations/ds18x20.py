"""DS18x20 1-wire temperature sensors read through sysfs."""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path

from hotpot.core.exceptions import SensorError

logger = logging.getLogger(__name__)

ONE_WIRE_PATH = Path("/sys/bus/w1/devices")

# 85000 is the power-on reset value, reported when a conversion failed
_ERROR_85 = 85000

_SENSOR_ID_RE = re.compile(r"^[\da-f]{2}-[\da-f]{12}$", re.IGNORECASE)


class DS18x20:
    """One DS18x20 sensor on the 1-wire bus."""

    def __init__(self, sensor_id: str, *, base_path: Path = ONE_WIRE_PATH) -> None:
        self.sensor_id = sensor_id
        self._path = base_path / sensor_id / "w1_slave"

    async def initialise(self) -> None:
        await self.get_temperature()

    async def get_temperature(self) -> float:
        logger.debug("Polling %s", self.sensor_id)
        try:
            content = await asyncio.to_thread(self._path.read_text, encoding="latin-1")
        except OSError as exc:
            raise SensorError(f"DS18x20 {self.sensor_id} unreadable: {exc}") from exc
        return self.parse(self.sensor_id, content)

    @staticmethod
    def parse(sensor_id: str, content: str) -> float:
        lines = content.split("\n")
        if len(lines) < 2 or not lines[0].rstrip().endswith("YES"):
            raise SensorError(f"DS18x20 {sensor_id} CRC check failed {content!r}")
        parts = lines[1].split("t=")
        if len(parts) != 2:
            raise SensorError(f"DS18x20 {sensor_id} format error")
        try:
            raw = float(parts[1])
        except ValueError as exc:
            raise SensorError(f"DS18x20 {sensor_id} format error") from exc
        if raw == _ERROR_85:
            raise SensorError(f"DS18x20 {sensor_id} error 85")
        return raw / 1000


async def list_sensors(base_path: Path = ONE_WIRE_PATH) -> list[str]:
    """Return the ids of sensors visible on the bus."""

    entries = await asyncio.to_thread(lambda: [p.name for p in base_path.iterdir()])
    return sorted(name for name in entries if _SENSOR_ID_RE.match(name))


__all__ = ["DS18x20", "ONE_WIRE_PATH", "list_sensors"]
