"""GPIO output pins driven through the sysfs integer interface."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from hotpot.core.exceptions import PinIOError

logger = logging.getLogger(__name__)

GPIO_PATH = Path("/sys/class/gpio")

# Time for the kernel to create the pin directory after an export, in seconds
_EXPORT_SETTLE = 1.0


class SysfsGpio:
    """An output pin. Relays are active low, so ``active_low`` is set."""

    def __init__(self, gpio: int, *, base_path: Path = GPIO_PATH, active_low: bool = True) -> None:
        self.gpio = gpio
        self._base = base_path
        self._pin_dir = base_path / f"gpio{gpio}"
        self._active_low = active_low

    async def initialise(self) -> None:
        try:
            if not await asyncio.to_thread(self._pin_dir.exists):
                await self._write(self._base / "export", str(self.gpio))
                await asyncio.sleep(_EXPORT_SETTLE)
            await self._write(self._pin_dir / "direction", "out")
            await self._write(self._pin_dir / "active_low", "1" if self._active_low else "0")
        except PinIOError:
            logger.error("Failed to initialise GPIO %d", self.gpio)
            raise

    async def get_state(self) -> int:
        try:
            data = await asyncio.to_thread((self._pin_dir / "value").read_text)
            return int(data.strip())
        except (OSError, ValueError) as exc:
            raise PinIOError(f"GPIO {self.gpio} read failed: {exc}") from exc

    async def set_state(self, state: int) -> None:
        await self._write(self._pin_dir / "value", str(int(state)))

    async def _write(self, path: Path, value: str) -> None:
        try:
            await asyncio.to_thread(path.write_text, value)
        except OSError as exc:
            raise PinIOError(f"GPIO {self.gpio} write to {path.name} failed: {exc}") from exc


__all__ = ["GPIO_PATH", "SysfsGpio"]
