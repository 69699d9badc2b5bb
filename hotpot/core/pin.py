"""A GPIO output driving one service, with the reason it was last set."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from hotpot.core.exceptions import PinIOError
from hotpot.core.historian import Historian
from hotpot.core.providers import PinProvider
from hotpot.core.time_utils import now_ms

if TYPE_CHECKING:
    from collections.abc import Callable

    from hotpot.models.schemas import PinConfig

logger = logging.getLogger(__name__)


class Pin:
    """Thin wrapper over a :class:`PinProvider`.

    State changes are recorded in the optional historian so the log shows
    when the boiler was asked to run.
    """

    def __init__(
        self,
        name: str,
        provider: PinProvider,
        *,
        history: Historian | None = None,
        fallback: PinProvider | None = None,
    ) -> None:
        self.name = name
        self.provider = provider
        self.history = history
        self.reason = ""
        self._fallback = fallback

    @classmethod
    def from_config(
        cls,
        name: str,
        config: PinConfig,
        *,
        provider: PinProvider,
        fallback: PinProvider | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> Pin:
        history = (
            Historian.from_config(config.history, name, clock=clock) if config.history else None
        )
        return cls(name, provider, history=history, fallback=fallback)

    async def initialise(self) -> Pin:
        try:
            await self.provider.initialise()
        except PinIOError as exc:
            if self._fallback is None:
                raise
            logger.error("Pin %s initialisation failed: %s", self.name, exc)
            logger.warning("Falling back to simulated pin for %s", self.name)
            self.provider = self._fallback
            await self.provider.initialise()
        logger.info("Pin %s initialised", self.name)
        return self

    async def get_state(self) -> int:
        return int(await self.provider.get_state())

    async def set_state(self, state: int, reason: str = "") -> None:
        logger.debug("Pin %s -> %d (%s)", self.name, state, reason)
        await self.provider.set_state(int(state))
        self.reason = reason
        if self.history is not None:
            await self.history.record(int(state))

    async def get_serialisable_state(self) -> dict[str, Any]:
        return {"state": await self.get_state(), "reason": self.reason}

    async def get_log(self, since: float | None = None) -> list[float] | None:
        if self.history is None:
            return None
        return await self.history.get_serialisable_history(since)


__all__ = ["Pin"]
