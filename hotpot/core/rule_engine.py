"""Deterministic on/off rules for the heating services."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from hotpot.models.enums import PinState, Reason, Service

if TYPE_CHECKING:
    from hotpot.core.controller import Controller

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RuleDecision:
    """What a rule wants for its service; ``state`` of None means leave it alone."""

    service: str
    state: PinState | None
    reason: str = ""
    temperature: float | None = None
    target: float | None = None


class Rule:
    """Bang-bang control of one service against its thermostat.

    Turns the service off above the target (or above the ceiling, which is
    reported as an overheat) and on below ``target - precision``. Inside the
    band nothing changes, so the pin keeps whatever state it had.
    """

    precision: float = 0.5
    warm_reason: str = Reason.warm_enough

    def __init__(self, service: str, *, precision: float | None = None) -> None:
        self.service = service
        if precision is not None:
            self.precision = precision

    @property
    def name(self) -> str:
        return f"{self.service} rule"

    def decide(
        self, temperature: float | None, target: float, maximum: float
    ) -> RuleDecision:
        if temperature is None:
            return RuleDecision(self.service, None, "No reading", None, target)

        if temperature > maximum:
            return RuleDecision(self.service, PinState.off, Reason.overheat, temperature, target)
        if temperature > target:
            return RuleDecision(self.service, PinState.off, self.warm_reason, temperature, target)
        if temperature < target - self.precision:
            return RuleDecision(self.service, PinState.on, Reason.too_cold, temperature, target)
        return RuleDecision(self.service, None, "", temperature, target)

    async def test(self, controller: Controller) -> RuleDecision:
        """Evaluate against the controller's thermostat and apply the result."""

        thermostat = controller.thermostat[self.service]
        decision = self.decide(
            thermostat.temperature,
            thermostat.get_target_temperature(),
            thermostat.get_maximum_temperature(),
        )
        if decision.state is None:
            return decision

        if decision.reason == Reason.overheat:
            logger.warning(
                "%s overheat: %.1f above maximum", self.service, decision.temperature or 0.0
            )
        await controller.arbitrator.set_state(self.service, decision.state, decision.reason)
        return decision

    def __repr__(self) -> str:
        return f"{type(self).__name__}(service={self.service!r}, precision={self.precision})"


class CentralHeatingRule(Rule):
    precision = 0.5
    warm_reason = Reason.warm_enough

    def __init__(self, *, precision: float | None = None) -> None:
        super().__init__(Service.CH, precision=precision)


class HotWaterRule(Rule):
    precision = 2.0
    warm_reason = Reason.hot_enough

    def __init__(self, *, precision: float | None = None) -> None:
        super().__init__(Service.HW, precision=precision)


def default_rules() -> list[Rule]:
    return [CentralHeatingRule(), HotWaterRule()]


__all__ = ["CentralHeatingRule", "HotWaterRule", "Rule", "RuleDecision", "default_rules"]
