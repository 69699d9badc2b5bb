"""Cyclic piecewise-linear target profile."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from hotpot.core.exceptions import BadOrder, NotRemovable, OutOfRange, TimelineError
from hotpot.core.time_utils import format_hms

if TYPE_CHECKING:
    from hotpot.models.schemas import TimelineConfig

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Timepoint:
    """Vertex on a timeline graph."""

    time: float
    value: float

    def to_serialisable(self, *, human: bool = False) -> dict[str, Any]:
        if human:
            return {"times": format_hms(self.time), "value": self.value}
        return {"time": self.time, "value": self.value}


class Timeline:
    """A continuous graph giving a value at every time over a repeating period.

    The timeline starts at 0 and runs to ``period - 1``. Values are kept in
    ``min..max``. There is always a point at time 0 and a point at
    ``period - 1``; these endpoints can be moved in value but not removed.
    A timeline built without points is a flat line at ``(min + max) / 2``.

    All edits go through :meth:`set_point`, which validates ordering and
    bounds, except :meth:`set_point_constrained`, which clamps instead of
    failing and is meant for interactive editors.
    """

    def __init__(
        self,
        *,
        min: float = 0.0,  # noqa: A002
        max: float = 30.0,  # noqa: A002
        period: float,
        points: list[Timepoint] | None = None,
    ) -> None:
        if max < min or period <= 0:
            raise TimelineError("Bad configuration")
        self.min = float(min)
        self.max = float(max)
        self.period = float(period)
        self.points: list[Timepoint] = [Timepoint(p.time, p.value) for p in points or []]

        for index in range(len(self.points)):
            self.set_point(index)
        self._fix_extremes()

    @classmethod
    def from_config(cls, config: TimelineConfig) -> Timeline:
        return cls(
            min=config.min,
            max=config.max,
            period=config.period,
            points=[
                Timepoint(float(p.time), p.value)  # type: ignore[arg-type]
                for p in config.points
            ],
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def n_points(self) -> int:
        return len(self.points)

    def get_point(self, index: int) -> Timepoint:
        self._check_index(index)
        return self.points[index]

    def get_point_after(self, t: float) -> int:
        """Return the index of the first point after ``t``.

        The last point is returned when ``t`` lies at or beyond it.
        """

        self._check_time(t)
        for index in range(1, len(self.points) - 1):
            if self.points[index].time > t:
                return index
        return len(self.points) - 1

    def value_at_time(self, t: float) -> float:
        index = self.get_point_after(t)
        after = self.points[index]
        if index == 0 or t >= after.time:
            # Past the last point the line continues flat to the period end
            return after.value
        before = self.points[index - 1]
        return before.value + (t - before.time) * (after.value - before.value) / (
            after.time - before.time
        )

    def get_max_value(self) -> float:
        return max(p.value for p in self.points)

    def get_min_value(self) -> float:
        return min(p.value for p in self.points)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def insert_before(self, index: int, point: Timepoint) -> int:
        """Insert ``point`` before the point at ``index`` (which must be > 0)."""

        if index <= 0 or index >= len(self.points):
            raise OutOfRange(f"Index {index} is outside timeline 0..{len(self.points) - 1}")
        self.points.insert(index, Timepoint(point.time, point.value))
        try:
            self.set_point(index)
        except TimelineError:
            del self.points[index]
            raise
        return index

    def remove(self, index: int) -> Timeline:
        if index <= 0 or index >= len(self.points) - 1:
            raise NotRemovable(f"{index} cannot be removed from 0..{len(self.points) - 1}")
        del self.points[index]
        return self

    def set_point(self, index: int, point: Timepoint | None = None) -> None:
        """Set the point at ``index``, validating it against its neighbours.

        With no ``point`` the point already at ``index`` is re-validated.
        """

        self._check_index(index)
        p = point if point is not None else self.points[index]
        if p.time < 0 or p.time >= self.period:
            raise OutOfRange(f"Time {p.time:g} outside period 0..{self.period - 1:g}")
        if index < len(self.points) - 1 and p.time >= self.points[index + 1].time:
            raise BadOrder(
                f"setPoint {p.time:g} is later than following point "
                f"@{self.points[index + 1].time:g}"
            )
        if index > 0 and p.time <= self.points[index - 1].time:
            raise BadOrder(
                f"setPoint {p.time:g} is earlier than preceding point "
                f"@{self.points[index - 1].time:g}"
            )
        if p.value < self.min or p.value > self.max:
            raise OutOfRange(
                f"setPoint value {p.value:g} is out of range {self.min:g}..{self.max:g}"
            )
        target = self.points[index]
        target.time = p.time
        target.value = p.value

    def set_point_constrained(self, index: int, point: Timepoint) -> bool:
        """Move a point, clamping it into the legal range instead of failing.

        Returns ``True`` if the stored point changed.
        """

        self._check_index(index)
        current = self.points[index]
        last = len(self.points) - 1

        value = min(max(point.value, self.min), self.max)
        time = min(max(point.time, 0.0), self.period - 1)

        if index == 0:
            time = 0.0
        elif index == last:
            time = self.period - 1
        else:
            lower = self.points[index - 1].time + 1
            upper = self.points[index + 1].time - 1
            if lower > upper:
                # No room between the neighbours
                time = current.time
            else:
                time = min(max(time, lower), upper)

        if time == current.time and value == current.value:
            return False
        current.time = time
        current.value = value
        return True

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------
    def to_serialisable(self, *, human: bool = False) -> dict[str, Any]:
        return {
            "min": self.min,
            "max": self.max,
            "period": self.period,
            "points": [p.to_serialisable(human=human) for p in self.points],
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Timeline):
            return NotImplemented
        return (
            self.min == other.min
            and self.max == other.max
            and self.period == other.period
            and self.points == other.points
        )

    def __repr__(self) -> str:
        return (
            f"Timeline(min={self.min:g}, max={self.max:g}, period={self.period:g}, "
            f"points={len(self.points)})"
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _check_index(self, index: int) -> None:
        if index < 0 or index >= len(self.points):
            raise OutOfRange(f"Point {index} not in timeline")

    def _check_time(self, t: float) -> None:
        if t < 0 or t >= self.period:
            raise OutOfRange(f"{t:g} is outside timeline 0..{self.period - 1:g}")

    def _fix_extremes(self) -> None:
        end = self.period - 1
        if not self.points:
            mid = (self.min + self.max) / 2
            self.points.append(Timepoint(0.0, mid))
        if self.points[0].time != 0:
            self.points.insert(0, Timepoint(0.0, self.points[0].value))
        if self.points[-1].time < end:
            logger.debug("Extending timeline to %s", format_hms(end))
            self.points.append(Timepoint(end, self.points[-1].value))


__all__ = ["Timeline", "Timepoint"]
