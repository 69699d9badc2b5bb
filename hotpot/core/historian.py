"""Append-only time-series logger tolerant of out-of-order writes."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from hotpot.core.time_utils import now_ms

if TYPE_CHECKING:
    from hotpot.models.schemas import HistorianConfig

logger = logging.getLogger(__name__)

# Delay before the first sample once sampling starts, in seconds
_FIRST_SAMPLE_DELAY = 0.1

Sample = tuple[float, float]


def _number(text: str) -> float:
    value = float(text)
    return int(value) if value.is_integer() else value


def _format(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


class Historian:
    """Log ``time,sample`` rows to a file, either on demand or by sampling.

    When ``interval`` is set and a sample arrives more than 1.25 intervals
    after the previous one, a checkpoint row repeating the previous sample is
    written first so readers can tell "no change" from "no data".

    ``unordered`` logs may be written out of time order. They are sorted on
    read; when two rows share a time the later-written row wins, and the file
    is rewritten in sorted form.

    Usage::

        historian = Historian("/var/log/hotpot/ch.log", name="CH", interval=300_000)
        historian.start(lambda: thermostat.temperature)
        trace = await historian.get_serialisable_history(since=yesterday)
        historian.stop()
    """

    def __init__(
        self,
        file: str | Path,
        *,
        name: str,
        interval: float | None = None,
        unordered: bool = False,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.file = Path(file)
        self.name = name
        self.interval = interval
        self.unordered = unordered
        self._clock = clock
        self.last_time: float | None = None
        self.last_sample: float | None = None
        self._sampler: Callable[[], float | None] | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._inflight: asyncio.Task[None] | None = None
        logger.debug("Historian %s logging to %s", name, self.file)

    @classmethod
    def from_config(
        cls, config: HistorianConfig, name: str, *, clock: Callable[[], int] = now_ms
    ) -> Historian:
        return cls(
            config.file,
            name=name,
            interval=config.interval,
            unordered=config.unordered,
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------
    async def record(self, sample: float, time: float | None = None) -> None:
        """Append a sample to the log. Write failures are logged, not raised."""

        if time is None:
            time = self._clock()

        lines = ""
        if (
            self.interval is not None
            and self.last_time is not None
            and time > self.last_time + 5 * self.interval / 4
        ):
            lines = f"{_format(time - self.interval)},{_format(self.last_sample)}\n"
        lines += f"{_format(time)},{_format(sample)}\n"
        self.last_time = time
        self.last_sample = sample

        try:
            await asyncio.to_thread(self._append, lines)
        except OSError as exc:
            logger.warning("Historian %s failed to append to %s: %s", self.name, self.file, exc)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------
    async def load(self) -> list[Sample]:
        """Return the logged samples in time order."""

        try:
            text = await asyncio.to_thread(self.file.read_text)
        except FileNotFoundError:
            return []
        except OSError as exc:
            logger.warning("Historian %s cannot read %s: %s", self.name, self.file, exc)
            return []

        report: list[Sample] = []
        for line in text.splitlines():
            fields = line.split(",", 1)
            if len(fields) != 2:
                continue
            try:
                report.append((_number(fields[0]), _number(fields[1])))
            except ValueError:
                logger.debug("Historian %s skipping bad row %r", self.name, line)

        if self.unordered and len(report) > 1:
            reconciled = reconcile(report)
            if reconciled != report:
                logger.info(
                    "Historian %s rewriting %s (%d rows, was %d)",
                    self.name,
                    self.file,
                    len(reconciled),
                    len(report),
                )
                await self._rewrite(reconciled)
            report = reconciled
        return report

    async def get_serialisable_history(self, since: float | None = None) -> list[float]:
        """Return ``[base, dt1, v1, dt2, v2, ...]`` with times relative to ``base``.

        ``base`` is the time of the oldest sample (now when the log is empty);
        samples older than ``since`` are omitted.
        """

        report = await self.load()
        base = report[0][0] if report else self._clock()
        encoded: list[float] = [base]
        for time, sample in report:
            if since is None or time >= since:
                encoded.append(time - base)
                encoded.append(sample)
        return encoded

    # ------------------------------------------------------------------
    # Sampling loop
    # ------------------------------------------------------------------
    def start(self, sampler: Callable[[], float | None]) -> None:
        if not callable(sampler):
            raise TypeError("Cannot start; sampler is not callable")
        if self.interval is None:
            raise ValueError("Cannot start; interval not defined")
        self._sampler = sampler
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(_FIRST_SAMPLE_DELAY, self._poll)

    def stop(self) -> None:
        """Stop sampling, cancelling a sample that is still being written."""

        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            logger.debug("Historian %s stopped", self.name)
        if self._inflight is not None:
            self._inflight.cancel()
            self._inflight = None

    @property
    def running(self) -> bool:
        return self._timer is not None

    def _poll(self) -> None:
        self._inflight = asyncio.get_running_loop().create_task(
            self._sample_once(), name=f"historian-{self.name}"
        )

    async def _sample_once(self) -> None:
        assert self._sampler is not None
        try:
            datum = self._sampler()
            # Repeats of the same sample are not recorded
            if isinstance(datum, (int, float)) and datum != self.last_sample:
                await self.record(datum)
        except Exception:
            logger.exception("Historian %s sampler failed", self.name)
        finally:
            self._inflight = None
            # A live timer handle means sampling continues
            if self._timer is not None:
                assert self.interval is not None
                self._timer = asyncio.get_running_loop().call_later(
                    self.interval / 1000, self._poll
                )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _append(self, lines: str) -> None:
        with self.file.open("a") as fh:
            fh.write(lines)

    async def _rewrite(self, report: list[Sample]) -> None:
        body = "".join(f"{_format(t)},{_format(v)}\n" for t, v in report)
        try:
            await asyncio.to_thread(self.file.write_text, body)
        except OSError as exc:
            logger.warning("Historian %s failed to rewrite %s: %s", self.name, self.file, exc)


def reconcile(report: list[Sample]) -> list[Sample]:
    """Sort samples by time; of rows sharing a time, the last written wins."""

    latest: dict[float, float] = {}
    for time, sample in report:
        latest[time] = sample
    return sorted(latest.items())


__all__ = ["Historian", "reconcile"]
