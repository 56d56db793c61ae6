"""Scoped stage timing: one trace per pipeline invocation."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class StageRecord:
    name: str
    started_at: float
    duration_ms: int = 0
    status: str = "running"
    error: str | None = None


@dataclass
class StageTrace:
    """Records entry/exit of named stages.

    Usage::

        trace = StageTrace("transcript")
        with trace.stage("download"):
            ...
        trace.durations()  # {"download": 412}
    """

    label: str = "pipeline"
    clock: Callable[[], float] = time.perf_counter
    records: list[StageRecord] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._origin = self.clock()

    @contextmanager
    def stage(self, name: str) -> Iterator[StageRecord]:
        record = StageRecord(name=name, started_at=self.clock())
        self.records.append(record)
        try:
            yield record
        except BaseException as exc:
            record.status = "failed"
            record.error = str(exc)
            raise
        else:
            record.status = "ok"
        finally:
            record.duration_ms = int((self.clock() - record.started_at) * 1000)
            logger.info(
                "%s [%dms] %s %s (%dms)",
                self.label,
                self.elapsed_ms(),
                name,
                record.status,
                record.duration_ms,
            )

    def elapsed_ms(self) -> int:
        return int((self.clock() - self._origin) * 1000)

    def durations(self) -> dict[str, int]:
        """Stage name -> duration in ms (repeated stages are summed)."""
        totals: dict[str, int] = {}
        for record in self.records:
            totals[record.name] = totals.get(record.name, 0) + record.duration_ms
        return totals

    def failed_stage(self) -> str | None:
        for record in reversed(self.records):
            if record.status == "failed":
                return record.name
        return None
