"""Progress tracking for oracle probes."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable

import structlog

log = structlog.get_logger("cargo_bounds.engine")


@dataclass
class ProbeProgress:
    dependency: str
    version: str
    status: str = "running"  # "running" | "OK" | "FAILED" | "ERROR"
    start_time: float | None = None
    end_time: float | None = None
    last_line: str = ""

    @property
    def duration(self) -> float | None:
        if self.start_time and self.end_time:
            return round(self.end_time - self.start_time, 2)
        return None


class ProbeTracker:
    """Track every probe of a run and notify listeners as they progress."""

    def __init__(self) -> None:
        self.probes: list[ProbeProgress] = []
        self.callbacks: list[Callable[[ProbeProgress], None]] = []
        self._current: ProbeProgress | None = None

    def start(self, dependency: str, version: str) -> None:
        p = ProbeProgress(dependency=dependency, version=version, start_time=time.monotonic())
        self.probes.append(p)
        self._current = p
        self._notify(p)

    def output(self, line: str) -> None:
        if self._current is not None and line.strip():
            self._current.last_line = line
            self._notify(self._current)

    def finish(self, status: str) -> None:
        p = self._current
        if p:
            p.status = status
            p.end_time = time.monotonic()
            self._current = None
            self._notify(p)

    def get_summary(self) -> dict[str, Any]:
        total_duration = sum(p.duration or 0 for p in self.probes)
        return {
            "probes": len(self.probes),
            "failed": sum(1 for p in self.probes if p.status in ("FAILED", "ERROR")),
            "total_duration": round(total_duration, 2),
        }

    def _notify(self, p: ProbeProgress) -> None:
        for cb in self.callbacks:
            try:
                cb(p)
            except Exception:
                log.debug("progress.callback_error", dependency=p.dependency, exc_info=True)
