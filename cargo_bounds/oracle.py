"""Compatibility oracle: pin a dependency, run the check command, classify."""

from __future__ import annotations

import re
import threading
from collections.abc import Mapping

import structlog
from packaging.version import Version

from cargo_bounds.exceptions import OracleSpawnError, PinConflictError
from cargo_bounds.manifest import CargoManifest
from cargo_bounds.models import DependencySpec, Outcome, ProbeResult
from cargo_bounds.progress import ProbeTracker
from cargo_bounds.runner import ProcessRunner

log = structlog.get_logger("cargo_bounds.engine")

DEFAULT_CHECK_COMMAND = ("cargo", "check", "--all-features")

# Resolver diagnostics: the pin could not be expressed in the project's graph.
_RESOLVER_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"failed to select a version for",
        r"links to the native library",
        r"no matching package named",
        r"version .* is yanked",
        r"candidate versions found which didn't match",
    )
]

# bash exit codes for "not executable" and "command not found"
_SHELL_SPAWN_CODES = {126: "permission denied", 127: "command not found"}


def classify(exit_code: int, output: str) -> tuple[Outcome, str]:
    """Map a finished command to an outcome and a one-line detail."""
    if exit_code == 0:
        return Outcome.OK, ""
    for line in output.splitlines():
        if any(p.search(line) for p in _RESOLVER_PATTERNS):
            return Outcome.ERROR, line.strip()
    tail = [line.strip() for line in output.splitlines() if line.strip()]
    return Outcome.FAILED, tail[-1] if tail else f"exit code {exit_code}"


class CompatibilityOracle:
    """Decide whether a project still builds with a dependency at a given version.

    Probes are serialized behind a lock: the manifest and lock file are a
    single shared resource, so only one pin may be live at any time.
    Results are memoized per (section, dependency, version): a crate declared
    in both `[dependencies]` and `[dev-dependencies]` is pinned separately in
    each.
    """

    def __init__(
        self,
        manifest: CargoManifest,
        runner: ProcessRunner | None = None,
        command: str | None = None,
        tracker: ProbeTracker | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self.manifest = manifest
        self.runner = runner or ProcessRunner(cwd=manifest.root)
        self.command = command
        self.tracker = tracker
        self.env = env
        self.executions = 0
        self._lock = threading.Lock()
        self._cache: dict[tuple[str, str, Version], ProbeResult] = {}

    @property
    def argv(self) -> list[str]:
        if self.command:
            return ["bash", "-c", self.command]
        return list(DEFAULT_CHECK_COMMAND)

    def probe(self, spec: DependencySpec, version: Version) -> ProbeResult:
        key = (spec.section, spec.name, version)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        with self._lock:
            result = self._probe_locked(spec, version)
        self._cache[key] = result
        return result

    def _probe_locked(self, spec: DependencySpec, version: Version) -> ProbeResult:
        if self.tracker is not None:
            self.tracker.start(spec.name, str(version))
        on_line = self.tracker.output if self.tracker is not None else None
        try:
            with self.manifest.pinned(spec, version):
                self.executions += 1
                exit_code, output = self.runner.run(self.argv, self.env, on_line)
            if self.command and exit_code in _SHELL_SPAWN_CODES:
                raise OracleSpawnError(self.argv, _SHELL_SPAWN_CODES[exit_code])
        except PinConflictError as exc:
            result = ProbeResult(
                spec.name, version, Outcome.ERROR, detail=exc.reason, section=spec.section
            )
        except OracleSpawnError:
            self._finish(Outcome.ERROR)
            raise
        else:
            outcome, detail = classify(exit_code, output)
            result = ProbeResult(
                spec.name,
                version,
                outcome,
                exit_code=exit_code,
                detail=detail,
                section=spec.section,
            )

        self._finish(result.outcome)
        log.debug(
            "oracle.probe",
            dependency=spec.name,
            version=str(version),
            outcome=result.outcome.value,
            exit_code=result.exit_code,
        )
        return result

    def _finish(self, outcome: Outcome) -> None:
        if self.tracker is not None:
            self.tracker.finish(outcome.value)
