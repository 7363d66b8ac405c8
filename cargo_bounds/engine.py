"""BoundsChecker: drive the tester and minimizer over a manifest's dependencies."""

from __future__ import annotations

from collections.abc import Callable, Sequence

import structlog
from packaging.version import Version

from cargo_bounds.exceptions import DependencyNotFoundError, EmptyUniverseError
from cargo_bounds.manifest import CargoManifest
from cargo_bounds.minimizer import BoundMinimizer
from cargo_bounds.models import BoundResult, DependencyReport, DependencySpec, ProbeResult, RunReport
from cargo_bounds.oracle import CompatibilityOracle
from cargo_bounds.progress import ProbeTracker
from cargo_bounds.registry import CratesIoClient
from cargo_bounds.report import finalize
from cargo_bounds.runner import ProcessRunner
from cargo_bounds.tester import ExhaustiveTester, Granularity
from cargo_bounds.universe import VersionUniverse

log = structlog.get_logger("cargo_bounds.engine")


class BoundsChecker:
    """Entry point used by the CLI.

    Probes are strictly sequential: every oracle shares the one manifest and
    lock file, so a run never has more than one check command in flight.
    """

    def __init__(
        self,
        manifest: CargoManifest,
        registry: CratesIoClient,
        runner: ProcessRunner | None = None,
        tracker: ProbeTracker | None = None,
        sections: Sequence[str] = ("dependencies",),
        default_command: str | None = None,
    ) -> None:
        self.manifest = manifest
        self.registry = registry
        self.runner = runner or ProcessRunner(cwd=manifest.root)
        self.tracker = tracker or ProbeTracker()
        self.sections = tuple(sections)
        self.default_command = default_command
        self._published: dict[str, list[Version]] = {}

    def dependencies(self, name: str | None = None) -> list[DependencySpec]:
        specs = self.manifest.read_dependencies(self.sections)
        if name is None:
            return specs
        matching = [s for s in specs if s.name == name]
        if not matching:
            raise DependencyNotFoundError(name)
        return matching

    def universe(self, spec: DependencySpec, *, include_below: bool = False) -> VersionUniverse:
        if spec.crate not in self._published:
            self._published[spec.crate] = self.registry.list_versions(spec.crate)
        return VersionUniverse.build(
            spec, self._published[spec.crate], include_below=include_below
        )

    def oracle(self, command: str | None = None) -> CompatibilityOracle:
        return CompatibilityOracle(
            self.manifest, runner=self.runner, command=command, tracker=self.tracker
        )

    # ── test ─────────────────────────────────────────────────────────────

    def test(
        self,
        specs: Sequence[DependencySpec] | None = None,
        command: str | None = None,
        *,
        granularity: Granularity = Granularity.EPOCH,
        skip_sanity: bool = True,
        on_report: Callable[[DependencyReport], None] | None = None,
    ) -> RunReport:
        """Probe the edges of every declared range and aggregate a RunReport.

        Without *skip_sanity* the sweep is widened to every minor version.
        """
        if specs is None:
            specs = self.dependencies()
        if not skip_sanity and granularity is Granularity.EPOCH:
            granularity = Granularity.MINOR
        tester = ExhaustiveTester(self.oracle(command or self.default_command), granularity)

        outcomes: list[ProbeResult] = []
        errors: dict[DependencySpec, str] = {}
        skipped: dict[DependencySpec, list[Version]] = {}
        for spec in specs:
            try:
                universe = self.universe(spec)
            except EmptyUniverseError as exc:
                log.warning("engine.empty_universe", dependency=spec.name, requirement=str(spec.req))
                errors[spec] = str(exc)
                if on_report is not None:
                    on_report(DependencyReport(spec=spec, error=str(exc)))
                continue
            report = tester.test_all(universe)
            outcomes.extend(report.results)
            skipped[spec] = report.skipped
            if on_report is not None:
                on_report(report)

        run = finalize(outcomes, specs, errors)
        for dep in run.dependencies:
            dep.skipped = skipped.get(dep.spec, [])
        log.info(
            "engine.test_done",
            dependencies=len(run.dependencies),
            failed_versions=run.failed_versions,
            **self.tracker.get_summary(),
        )
        return run

    # ── minimize ─────────────────────────────────────────────────────────

    def minimize(
        self,
        specs: Sequence[DependencySpec] | None = None,
        name_filter: str | None = None,
        *,
        skip_sanity: bool = False,
        widen: bool = False,
        on_bound: Callable[[BoundResult], None] | None = None,
    ) -> dict[DependencySpec, BoundResult]:
        """Search each dependency for its lowest compatible version per epoch.

        Always uses the default type-check oracle, whatever command ``test``
        was configured with.
        """
        if specs is None:
            specs = self.dependencies(name_filter)
        elif name_filter is not None:
            specs = [s for s in specs if s.name == name_filter]
            if not specs:
                raise DependencyNotFoundError(name_filter)
        minimizer = BoundMinimizer(self.oracle())

        bounds: dict[DependencySpec, BoundResult] = {}
        for spec in specs:
            try:
                universe = self.universe(spec, include_below=widen)
            except EmptyUniverseError as exc:
                log.warning("engine.empty_universe", dependency=spec.name, requirement=str(spec.req))
                bound = BoundResult(spec=spec, sanity_skipped=skip_sanity, error=str(exc))
            else:
                bound = minimizer.minimize(universe, skip_sanity=skip_sanity)
            bounds[spec] = bound
            if on_bound is not None:
                on_bound(bound)
        return bounds

    def write_bounds(self, bounds: dict[DependencySpec, BoundResult]) -> list[DependencySpec]:
        """Rewrite the floor of every sane bound into the manifest."""
        written: list[DependencySpec] = []
        for spec, bound in bounds.items():
            if bound.floor is None or not bound.sane:
                continue
            self.manifest.write_bound(spec, spec.req.with_floor(bound.floor))
            written.append(spec)
        return written
