"""Exhaustive tester: probe the edges of every epoch in a declared range."""

from __future__ import annotations

import enum
from collections.abc import Sequence

import structlog
from packaging.version import Version

from cargo_bounds.models import DependencyReport, ProbeResult
from cargo_bounds.oracle import CompatibilityOracle
from cargo_bounds.universe import VersionUniverse
from cargo_bounds.versions import epoch_of

log = structlog.get_logger("cargo_bounds.engine")


class Granularity(str, enum.Enum):
    EPOCH = "epoch"
    MINOR = "minor"
    PATCH = "patch"


def _group_key(version: Version, granularity: Granularity) -> object:
    if granularity is Granularity.EPOCH:
        return epoch_of(version)
    if granularity is Granularity.MINOR:
        return (version.major, version.minor)
    return version


def select_candidates(
    versions: Sequence[Version], granularity: Granularity
) -> tuple[list[Version], list[Version]]:
    """Split ascending *versions* into (probed, skipped).

    The first version of every group is probed, plus the highest version
    overall so the top of the declared range is always covered.
    """
    selected: list[Version] = []
    skipped: list[Version] = []
    last_key: object = None
    for i, version in enumerate(versions):
        key = _group_key(version, granularity)
        if key == last_key and i != len(versions) - 1:
            skipped.append(version)
            continue
        last_key = key
        selected.append(version)
    return selected, skipped


class ExhaustiveTester:
    def __init__(
        self,
        oracle: CompatibilityOracle,
        granularity: Granularity = Granularity.EPOCH,
    ) -> None:
        self.oracle = oracle
        self.granularity = granularity

    def test_all(self, universe: VersionUniverse) -> DependencyReport:
        selected, skipped = select_candidates(universe.versions, self.granularity)
        log.info(
            "tester.start",
            dependency=universe.spec.name,
            probes=len(selected),
            skipped=len(skipped),
        )
        results = [self.oracle.probe(universe.spec, v) for v in selected]
        return DependencyReport(
            spec=universe.spec,
            results=sorted(results, key=lambda r: r.version),
            skipped=skipped,
        )

    def sweep(
        self, universe: VersionUniverse, floor: Version, ceiling: Version
    ) -> list[ProbeResult]:
        """Sanity sweep: probe every minor version between *floor* and *ceiling*."""
        selected, _ = select_candidates(universe.between(floor, ceiling), Granularity.MINOR)
        results = [self.oracle.probe(universe.spec, v) for v in selected]
        return sorted(results, key=lambda r: r.version)
