"""Data models for the bound search engine."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from packaging.version import Version

from cargo_bounds.versions import Epoch, VersionReq


class Outcome(str, enum.Enum):
    OK = "OK"
    FAILED = "FAILED"
    ERROR = "ERROR"


@dataclass(frozen=True)
class DependencySpec:
    """A single dependency declared in Cargo.toml."""

    name: str
    req: VersionReq
    section: str = "dependencies"
    package: str | None = None  # registry name when renamed with `package = "..."`

    @property
    def crate(self) -> str:
        return self.package or self.name


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of running the oracle with one dependency pinned to one version."""

    dependency: str
    version: Version
    outcome: Outcome
    exit_code: int | None = None
    detail: str = ""
    section: str = "dependencies"

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK


@dataclass
class BucketBound:
    """Minimization result for a single epoch bucket."""

    epoch: Epoch
    versions: tuple[Version, ...]
    floor: Version | None = None
    probes: list[ProbeResult] = field(default_factory=list)

    @property
    def ceiling(self) -> Version:
        return self.versions[-1]

    @property
    def unresolvable(self) -> bool:
        return self.floor is None


@dataclass
class BoundResult:
    """Per-dependency minimization result: bucket floors plus the sanity sweep."""

    spec: DependencySpec
    buckets: list[BucketBound] = field(default_factory=list)
    sanity: list[ProbeResult] = field(default_factory=list)
    sanity_skipped: bool = True
    error: str | None = None

    @property
    def resolved(self) -> list[BucketBound]:
        return [b for b in self.buckets if not b.unresolvable]

    @property
    def floor(self) -> Version | None:
        resolved = self.resolved
        return resolved[0].floor if resolved else None

    @property
    def ceiling(self) -> Version | None:
        resolved = self.resolved
        return resolved[-1].ceiling if resolved else None

    @property
    def requirement(self) -> VersionReq | None:
        if self.floor is None:
            return None
        return VersionReq.parse(f">={self.floor}, <={self.ceiling}")

    @property
    def unsafe_versions(self) -> list[Version]:
        return [r.version for r in self.sanity if not r.ok]

    @property
    def sane(self) -> bool:
        return not self.unsafe_versions


@dataclass
class DependencyReport:
    """Probe results for one dependency, ascending by version."""

    spec: DependencySpec
    results: list[ProbeResult] = field(default_factory=list)
    skipped: list[Version] = field(default_factory=list)
    error: str | None = None

    def outcomes(self) -> dict[Version, Outcome]:
        return {r.version: r.outcome for r in self.results}

    @property
    def failed_versions(self) -> int:
        return sum(1 for r in self.results if not r.ok)


@dataclass
class RunReport:
    """Aggregate of every dependency report and bound produced by a run."""

    dependencies: list[DependencyReport] = field(default_factory=list)
    bounds: list[BoundResult] = field(default_factory=list)

    @property
    def failed_versions(self) -> int:
        return sum(d.failed_versions for d in self.dependencies)

    @property
    def failed_dependencies(self) -> int:
        return sum(1 for d in self.dependencies if d.failed_versions)

    @property
    def overall_pass(self) -> bool:
        return self.failed_versions == 0

    def summary(self) -> str:
        return (
            f"{self.failed_dependencies} deps have failing versions in their bounds. "
            f"({self.failed_versions} versions failed in total)"
        )
