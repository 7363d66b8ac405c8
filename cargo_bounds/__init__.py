"""cargo-bounds: verify and minimize Cargo dependency version bounds."""

__version__ = "0.1.0"

from cargo_bounds.engine import BoundsChecker
from cargo_bounds.manifest import CargoManifest, ManifestState
from cargo_bounds.minimizer import BoundMinimizer
from cargo_bounds.models import (
    BoundResult,
    BucketBound,
    DependencyReport,
    DependencySpec,
    Outcome,
    ProbeResult,
    RunReport,
)
from cargo_bounds.oracle import CompatibilityOracle
from cargo_bounds.registry import CratesIoClient
from cargo_bounds.report import finalize
from cargo_bounds.tester import ExhaustiveTester, Granularity
from cargo_bounds.universe import VersionUniverse, epochs
from cargo_bounds.versions import VersionReq, satisfies

__all__ = [
    "BoundMinimizer",
    "BoundResult",
    "BoundsChecker",
    "BucketBound",
    "CargoManifest",
    "CompatibilityOracle",
    "CratesIoClient",
    "DependencyReport",
    "DependencySpec",
    "ExhaustiveTester",
    "Granularity",
    "ManifestState",
    "Outcome",
    "ProbeResult",
    "RunReport",
    "VersionReq",
    "VersionUniverse",
    "epochs",
    "finalize",
    "satisfies",
]
