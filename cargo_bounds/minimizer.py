"""Bound minimizer: binary search for the lowest working version of each epoch."""

from __future__ import annotations

from collections.abc import Sequence

import structlog
from packaging.version import Version

from cargo_bounds.models import BoundResult, BucketBound, DependencySpec
from cargo_bounds.oracle import CompatibilityOracle
from cargo_bounds.tester import ExhaustiveTester
from cargo_bounds.universe import VersionUniverse
from cargo_bounds.versions import Epoch

log = structlog.get_logger("cargo_bounds.engine")


class BoundMinimizer:
    """Find the lowest compatible version in every epoch bucket.

    The search assumes monotonicity inside a bucket: once a version works,
    every later version in the same epoch works too.  The sanity sweep run
    afterwards is what catches buckets where that does not hold.
    """

    def __init__(self, oracle: CompatibilityOracle) -> None:
        self.oracle = oracle
        self.tester = ExhaustiveTester(oracle)

    def minimize(self, universe: VersionUniverse, *, skip_sanity: bool = False) -> BoundResult:
        spec = universe.spec
        result = BoundResult(spec=spec, sanity_skipped=skip_sanity)
        for epoch, versions in universe.buckets:
            result.buckets.append(self.minimize_bucket(spec, epoch, versions))

        if result.floor is None:
            log.warning("minimizer.no_floor", dependency=spec.name)
            return result
        if not skip_sanity:
            result.sanity = self.tester.sweep(universe, result.floor, result.ceiling)
            if not result.sane:
                log.warning(
                    "minimizer.unsafe_bound",
                    dependency=spec.name,
                    requirement=str(result.requirement),
                    failing=[str(v) for v in result.unsafe_versions],
                )
        return result

    def minimize_bucket(
        self, spec: DependencySpec, epoch: Epoch, versions: Sequence[Version]
    ) -> BucketBound:
        bucket = BucketBound(epoch=epoch, versions=tuple(versions))

        def probe(index: int) -> bool:
            res = self.oracle.probe(spec, versions[index])
            bucket.probes.append(res)
            return res.ok

        if probe(0):
            bucket.floor = versions[0]
            return bucket

        top = len(versions) - 1
        if top == 0 or not probe(top):
            log.info(
                "minimizer.bucket_unresolvable",
                dependency=spec.name,
                epoch=str(epoch),
                anchor=str(versions[top]),
            )
            return bucket

        # lo is known bad, hi is known good
        lo, hi = 0, top
        while hi - lo > 1:
            mid = (lo + hi) // 2
            if probe(mid):
                hi = mid
            else:
                lo = mid

        bucket.floor = versions[hi]
        log.info(
            "minimizer.bucket_floor",
            dependency=spec.name,
            epoch=str(epoch),
            floor=str(bucket.floor),
            probes=len(bucket.probes),
        )
        return bucket
