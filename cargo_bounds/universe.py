"""Version universe: the published versions of a dependency, bucketed by epoch."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from itertools import groupby

from packaging.version import Version

from cargo_bounds.exceptions import EmptyUniverseError
from cargo_bounds.models import DependencySpec
from cargo_bounds.versions import Epoch, epoch_of

Bucket = tuple[Epoch, tuple[Version, ...]]


def _below_upper(spec: DependencySpec, version: Version) -> bool:
    upper = spec.req.upper()
    if upper is None:
        return True
    bound, inclusive = upper
    return version < bound or (inclusive and version == bound)


def epochs(
    spec: DependencySpec,
    published: Iterable[Version],
    *,
    include_below: bool = False,
) -> list[Bucket]:
    """Partition the versions of *spec* into ascending epoch buckets.

    Only versions inside the declared range are kept.  With *include_below*
    the lower edge is ignored, so buckets also hold older published versions
    the floor could be widened to.

    Raises :class:`EmptyUniverseError` if nothing is left.
    """
    if include_below:
        candidates = [v for v in published if not v.is_prerelease and _below_upper(spec, v)]
    else:
        candidates = [v for v in published if spec.req.matches(v)]
    ordered = sorted(set(candidates))
    if not ordered:
        raise EmptyUniverseError(spec.name, str(spec.req))
    return [(epoch, tuple(group)) for epoch, group in groupby(ordered, key=epoch_of)]


@dataclass(frozen=True)
class VersionUniverse:
    """Read-only candidate set for one dependency."""

    spec: DependencySpec
    versions: tuple[Version, ...]
    buckets: tuple[Bucket, ...]

    @classmethod
    def build(
        cls,
        spec: DependencySpec,
        published: Iterable[Version],
        *,
        include_below: bool = False,
    ) -> VersionUniverse:
        buckets = epochs(spec, published, include_below=include_below)
        versions = tuple(v for _, group in buckets for v in group)
        return cls(spec=spec, versions=versions, buckets=tuple(buckets))

    def between(self, floor: Version, ceiling: Version) -> list[Version]:
        return [v for v in self.versions if floor <= v <= ceiling]
