"""Cargo version requirements evaluated on top of packaging.version.

Supported comparator syntax (comma separated, every comparator must match):
- caret ``^1.2.3`` and bare ``1.2.3``: up to the next breaking change
- tilde ``~1.2.3``: >=1.2.3, <1.3.0
- exact ``=1.2.3``; partial ``=1.2`` means >=1.2.0, <1.3.0
- ``>``, ``>=``, ``<``, ``<=`` with partial versions expanded as Cargo does
- wildcards ``*``, ``1.*``, ``1.2.*``
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import NamedTuple

from packaging.version import InvalidVersion, Version

from cargo_bounds.exceptions import InvalidRequirementError

# (version, inclusive)
Bound = tuple[Version, bool]

_COMPARATOR_RE = re.compile(
    r"^(?P<op>\^|~|=|>=|<=|>|<)?\s*"
    r"(?P<version>\*|\d+(?:\.(?:\d+|\*)){0,2}(?:-[0-9A-Za-z.-]+)?)"
    r"(?:\+[0-9A-Za-z.-]+)?$"
)


class Epoch(NamedTuple):
    """A compatibility epoch: the major version, or ``0.minor`` before 1.0."""

    major: int
    minor: int

    def __str__(self) -> str:
        if self.major == 0:
            return f"0.{self.minor}"
        return str(self.major)


def epoch_of(version: Version) -> Epoch:
    if version.major == 0:
        return Epoch(0, version.minor)
    return Epoch(version.major, 0)


def parse_version(text: str) -> Version | None:
    """Parse a registry version string, returning None unless it is a plain release.

    Build metadata (`+wasi-snapshot-preview1`) does not take part in ordering
    and is dropped.
    """
    release, _, _ = text.partition("+")
    try:
        version = Version(release)
    except InvalidVersion:
        return None
    if version.is_prerelease or version.is_postrelease:
        return None
    if len(version.release) != 3:
        return None
    return version


def _v(major: int, minor: int = 0, patch: int = 0) -> Version:
    return Version(f"{major}.{minor}.{patch}")


@dataclass(frozen=True)
class Comparator:
    """One comparator of a requirement, normalised to a lower/upper bound pair."""

    op: str
    text: str
    lower: Bound | None
    upper: Bound | None

    def matches(self, version: Version) -> bool:
        if self.lower is not None:
            bound, inclusive = self.lower
            if version < bound or (version == bound and not inclusive):
                return False
        if self.upper is not None:
            bound, inclusive = self.upper
            if version > bound or (version == bound and not inclusive):
                return False
        return True

    def __str__(self) -> str:
        return f"{self.op}{self.text}"

    @classmethod
    def parse(cls, raw: str) -> Comparator:
        m = _COMPARATOR_RE.match(raw.strip())
        if not m:
            raise InvalidRequirementError(f"unexpected comparator {raw.strip()!r}")
        op = m.group("op") or ""
        text = m.group("version")
        core, _, pre = text.partition("-")

        parts: list[int | None] = []
        for piece in core.split("."):
            parts.append(None if piece == "*" else int(piece))
        # anything after a wildcard is a wildcard as well
        if None in parts:
            parts = parts[: parts.index(None)]
        while len(parts) < 3:
            parts.append(None)
        major, minor, patch = parts

        wildcard = "*" in text
        if wildcard and op in ("", "^", "="):
            lower, upper = _exact(major, minor, patch)
            return cls(op=op, text=text, lower=lower, upper=upper)
        if major is None:
            raise InvalidRequirementError(f"wildcard not allowed with {op!r} in {raw!r}")

        try:
            full = Version(text) if pre else None
        except InvalidVersion as exc:
            raise InvalidRequirementError(f"invalid pre-release in {raw.strip()!r}") from exc
        if op in ("", "^"):
            lower, upper = _caret(major, minor, patch, full)
        elif op == "~":
            lower, upper = _tilde(major, minor, patch, full)
        elif op == "=":
            lower, upper = _exact(major, minor, patch, full)
        elif op == ">":
            lower, upper = _greater(major, minor, patch, full), None
        elif op == ">=":
            lower, upper = (full or _v(major, minor or 0, patch or 0), True), None
        elif op == "<":
            lower, upper = None, (full or _v(major, minor or 0, patch or 0), False)
        else:
            lower, upper = None, _less_equal(major, minor, patch, full)
        return cls(op=op, text=text, lower=lower, upper=upper)


def _caret(major, minor, patch, full) -> tuple[Bound, Bound]:
    lower = (full or _v(major, minor or 0, patch or 0), True)
    if major > 0 or minor is None:
        return lower, (_v(major + 1), False)
    if minor > 0 or patch is None:
        return lower, (_v(0, minor + 1), False)
    return lower, (_v(0, 0, patch + 1), False)


def _tilde(major, minor, patch, full) -> tuple[Bound, Bound]:
    lower = (full or _v(major, minor or 0, patch or 0), True)
    if minor is None:
        return lower, (_v(major + 1), False)
    return lower, (_v(major, minor + 1), False)


def _exact(major, minor, patch, full=None) -> tuple[Bound | None, Bound | None]:
    if major is None:
        return None, None
    if minor is None:
        return (_v(major), True), (_v(major + 1), False)
    if patch is None:
        return (_v(major, minor), True), (_v(major, minor + 1), False)
    exact = full or _v(major, minor, patch)
    return (exact, True), (exact, True)


def _greater(major, minor, patch, full) -> Bound:
    if minor is None:
        return (_v(major + 1), True)
    if patch is None:
        return (_v(major, minor + 1), True)
    return (full or _v(major, minor, patch), False)


def _less_equal(major, minor, patch, full) -> Bound:
    if minor is None:
        return (_v(major + 1), False)
    if patch is None:
        return (_v(major, minor + 1), False)
    return (full or _v(major, minor, patch), True)


@dataclass(frozen=True)
class VersionReq:
    """A parsed Cargo version requirement."""

    comparators: tuple[Comparator, ...]

    @classmethod
    def parse(cls, text: str) -> VersionReq:
        text = text.strip()
        if not text or text == "*":
            return cls(comparators=())
        pieces = text.split(",")
        if any(not p.strip() for p in pieces):
            raise InvalidRequirementError(f"empty comparator in {text!r}")
        return cls(comparators=tuple(Comparator.parse(p) for p in pieces))

    def matches(self, version: Version) -> bool:
        if version.is_prerelease:
            return False
        return all(c.matches(version) for c in self.comparators)

    def upper(self) -> Bound | None:
        """The tightest upper edge across all comparators."""
        bounds = [c.upper for c in self.comparators if c.upper is not None]
        if not bounds:
            return None
        return min(bounds, key=lambda b: (b[0], b[1]))

    def with_floor(self, floor: Version) -> VersionReq:
        """Return ``>=floor`` combined with this requirement's upper edge."""
        text = f">={floor}"
        upper = self.upper()
        if upper is not None:
            bound, inclusive = upper
            text += f", {'<=' if inclusive else '<'}{bound}"
        return VersionReq.parse(text)

    def __str__(self) -> str:
        if not self.comparators:
            return "*"
        return ", ".join(str(c) for c in self.comparators)


def satisfies(version: Version | str, req: VersionReq | str) -> bool:
    """Return True if *version* falls inside *req*."""
    if isinstance(version, str):
        version = Version(version)
    if isinstance(req, str):
        req = VersionReq.parse(req)
    return req.matches(version)
