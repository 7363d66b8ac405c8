"""Cargo.toml reader/writer: dependency specs, scoped pins and bound rewrites."""

from __future__ import annotations

import sys
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import structlog
import tomlkit
from packaging.version import Version
from tomlkit.exceptions import TOMLKitError

from cargo_bounds.exceptions import InvalidRequirementError, ManifestError, PinConflictError
from cargo_bounds.models import DependencySpec
from cargo_bounds.versions import VersionReq

log = structlog.get_logger("cargo_bounds.engine")

DEP_SECTIONS = ("dependencies", "dev-dependencies", "build-dependencies")


def _parse_version(spec: str | dict) -> str | None:
    """Extract the version requirement from a dependency entry."""
    if isinstance(spec, str):
        return spec
    if isinstance(spec, dict):
        return spec.get("version")
    return None


@dataclass(frozen=True)
class ManifestState:
    """Snapshot of Cargo.toml and Cargo.lock, restorable at any point."""

    manifest_path: Path
    manifest_text: str
    lock_text: str | None

    @property
    def lock_path(self) -> Path:
        return self.manifest_path.with_name("Cargo.lock")

    @classmethod
    def store(cls, manifest_path: Path) -> ManifestState:
        try:
            text = manifest_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ManifestError(f"cannot read {manifest_path}: {exc}") from exc
        lock_path = manifest_path.with_name("Cargo.lock")
        lock_text = lock_path.read_text(encoding="utf-8") if lock_path.is_file() else None
        return cls(manifest_path=manifest_path, manifest_text=text, lock_text=lock_text)

    def restore(self) -> None:
        self.manifest_path.write_text(self.manifest_text, encoding="utf-8")
        if self.lock_text is not None:
            self.lock_path.write_text(self.lock_text, encoding="utf-8")
        elif self.lock_path.exists():
            # the probe created a lock file that was not there before
            self.lock_path.unlink()


class CargoManifest:
    """Read and edit the ``[dependencies]`` tables of one Cargo.toml."""

    def __init__(self, path: Path | str = "Cargo.toml") -> None:
        self.path = Path(path)

    @property
    def root(self) -> Path:
        return self.path.resolve().parent

    # ── reading ──────────────────────────────────────────────────────────

    def read_dependencies(
        self, sections: Sequence[str] = ("dependencies",)
    ) -> list[DependencySpec]:
        """Return every versioned dependency, in manifest order."""
        try:
            data = tomllib.loads(self._read_text())
        except tomllib.TOMLDecodeError as exc:
            raise ManifestError(f"{self.path} is not valid TOML: {exc}") from exc

        specs: list[DependencySpec] = []
        for section in sections:
            dep_table = data.get(section, {})
            if not isinstance(dep_table, dict):
                raise ManifestError(f"[{section}] wasn't a table")
            for name, entry in dep_table.items():
                raw = _parse_version(entry)
                if raw is None:
                    log.info("manifest.unversioned_dependency", dependency=name, section=section)
                    continue
                try:
                    req = VersionReq.parse(raw)
                except InvalidRequirementError as exc:
                    raise ManifestError(f"{name}: {exc}") from exc

                package = entry.get("package") if isinstance(entry, dict) else None

                specs.append(
                    DependencySpec(
                        name=name,
                        req=req,
                        section=section,
                        package=package,
                    )
                )
        return specs

    # ── writing ──────────────────────────────────────────────────────────

    def pin(self, spec: DependencySpec, version: Version) -> None:
        """Rewrite *spec*'s requirement to ``=version``."""
        self._set_requirement(spec, f"={version}", pinning=str(version))

    def unpin(self, spec: DependencySpec) -> None:
        """Put *spec*'s declared requirement back in place."""
        self._set_requirement(spec, str(spec.req))

    def write_bound(self, spec: DependencySpec, req: VersionReq) -> None:
        self._set_requirement(spec, str(req))
        log.info("manifest.bound_written", dependency=spec.name, requirement=str(req))

    @contextmanager
    def pinned(self, spec: DependencySpec, version: Version) -> Iterator[None]:
        """Hold *spec* pinned to *version*; manifest and lock are restored on exit."""
        state = ManifestState.store(self.path)
        try:
            self.pin(spec, version)
            yield
        finally:
            state.restore()

    # ── internal ─────────────────────────────────────────────────────────

    def _read_text(self) -> str:
        try:
            return self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ManifestError(f"cannot read {self.path}: {exc}") from exc

    def _set_requirement(
        self, spec: DependencySpec, requirement: str, pinning: str | None = None
    ) -> None:
        try:
            doc = tomlkit.parse(self._read_text())
        except TOMLKitError as exc:
            raise ManifestError(f"{self.path} is not valid TOML: {exc}") from exc

        def reject(reason: str) -> NoReturn:
            if pinning is not None:
                raise PinConflictError(spec.name, pinning, reason)
            raise ManifestError(f"{spec.name}: {reason}")

        table = doc.get(spec.section)
        if table is None or spec.name not in table:
            reject(f"not declared in [{spec.section}]")
        entry = table[spec.name]
        if isinstance(entry, str):
            table[spec.name] = requirement
        elif isinstance(entry, dict) and "version" in entry:
            entry["version"] = requirement
        else:
            reject("entry has no version key")

        self.path.write_text(tomlkit.dumps(doc), encoding="utf-8")
