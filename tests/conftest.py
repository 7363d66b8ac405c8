"""Shared pytest fixtures for cargo-bounds tests.

Nothing here touches the network or runs cargo: the registry is a dict and
the check command is decided from the version currently pinned in Cargo.toml.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from packaging.version import Version
from structlog.testing import capture_logs

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from cargo_bounds.exceptions import RegistryError
from cargo_bounds.manifest import CargoManifest

MANIFEST_HEADER = """\
[package]
name = "consumer"
version = "0.1.0"
edition = "2021"

"""


def write_manifest(root: Path, dependencies: str) -> Path:
    path = root / "Cargo.toml"
    path.write_text(MANIFEST_HEADER + "[dependencies]\n" + dependencies)
    return path


def versions(*texts: str) -> list[Version]:
    return [Version(t) for t in texts]


class FakeRegistry:
    """Stands in for CratesIoClient."""

    def __init__(self, published: dict[str, list[str]]) -> None:
        self.published = published
        self.requests: list[str] = []
        self.closed = False

    def list_versions(self, crate: str) -> list[Version]:
        self.requests.append(crate)
        if crate not in self.published:
            raise RegistryError(f"crate {crate} not found on the registry")
        return sorted(Version(v) for v in self.published[crate])

    def close(self) -> None:
        self.closed = True


class ScriptedRunner:
    """Stands in for ProcessRunner.

    Finds the dependency currently pinned (``=x.y.z``) in the manifest and
    answers with the scripted exit code for that version.  A verdict is
    either an exit code or an ``(exit_code, output)`` pair; unscripted
    versions succeed.
    """

    def __init__(self, manifest_path: Path, verdicts: dict[str, dict[str, object]]) -> None:
        self.manifest_path = manifest_path
        self.verdicts = verdicts
        self.calls: list[tuple[str, str]] = []
        self.argvs: list[list[str]] = []

    def pinned(self) -> tuple[str, str]:
        data = tomllib.loads(self.manifest_path.read_text())
        for section in ("dependencies", "dev-dependencies", "build-dependencies"):
            for name, entry in data.get(section, {}).items():
                req = entry if isinstance(entry, str) else entry.get("version", "")
                if req.startswith("="):
                    return name, req[1:]
        raise AssertionError("oracle ran without a pinned dependency")

    def run(self, argv, env=None, on_line=None):
        name, version = self.pinned()
        self.calls.append((name, version))
        self.argvs.append(list(argv))
        verdict = self.verdicts.get(name, {}).get(version, 0)
        exit_code, output = verdict if isinstance(verdict, tuple) else (verdict, "")
        if not output and exit_code:
            output = "error[E0425]: cannot find function `removed_api` in crate"
        if on_line is not None:
            for line in output.splitlines():
                on_line(line)
        return exit_code, output

    def probed(self, name: str) -> list[str]:
        return [v for n, v in self.calls if n == name]


@pytest.fixture
def manifest_path(tmp_path: Path) -> Path:
    return write_manifest(
        tmp_path,
        'toml_edit = "^0.22.10"\n'
        'owo-colors = { version = ">=1.0.0, <5", features = ["supports-colors"] }\n',
    )


@pytest.fixture
def manifest(manifest_path: Path) -> CargoManifest:
    return CargoManifest(manifest_path)


@pytest.fixture(autouse=True)
def captured_logs():
    """Keep structlog output out of captured stdout; tests can assert on events."""
    with capture_logs() as logs:
        yield logs
