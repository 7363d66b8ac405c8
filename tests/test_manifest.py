"""Tests for Cargo.toml reading, pinning and restoring."""

from __future__ import annotations

import pytest
from packaging.version import Version

from cargo_bounds.exceptions import ManifestError, PinConflictError
from cargo_bounds.manifest import CargoManifest, ManifestState
from cargo_bounds.models import DependencySpec
from cargo_bounds.versions import VersionReq

from conftest import MANIFEST_HEADER, write_manifest


class TestReadDependencies:
    def test_manifest_order(self, manifest):
        specs = manifest.read_dependencies()
        assert [s.name for s in specs] == ["toml_edit", "owo-colors"]
        assert str(specs[0].req) == "^0.22.10"
        assert str(specs[1].req) == ">=1.0.0, <5"
        assert specs[1].section == "dependencies"

    def test_renamed_package(self, tmp_path):
        path = write_manifest(tmp_path, 'colors = { package = "owo-colors", version = "3" }\n')
        spec = CargoManifest(path).read_dependencies()[0]
        assert spec.name == "colors"
        assert spec.crate == "owo-colors"

    def test_unversioned_skipped(self, tmp_path):
        path = write_manifest(
            tmp_path,
            'local = { path = "../local" }\n'
            'git-dep = { git = "https://example.com/x.git" }\n'
            'serde = "1"\n',
        )
        assert [s.name for s in CargoManifest(path).read_dependencies()] == ["serde"]

    def test_dev_sections(self, tmp_path):
        path = tmp_path / "Cargo.toml"
        path.write_text(
            MANIFEST_HEADER
            + '[dependencies]\nserde = "1"\n\n[dev-dependencies]\ninsta = "1.30"\n'
        )
        manifest = CargoManifest(path)
        assert [s.name for s in manifest.read_dependencies()] == ["serde"]
        specs = manifest.read_dependencies(("dependencies", "dev-dependencies"))
        assert [(s.name, s.section) for s in specs] == [
            ("serde", "dependencies"),
            ("insta", "dev-dependencies"),
        ]

    def test_invalid_requirement(self, tmp_path):
        path = write_manifest(tmp_path, 'serde = "not a version"\n')
        with pytest.raises(ManifestError, match="serde"):
            CargoManifest(path).read_dependencies()

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "Cargo.toml"
        path.write_text("[dependencies\n")
        with pytest.raises(ManifestError):
            CargoManifest(path).read_dependencies()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ManifestError, match="cannot read"):
            CargoManifest(tmp_path / "Cargo.toml").read_dependencies()


class TestPin:
    def test_pin_string_entry(self, manifest, manifest_path):
        spec = manifest.read_dependencies()[0]
        manifest.pin(spec, Version("0.22.24"))
        assert 'toml_edit = "=0.22.24"' in manifest_path.read_text()

    def test_pin_table_entry_keeps_other_keys(self, manifest, manifest_path):
        spec = manifest.read_dependencies()[1]
        manifest.pin(spec, Version("4.0.0"))
        text = manifest_path.read_text()
        assert 'version = "=4.0.0"' in text
        assert 'features = ["supports-colors"]' in text

    def test_pin_is_idempotent(self, manifest, manifest_path):
        spec = manifest.read_dependencies()[0]
        manifest.pin(spec, Version("0.22.24"))
        once = manifest_path.read_text()
        manifest.pin(spec, Version("0.22.24"))
        assert manifest_path.read_text() == once

    def test_unpin_restores_declared(self, manifest, manifest_path):
        original = manifest_path.read_text()
        spec = manifest.read_dependencies()[0]
        manifest.pin(spec, Version("0.22.24"))
        manifest.unpin(spec)
        assert manifest_path.read_text() == original

    def test_pin_missing_dependency(self, manifest):
        ghost = DependencySpec(name="ghost", req=VersionReq.parse("1"))
        with pytest.raises(PinConflictError) as exc_info:
            manifest.pin(ghost, Version("1.0.0"))
        assert exc_info.value.version == "1.0.0"
        assert "not declared" in exc_info.value.reason

    def test_write_bound(self, manifest, manifest_path):
        spec = manifest.read_dependencies()[0]
        manifest.write_bound(spec, VersionReq.parse(">=0.22.14, <0.23.0"))
        assert 'toml_edit = ">=0.22.14, <0.23.0"' in manifest_path.read_text()

    def test_write_bound_missing_dependency(self, manifest):
        ghost = DependencySpec(name="ghost", req=VersionReq.parse("1"))
        with pytest.raises(ManifestError):
            manifest.write_bound(ghost, VersionReq.parse(">=1.0.0"))


class TestPinned:
    def test_restores_manifest_and_lock(self, manifest, manifest_path):
        lock = manifest_path.with_name("Cargo.lock")
        lock.write_text("# lock v3\n")
        original = manifest_path.read_text()
        spec = manifest.read_dependencies()[0]

        with manifest.pinned(spec, Version("0.22.10")):
            assert "=0.22.10" in manifest_path.read_text()
            lock.write_text("# resolved with the pin\n")

        assert manifest_path.read_text() == original
        assert lock.read_text() == "# lock v3\n"

    def test_restores_after_exception(self, manifest, manifest_path):
        original = manifest_path.read_text()
        spec = manifest.read_dependencies()[0]

        with pytest.raises(RuntimeError):
            with manifest.pinned(spec, Version("0.22.10")):
                raise RuntimeError("check command crashed")

        assert manifest_path.read_text() == original

    def test_removes_lock_created_during_pin(self, manifest, manifest_path):
        lock = manifest_path.with_name("Cargo.lock")
        spec = manifest.read_dependencies()[0]
        with manifest.pinned(spec, Version("0.22.10")):
            lock.write_text("# created by cargo\n")
        assert not lock.exists()


class TestManifestState:
    def test_store_missing(self, tmp_path):
        with pytest.raises(ManifestError):
            ManifestState.store(tmp_path / "Cargo.toml")

    def test_restore(self, manifest_path):
        state = ManifestState.store(manifest_path)
        manifest_path.write_text("garbage")
        state.restore()
        assert manifest_path.read_text() == state.manifest_text
