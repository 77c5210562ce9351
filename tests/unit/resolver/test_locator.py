# tests/unit/resolver/test_locator.py — v1
"""Tests for resolver/locator.py — environment overrides and the cargo registry scan."""

from __future__ import annotations

from pathlib import Path

import pytest

from dociium.core.errors import NotFoundError
from dociium.resolver.base import Language
from dociium.resolver.locator import PackageLocator, env_suffix, version_key


def _registry(tmp_path: Path, *dirs: str) -> Path:
    cargo = tmp_path / "cargo"
    for rel in dirs:
        (cargo / "registry" / "src" / rel).mkdir(parents=True)
    return cargo


class TestHelpers:
    @pytest.mark.parametrize(
        "package, suffix",
        [("requests", "REQUESTS"), ("zope.interface", "ZOPE_INTERFACE"), ("@scope/pkg", "SCOPE_PKG"),
         ("tokio-util", "TOKIO_UTIL")],
    )
    def test_env_suffix(self, package, suffix):
        assert env_suffix(package) == suffix

    def test_version_order(self):
        versions = ["1.0.0", "1.0.0-rc.1", "0.9.12", "1.10.0", "1.2.0"]
        assert sorted(versions, key=version_key) == ["0.9.12", "1.0.0-rc.1", "1.0.0", "1.2.0", "1.10.0"]

    def test_invalid_version_sorts_lowest(self):
        assert version_key("abc") < version_key("0.0.1")


class TestEnvironmentOverrides:
    @pytest.mark.asyncio
    async def test_shared_directory(self, python_pkg):
        locator = PackageLocator(env={"DOC_PYTHON_PACKAGE_PATH": str(python_pkg.parent)})
        assert await locator.locate("python", "pkg") == python_pkg

    @pytest.mark.asyncio
    async def test_package_specific(self, node_pkg):
        locator = PackageLocator(env={"DOC_NODE_PACKAGE_PATH_MYLIB": str(node_pkg)})
        assert await locator.locate(Language.NODE, "mylib") == node_pkg

    @pytest.mark.asyncio
    async def test_missing_override_falls_through(self, tmp_path, rust_crate):
        cargo = _registry(tmp_path, "index.crates.io-6f17d22bba15001f")
        target = cargo / "registry" / "src" / "index.crates.io-6f17d22bba15001f" / "mycrate-0.3.1"
        rust_crate.rename(target)
        locator = PackageLocator(
            env={"DOC_RUST_PACKAGE_PATH": str(tmp_path / "nowhere")}, cargo_home=cargo
        )
        assert await locator.locate("rust", "mycrate") == target


class TestCargoRegistry:
    def test_highest_version_across_indexes(self, tmp_path):
        cargo = _registry(
            tmp_path,
            "index-a/serde-1.0.100",
            "index-b/serde-1.0.197",
            "index-b/serde-1.0.2",
            "index-b/serde_json-1.0.114",
            "index-b/serde-derive-1.0.0",
        )
        locator = PackageLocator(env={}, cargo_home=cargo)
        assert locator.latest_registry_crate("serde").name == "serde-1.0.197"

    def test_exact_version(self, tmp_path):
        cargo = _registry(tmp_path, "idx/serde-1.0.100", "idx/serde-1.0.197")
        locator = PackageLocator(env={}, cargo_home=cargo)
        assert locator.latest_registry_crate("serde", "1.0.100").name == "serde-1.0.100"
        assert locator.latest_registry_crate("serde", "9.9.9") is None

    def test_dashed_name_not_confused_with_prefix(self, tmp_path):
        cargo = _registry(tmp_path, "idx/serde-json-1.0.0")
        locator = PackageLocator(env={}, cargo_home=cargo)
        assert locator.latest_registry_crate("serde") is None
        assert locator.latest_registry_crate("serde-json").name == "serde-json-1.0.0"

    def test_cargo_home_from_env(self, tmp_path):
        locator = PackageLocator(env={"CARGO_HOME": str(tmp_path)})
        assert locator.cargo_home() == tmp_path

    @pytest.mark.asyncio
    async def test_not_in_registry(self, tmp_path):
        locator = PackageLocator(env={}, cargo_home=tmp_path / "empty")
        with pytest.raises(NotFoundError):
            await locator.locate("rust", "mycrate")


class TestSubprocess:
    @pytest.mark.asyncio
    async def test_missing_tool_is_not_found(self):
        locator = PackageLocator(env={})
        with pytest.raises(NotFoundError, match="not installed"):
            await locator._run(["dociium-no-such-binary-xyz"])

    @pytest.mark.asyncio
    async def test_pip_location_prefers_package_dir(self, python_pkg, monkeypatch):
        locator = PackageLocator(env={})

        async def fake_run(argv, cwd=None):
            assert argv == ["pip", "show", "pkg"]
            return f"Name: pkg\nVersion: 1.0\nLocation: {python_pkg.parent}\n"

        monkeypatch.setattr(locator, "_run", fake_run)
        assert await locator.locate("python", "pkg") == python_pkg

    @pytest.mark.asyncio
    async def test_npm_root_from_context(self, node_pkg, monkeypatch):
        locator = PackageLocator(env={})
        seen = {}

        async def fake_run(argv, cwd=None):
            seen["cwd"] = cwd
            return f"{node_pkg.parent}\n"

        monkeypatch.setattr(locator, "_run", fake_run)
        project = node_pkg.parent.parent
        assert await locator.locate("node", "mylib", project) == node_pkg
        assert seen["cwd"] == project
