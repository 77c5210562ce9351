# src/resolver/locator.py — v1
"""Find the on-disk root of an installed package.

Lookup order per language (first hit wins):

    python  DOC_PYTHON_PACKAGE_PATH (site-packages dir, joined with the
            package), DOC_PYTHON_PACKAGE_PATH_<PKG> (package dir),
            then ``pip show <pkg>`` -> Location
    node    DOC_NODE_PACKAGE_PATH (node_modules dir),
            DOC_NODE_PACKAGE_PATH_<PKG> (package dir), then ``npm root``
            run from the context directory
    rust    DOC_RUST_PACKAGE_PATH (dir of crate sources),
            DOC_RUST_PACKAGE_PATH_<PKG> (crate dir), the toolchain sysroot
            for std crates, then the highest ``{crate}-{version}`` under
            $CARGO_HOME/registry/src/*/

<PKG> is the package name upper-cased with ``-``, ``.``, ``@`` and ``/``
turned into ``_``.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
from pathlib import Path
from typing import Mapping

from dociium.core.errors import NotFoundError, TransientError
from dociium.resolver.base import Language

logger = logging.getLogger(__name__)

STD_CRATES = frozenset({"std", "core", "alloc", "proc_macro", "test"})
SUBPROCESS_TIMEOUT_S = 30.0

_ENV_PREFIX = {
    Language.PYTHON: "DOC_PYTHON_PACKAGE_PATH",
    Language.NODE: "DOC_NODE_PACKAGE_PATH",
    Language.RUST: "DOC_RUST_PACKAGE_PATH",
}


def env_suffix(package: str) -> str:
    return re.sub(r"[-./@]", "_", package.upper()).strip("_")


def version_key(version: str) -> tuple:
    """Sort key for semver-ish strings; pre-releases sort below the release."""
    core, _, pre = version.partition("-")
    core = core.split("+", 1)[0]
    numbers = []
    for part in core.split("."):
        if not part.isdigit():
            return ((), 0, version)
        numbers.append(int(part))
    return (tuple(numbers), 0 if pre else 1, pre)


class PackageLocator:
    """Maps (language, package) to a package root directory."""

    def __init__(
        self,
        env: Mapping[str, str] | None = None,
        cargo_home: Path | None = None,
        timeout: float = SUBPROCESS_TIMEOUT_S,
    ) -> None:
        self._env = os.environ if env is None else env
        self._cargo_home = cargo_home
        self._timeout = timeout

    async def locate(
        self,
        language: Language | str,
        package: str,
        context_path: str | Path | None = None,
    ) -> Path:
        language = Language.parse(language)
        override = self._from_env(language, package)
        if override is not None:
            logger.debug("%s root for %s from environment: %s", language.value, package, override)
            return override

        if language is Language.PYTHON:
            root = await self._python(package)
        elif language is Language.NODE:
            root = await self._node(package, context_path)
        else:
            root = await self._rust(package)
        logger.info("Located %s package %s at %s", language.value, package, root)
        return root

    def _from_env(self, language: Language, package: str) -> Path | None:
        prefix = _ENV_PREFIX[language]
        shared = self._env.get(prefix)
        if shared:
            candidate = Path(shared).expanduser() / package
            if candidate.exists():
                return candidate
        specific = self._env.get(f"{prefix}_{env_suffix(package)}")
        if specific:
            candidate = Path(specific).expanduser()
            if candidate.exists():
                return candidate
        return None

    # --- python ---

    async def _python(self, package: str) -> Path:
        out = await self._run(["pip", "show", package])
        for line in out.splitlines():
            if line.startswith("Location:"):
                location = Path(line.partition(":")[2].strip())
                for name in dict.fromkeys([package, package.replace("-", "_"), package.replace("-", "_").lower()]):
                    if (location / name).is_dir():
                        return location / name
                return location
        raise NotFoundError(f"'pip show {package}' reported no Location")

    # --- node ---

    async def _node(self, package: str, context_path: str | Path | None) -> Path:
        cwd = Path(context_path).expanduser() if context_path else None
        if cwd is not None and cwd.is_file():
            cwd = cwd.parent
        out = await self._run(["npm", "root"], cwd=cwd)
        root = Path(out.strip()) / package
        if not root.exists():
            raise NotFoundError(f"node package {package} not found at {root}")
        return root

    # --- rust ---

    async def _rust(self, package: str) -> Path:
        if package in STD_CRATES:
            sysroot = (await self._run(["rustc", "--print", "sysroot"])).strip()
            root = Path(sysroot) / "lib" / "rustlib" / "src" / "rust" / "library" / package
            if not root.is_dir():
                raise NotFoundError(f"std crate {package} not found under {sysroot} (rust-src installed?)")
            return root
        found = await asyncio.to_thread(self.latest_registry_crate, package)
        if found is None:
            raise NotFoundError(f"crate {package} not found in the local cargo registry")
        return found

    def cargo_home(self) -> Path:
        if self._cargo_home is not None:
            return self._cargo_home
        configured = self._env.get("CARGO_HOME")
        return Path(configured).expanduser() if configured else Path.home() / ".cargo"

    def latest_registry_crate(self, crate: str, version: str | None = None) -> Path | None:
        """Highest ``{crate}-{version}`` directory across registry/src/*."""
        registry_src = self.cargo_home() / "registry" / "src"
        if not registry_src.is_dir():
            return None
        best: tuple[tuple, Path] | None = None
        prefix = f"{crate}-"
        for index_dir in registry_src.iterdir():
            if not index_dir.is_dir():
                continue
            for crate_dir in index_dir.iterdir():
                name = crate_dir.name
                if not name.startswith(prefix) or not crate_dir.is_dir():
                    continue
                ver = name[len(prefix):]
                # "serde-json-1.0" must not count as serde
                if not ver[:1].isdigit():
                    continue
                if version is not None:
                    if ver == version:
                        return crate_dir
                    continue
                key = version_key(ver)
                if best is None or key > best[0]:
                    best = (key, crate_dir)
        return best[1] if best else None

    # --- subprocess ---

    async def _run(self, argv: list[str], cwd: Path | None = None) -> str:
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                cwd=str(cwd) if cwd else None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise NotFoundError(f"'{argv[0]}' is not installed or not on PATH") from e
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.wait()
            raise TransientError(f"'{' '.join(argv)}' timed out after {self._timeout:.0f}s") from e
        if proc.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise NotFoundError(f"'{' '.join(argv)}' failed: {message or f'exit {proc.returncode}'}")
        return stdout.decode("utf-8", errors="replace")
