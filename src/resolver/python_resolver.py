# src/resolver/python_resolver.py — v1
"""Python imports -> file + line inside an installed package.

The package root handed in is the import package directory
(``site-packages/requests``) or, when only the install location is known,
the directory holding it.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from dociium.core.errors import InvalidInputError
from dociium.resolver.base import (
    ImportItem,
    Language,
    LanguageResolver,
    Match,
    ParsedImport,
    Strategy,
    first_file,
    first_line,
    read_source,
    strip_alias,
)

logger = logging.getLogger(__name__)

_FROM = re.compile(r"^from\s+(?P<dots>\.*)(?P<module>[\w.]*)\s+import\s+(?P<names>.+)$", re.S)
_IMPORT = re.compile(r"^import\s+(?P<modules>.+)$", re.S)
_IDENT = re.compile(r"^[A-Za-z_]\w*$")

_FROM_LINE = re.compile(
    r"^from[ \t]+(?P<dots>\.*)(?P<module>[\w.]*)[ \t]+import[ \t]+"
    r"(?:\((?P<group>[^)]*)\)|(?P<names>[^\n#]+))",
    re.M,
)


def _definition_patterns(name: str) -> list[re.Pattern[str]]:
    n = re.escape(name)
    return [
        re.compile(rf"^class[ \t]+{n}\b", re.M),
        re.compile(rf"^(?:async[ \t]+)?def[ \t]+{n}\b", re.M),
        re.compile(rf"^{n}[ \t]*(?::[^=\n]*)?=(?!=)", re.M),
    ]


def _split_names(raw: str) -> list[str]:
    raw = raw.strip()
    if raw.startswith("(") and raw.endswith(")"):
        raw = raw[1:-1]
    return [strip_alias(part) for part in raw.replace("\\\n", " ").split(",") if part.strip()]


def _imported_names(raw: str) -> dict[str, str]:
    """local name -> original name for ``A, B as C``."""
    out: dict[str, str] = {}
    for part in raw.replace("\n", " ").split(","):
        part = part.strip()
        if not part:
            continue
        original, _, alias = part.partition(" as ")
        out[(alias or original).strip()] = original.strip()
    return out


class PythonResolver(LanguageResolver):
    language = Language.PYTHON

    def parse(self, import_text: str, package: str, context: str | None = None) -> ParsedImport:
        text = import_text.strip()
        flat = text.rstrip(";").strip()

        m = _FROM.match(flat)
        if m is not None:
            names = _split_names(m.group("names"))
            if "*" in names:
                return ParsedImport(text=text, reason="wildcard import")
            module = [s for s in m.group("module").split(".") if s]
            dots = len(m.group("dots"))
            if dots:
                base = context.split(".") if context else [package.replace("-", "_")]
                if dots - 1 >= len(base):
                    return ParsedImport(text=text, reason="relative import beyond the package root")
                module = base[: len(base) - (dots - 1)] + module
            if not module or not all(_IDENT.match(n) for n in names):
                raise InvalidInputError(f"malformed Python import: {import_text!r}")
            return ParsedImport(text=text, items=tuple(ImportItem(tuple(module), n) for n in names))

        m = _IMPORT.match(flat)
        if m is not None:
            items = []
            for mod in _split_names(m.group("modules")):
                segments = tuple(mod.split("."))
                if not all(_IDENT.match(s) for s in segments):
                    raise InvalidInputError(f"malformed Python import: {import_text!r}")
                items.append(ImportItem(segments, ""))
            return ParsedImport(text=text, items=tuple(items))

        raise InvalidInputError(f"not a Python import statement: {import_text!r}")

    def strategies(self) -> list[Strategy]:
        return [
            Strategy("module_file", 0.9, self._module_file),
            Strategy("package_init", 0.85, self._package_init),
            Strategy("init_reexport", 0.7, self._init_reexport),
        ]

    # --- helpers ---

    @staticmethod
    def _base(root: Path, module: tuple[str, ...]) -> Path:
        # root is either the import package itself or its parent directory
        if module and root.name == module[0]:
            return root.parent
        return root

    def _module_py(self, root: Path, module: tuple[str, ...]) -> Path | None:
        base = self._base(root, module)
        return first_file([base.joinpath(*module[:-1], f"{module[-1]}.py")])

    def _init_py(self, root: Path, module: tuple[str, ...]) -> Path | None:
        return first_file([self._base(root, module).joinpath(*module, "__init__.py")])

    def _define(self, path: Path | None, item: ImportItem) -> Match | None:
        if path is None:
            return None
        if not item.name:
            return Match(path, None, item.module[-1])
        text = read_source(path)
        if text is None:
            return None
        line = first_line(text, _definition_patterns(item.name))
        return Match(path, line, item.name) if line is not None else None

    # --- strategies ---

    def _module_file(self, root: Path, item: ImportItem) -> Match | None:
        return self._define(self._module_py(root, item.module), item)

    def _package_init(self, root: Path, item: ImportItem) -> Match | None:
        found = self._define(self._init_py(root, item.module), item)
        if found is not None or not item.name:
            return found
        # `from pkg import sub` where sub is a submodule
        sub = item.module + (item.name,)
        path = self._module_py(root, sub) or self._init_py(root, sub)
        return Match(path, None, item.name) if path is not None else None

    def _init_reexport(self, root: Path, item: ImportItem) -> Match | None:
        """One ``from .x import Name`` hop out of the module's own file."""
        if not item.name:
            return None
        is_package = self._init_py(root, item.module) is not None
        source = self._init_py(root, item.module) or self._module_py(root, item.module)
        text = read_source(source) if source is not None else None
        if text is None:
            return None
        for m in _FROM_LINE.finditer(text):
            names = _imported_names(m.group("group") or m.group("names"))
            if item.name not in names:
                continue
            target = self._reexport_target(item.module, is_package, m.group("dots"), m.group("module"))
            if target is None:
                continue
            hop = ImportItem(target, names[item.name])
            found = self._module_file(root, hop) or self._define(self._init_py(root, target), hop)
            if found is not None:
                return Match(found.file, found.line, item.name)
        return None

    @staticmethod
    def _reexport_target(
        current: tuple[str, ...], is_package: bool, dots: str, module: str
    ) -> tuple[str, ...] | None:
        tail = tuple(s for s in module.split(".") if s)
        if not dots:
            return tail or None
        # a package's __init__ resolves "." to itself, a plain module to its parent
        anchor = current if is_package else current[:-1]
        up = len(dots) - 1
        if up > len(anchor):
            return None
        base = anchor[: len(anchor) - up]
        return (base + tail) or None
