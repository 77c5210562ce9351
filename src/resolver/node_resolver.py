# src/resolver/node_resolver.py — v1
"""ESM / CommonJS imports -> file + line inside node_modules/<package>."""

from __future__ import annotations

import json
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
)

logger = logging.getLogger(__name__)

EXTENSIONS = (".js", ".ts", ".mjs", ".cjs", ".jsx", ".tsx")
INDEX_FILES = ("index.ts", "index.js", "index.mjs", "index.cjs")

_IMPORT_FROM = re.compile(
    r"""^import\s+(?:type\s+)?(?P<what>[\s\w$*{},]*?)\s+from\s+["'](?P<mod>[^"']+)["']$""", re.S
)
_IMPORT_BARE = re.compile(r"""^import\s+["'](?P<mod>[^"']+)["']$""")
_EXPORT_FROM = re.compile(
    r"""^export\s+(?P<what>\{[^}]*\}|\*(?:\s+as\s+[\w$]+)?)\s+from\s+["'](?P<mod>[^"']+)["']$""", re.S
)
_REQUIRE = re.compile(
    r"""^(?:const|let|var)\s+(?P<what>[\w$]+|\{[^}]*\})\s*=\s*require\(\s*["'](?P<mod>[^"']+)["']\s*\)$""",
    re.S,
)
_REEXPORT_LINE = re.compile(
    r"""^[ \t]*export[ \t]*\{(?P<names>[^}]*)\}[ \t]*from[ \t]*["'](?P<mod>[^"']+)["']""", re.M
)


def _export_patterns(name: str) -> list[re.Pattern[str]]:
    if name == "default":
        return [
            re.compile(r"^[ \t]*export[ \t]+default\b", re.M),
            re.compile(r"^[ \t]*module\.exports[ \t]*=", re.M),
        ]
    n = re.escape(name)
    return [
        re.compile(
            rf"^[ \t]*export[ \t]+(?:default[ \t]+)?(?:declare[ \t]+)?(?:abstract[ \t]+)?(?:async[ \t]+)?"
            rf"(?:class|function\*?|const|let|var|interface|type|enum)[ \t]+{n}\b",
            re.M,
        ),
        re.compile(rf"^[ \t]*(?:module\.)?exports\.{n}[ \t]*=", re.M),
    ]


def _local_export_list(name: str) -> re.Pattern[str]:
    return re.compile(rf"^[ \t]*export[ \t]*\{{[^}}]*\b{re.escape(name)}\b[^}}]*\}}[ \t]*;?[ \t]*$", re.M)


def _plain_declaration(name: str) -> re.Pattern[str]:
    return re.compile(
        rf"^[ \t]*(?:async[ \t]+)?(?:class|function\*?|const|let|var)[ \t]+{re.escape(name)}\b", re.M
    )


def split_specifier(spec: str) -> tuple[str, tuple[str, ...]]:
    """``@scope/pkg/a/b`` -> ("@scope/pkg", ("a", "b"))."""
    parts = [p for p in spec.split("/") if p]
    if spec.startswith("@"):
        if len(parts) < 2:
            raise InvalidInputError(f"incomplete scoped specifier: {spec!r}")
        return "/".join(parts[:2]), tuple(parts[2:])
    return parts[0], tuple(parts[1:])


def _names(what: str) -> list[str] | str:
    """Requested names of an import clause, or a reason string."""
    what = what.strip()
    if what.startswith("*"):
        return "namespace import"
    names: list[str] = []
    brace = re.search(r"\{([^}]*)\}", what)
    head = what[: brace.start()] if brace else what
    default = head.strip().rstrip(",").strip()
    if default:
        names.append("default")
        if "*" in default:
            return "namespace import"
    if brace:
        for part in brace.group(1).split(","):
            part = part.strip()
            if not part:
                continue
            part = re.sub(r"^type\s+", "", part)
            # `a as b` for ESM, `a: b` for destructured require
            names.append(re.split(r"\s+as\s+|\s*:\s*", part)[0].strip())
    return names


def package_entry(root: Path) -> Path | None:
    """File named by package.json ``exports``/``module``/``main``."""
    manifest = root / "package.json"
    text = read_source(manifest)
    candidates: list[str] = []
    if text is not None:
        try:
            data = json.loads(text)
        except ValueError as e:
            logger.debug("Unreadable %s: %s", manifest, e)
            data = {}
        exports = data.get("exports") if isinstance(data, dict) else None
        if isinstance(exports, str):
            candidates.append(exports)
        elif isinstance(exports, dict):
            dot = exports.get(".", exports)
            if isinstance(dot, str):
                candidates.append(dot)
            elif isinstance(dot, dict):
                for condition in ("import", "default", "require", "node"):
                    value = dot.get(condition)
                    if isinstance(value, str):
                        candidates.append(value)
        for field_name in ("module", "main"):
            value = data.get(field_name) if isinstance(data, dict) else None
            if isinstance(value, str):
                candidates.append(value)
    for rel in candidates:
        found = first_file(file_candidates(root / rel))
        if found is not None:
            return found
    return None


def file_candidates(base: Path) -> list[Path]:
    return [base] + [base.with_name(base.name + ext) for ext in EXTENSIONS]


def index_candidates(base: Path) -> list[Path]:
    return [base / name for name in INDEX_FILES]


class NodeResolver(LanguageResolver):
    language = Language.NODE

    def parse(self, import_text: str, package: str, context: str | None = None) -> ParsedImport:
        text = import_text.strip()
        flat = text.rstrip(";").strip()

        names: list[str] | str
        esm = _IMPORT_FROM.match(flat) or _EXPORT_FROM.match(flat)
        cjs = _REQUIRE.match(flat)
        bare = _IMPORT_BARE.match(flat)
        if esm is not None:
            spec, names = esm.group("mod"), _names(esm.group("what"))
        elif cjs is not None:
            what = cjs.group("what")
            spec = cjs.group("mod")
            names = _names(what) if what.startswith("{") else [""]
        elif bare is not None:
            spec, names = bare.group("mod"), [""]
        else:
            raise InvalidInputError(f"not a JavaScript/TypeScript import: {import_text!r}")

        if isinstance(names, str):
            return ParsedImport(text=text, reason=names)
        if spec.startswith((".", "/")):
            return ParsedImport(text=text, reason="relative specifier does not name a package")
        name, subpath = split_specifier(spec)
        if name != package:
            return ParsedImport(text=text, reason=f"specifier refers to package {name}")
        return ParsedImport(text=text, items=tuple(ImportItem(subpath, n) for n in names))

    def strategies(self) -> list[Strategy]:
        return [
            Strategy("exact_file", 0.9, self._exact_file),
            Strategy("index_file", 0.85, self._index_file),
            Strategy("export_scan", 0.7, self._export_scan),
        ]

    # --- helpers ---

    @staticmethod
    def _entry(root: Path, subpath: tuple[str, ...]) -> Path | None:
        if not subpath:
            return package_entry(root)
        return first_file(file_candidates(root.joinpath(*subpath)))

    @staticmethod
    def _define(path: Path | None, name: str) -> Match | None:
        if path is None:
            return None
        if not name:
            return Match(path, None, path.stem)
        text = read_source(path)
        if text is None:
            return None
        line = first_line(text, _export_patterns(name))
        if line is None and name != "default" and _local_export_list(name).search(text):
            line = first_line(text, [_plain_declaration(name)])
        return Match(path, line, name) if line is not None else None

    # --- strategies ---

    def _exact_file(self, root: Path, item: ImportItem) -> Match | None:
        return self._define(self._entry(root, item.module), item.name)

    def _index_file(self, root: Path, item: ImportItem) -> Match | None:
        return self._define(first_file(index_candidates(root.joinpath(*item.module))), item.name)

    def _export_scan(self, root: Path, item: ImportItem) -> Match | None:
        """Follow one ``export { name } from './x'`` hop."""
        if not item.name:
            return None
        base = root.joinpath(*item.module)
        sources = [self._entry(root, item.module), first_file(index_candidates(base))]
        for source in dict.fromkeys(s for s in sources if s is not None):
            text = read_source(source)
            if text is None:
                continue
            for m in _REEXPORT_LINE.finditer(text):
                original = self._reexported_as(m.group("names"), item.name)
                if original is None or not m.group("mod").startswith("."):
                    continue
                target = source.parent / m.group("mod")
                path = first_file(file_candidates(target)) or first_file(index_candidates(target))
                found = self._define(path, original)
                if found is not None:
                    return Match(found.file, found.line, item.name)
        return None

    @staticmethod
    def _reexported_as(names: str, wanted: str) -> str | None:
        for part in names.split(","):
            original, _, alias = part.strip().partition(" as ")
            if (alias.strip() or original.strip()) == wanted:
                return original.strip()
        return None
