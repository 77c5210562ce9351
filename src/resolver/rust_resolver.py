# src/resolver/rust_resolver.py — v1
"""Rust ``use`` statements -> file + line inside a crate source tree.

Strategies, in order:
    module_file    src/a/b.rs (src/lib.rs for the crate root)
    mod_rs         src/a/b/mod.rs
    inline_module  ``mod b { ... }`` block inside the parent module's file
    lib_reexport   ``pub use x::Name;`` in the module file, followed one hop
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
    line_of,
    read_source,
)

logger = logging.getLogger(__name__)

_USE = re.compile(r"^(?:pub(?:\([^)]*\))?\s+)?use\s+(?P<body>.+)$", re.S)
_ITEM_KEYWORDS = r"(?:fn|struct|enum|trait|type|const|static|union|mod)"
_QUALIFIERS = r"(?:(?:async|const|unsafe|default|extern[ \t]+\"[^\"]*\")[ \t]+)*"
_VIS = r"(?:pub(?:\([^)]*\))?[ \t]+)?"


def _definition(name: str, inline: bool = False) -> re.Pattern[str]:
    # Inline blocks put items right after "{" or ";" on the same line.
    lead = r"(?:^|(?<=[{;}]))" if inline else r"^"
    return re.compile(
        rf"{lead}[ \t]*{_VIS}{_QUALIFIERS}{_ITEM_KEYWORDS}[ \t]+{re.escape(name)}\b",
        re.M,
    )


def _inline_mod(name: str) -> re.Pattern[str]:
    return re.compile(rf"(?:^|(?<=[{{;}}]))[ \t]*{_VIS}mod[ \t]+{re.escape(name)}[ \t]*\{{", re.M)


_REEXPORT = re.compile(r"^[ \t]*pub(?:\([^)]*\))?[ \t]+use[ \t]+(?P<body>[^;]+);", re.M)


def _braces(text: str, start: int, end: int):
    """Yield (index, +1/-1) for each code brace in text[start:end].

    Skips ``//`` and ``/* */`` comments and double-quoted strings. Char
    literals are not tracked, so a literal ``'{'`` can throw it off.
    """
    i = start
    while i < end:
        ch = text[i]
        if ch == "/" and text.startswith("//", i):
            nl = text.find("\n", i)
            i = end if nl < 0 else nl
            continue
        if ch == "/" and text.startswith("/*", i):
            close = text.find("*/", i + 2)
            i = end if close < 0 else close + 2
            continue
        if ch == '"':
            i += 1
            while i < end and text[i] != '"':
                i += 2 if text[i] == "\\" else 1
        elif ch == "{":
            yield i, 1
        elif ch == "}":
            yield i, -1
        i += 1


def brace_block(text: str, open_idx: int) -> int:
    """Index just past the ``}`` closing the brace at open_idx, or -1."""
    depth = 0
    for i, delta in _braces(text, open_idx, len(text)):
        depth += delta
        if depth == 0:
            return i + 1
    return -1


def brace_depth(text: str, pos: int, start: int = 0) -> int:
    """Braces still open at ``pos`` when scanning from ``start``."""
    return sum(delta for _, delta in _braces(text, start, pos))


def find_definition(text: str, name: str, start: int = 0, end: int | None = None, depth: int = 0) -> int | None:
    """1-based line of the first definition of ``name`` nested exactly
    ``depth`` braces below ``start``; items inside ``impl`` or nested
    ``mod`` blocks are not visible at this level."""
    end = len(text) if end is None else end
    for m in _definition(name, inline=depth > 0).finditer(text, start, end):
        if brace_depth(text, m.start(), start) == depth:
            return line_of(text, m.start())
    return None


def crate_ident(package: str) -> str:
    return package.replace("-", "_")


_ALIAS = re.compile(r"^(?P<path>.+?)\s+as\s+(?P<alias>\w+)\s*$")


def _split_alias(raw: str) -> tuple[str, str | None]:
    m = _ALIAS.match(raw.strip())
    if m is None:
        return raw.strip(), None
    return m.group("path"), m.group("alias")


def use_tree_entries(body: str) -> list[tuple[list[str], str, str]] | str:
    """Flatten one level of ``a::{B, c::D as E}`` into (segments, name, visible).

    ``visible`` is the name the statement binds: the alias when there is one.
    Returns a reason string for shapes that are out of reach.
    """
    body = body.strip()
    if body.startswith("::"):
        body = body[2:]
    if "{" not in body:
        path, alias = _split_alias(body)
        segments = path.split("::")
        return [(segments[:-1], segments[-1], alias or segments[-1])]

    base, _, rest = body.partition("{")
    rest = rest.strip()
    if not rest.endswith("}"):
        raise InvalidInputError(f"unbalanced use group: {body!r}")
    inner = rest[:-1]
    if "{" in inner:
        return "nested use groups"
    base_segments = [s for s in base.strip().rstrip(":").split("::") if s]
    items: list[tuple[list[str], str, str]] = []
    for raw in inner.split(","):
        path, alias = _split_alias(raw)
        if not path:
            continue
        parts = path.split("::")
        if parts == ["self"]:
            if not base_segments:
                return "self import without a module"
            items.append((base_segments[:-1], base_segments[-1], alias or base_segments[-1]))
        else:
            items.append((base_segments + parts[:-1], parts[-1], alias or parts[-1]))
    return items


def expand_use_tree(body: str) -> list[tuple[list[str], str]] | str:
    """(segments, name) pairs of use_tree_entries, aliases dropped."""
    entries = use_tree_entries(body)
    if isinstance(entries, str):
        return entries
    return [(segments, name) for segments, name, _ in entries]


class RustResolver(LanguageResolver):
    language = Language.RUST

    def parse(self, import_text: str, package: str, context: str | None = None) -> ParsedImport:
        text = import_text.strip()
        m = _USE.match(text.rstrip().rstrip(";").strip())
        if m is None:
            raise InvalidInputError(f"not a Rust use statement: {import_text!r}")

        expanded = expand_use_tree(m.group("body"))
        if isinstance(expanded, str):
            return ParsedImport(text=text, reason=expanded)

        crate = crate_ident(package)
        items: list[ImportItem] = []
        for segments, name in expanded:
            if name == "*":
                return ParsedImport(text=text, reason="glob import")
            if not segments:
                # `use serde;` names the crate itself
                return ParsedImport(text=text, reason="crate root import has no symbol")
            head, tail = segments[0], segments[1:]
            if head in ("self", "super"):
                return ParsedImport(text=text, reason=f"relative path ({head}::) needs the importing module")
            if head not in ("crate", crate):
                return ParsedImport(text=text, reason=f"path does not start in crate {crate}")
            items.append(ImportItem(module=tuple(tail), name=name))
        return ParsedImport(text=text, items=tuple(items))

    def strategies(self) -> list[Strategy]:
        return [
            Strategy("module_file", 0.9, self._module_file),
            Strategy("mod_rs", 0.9, self._mod_rs),
            Strategy("inline_module", 0.8, self._inline_module),
            Strategy("lib_reexport", 0.7, self._lib_reexport),
        ]

    # --- strategies ---

    @staticmethod
    def _src(root: Path) -> Path:
        src = root / "src"
        return src if src.is_dir() else root

    def _module_candidates(self, root: Path, module: tuple[str, ...]) -> list[Path]:
        src = self._src(root)
        if not module:
            return [src / "lib.rs", src / "main.rs"]
        return [src.joinpath(*module[:-1], f"{module[-1]}.rs"), src.joinpath(*module, "mod.rs")]

    def _find_in_file(self, path: Path | None, name: str) -> Match | None:
        if path is None:
            return None
        text = read_source(path)
        if text is None:
            return None
        line = find_definition(text, name)
        return Match(path, line, name) if line is not None else None

    def _module_file(self, root: Path, item: ImportItem) -> Match | None:
        return self._find_in_file(first_file(self._module_candidates(root, item.module)[:1]), item.name)

    def _mod_rs(self, root: Path, item: ImportItem) -> Match | None:
        if not item.module:
            return None
        return self._find_in_file(first_file(self._module_candidates(root, item.module)[1:]), item.name)

    def _inline_module(self, root: Path, item: ImportItem) -> Match | None:
        """``mod name { ... }`` declared inside the parent module's file."""
        if not item.module:
            return None
        parent = first_file(self._module_candidates(root, item.module[:-1]))
        text = read_source(parent) if parent is not None else None
        if text is None:
            return None
        m = _inline_mod(item.module[-1]).search(text)
        if m is None:
            return None
        end = brace_block(text, m.end() - 1)
        if end < 0:
            return None
        line = find_definition(text, item.name, m.end() - 1, end, depth=1)
        return Match(parent, line, item.name) if line is not None else None

    def _lib_reexport(self, root: Path, item: ImportItem) -> Match | None:
        """Follow one ``pub use`` hop out of the module that was asked for."""
        source = first_file(self._module_candidates(root, item.module))
        text = read_source(source) if source is not None else None
        if text is None:
            return None
        for m in _REEXPORT.finditer(text):
            if brace_depth(text, m.start()) != 0:
                continue
            entries = use_tree_entries(m.group("body"))
            if isinstance(entries, str):
                continue
            # match on the bound name, then follow the original one
            for segments, name, visible in entries:
                if visible != item.name or not segments:
                    continue
                target = self._reexport_target(item.module, segments)
                if target is None:
                    continue
                hop = ImportItem(module=target, name=name)
                for direct in (self._module_file, self._mod_rs, self._inline_module):
                    found = direct(root, hop)
                    if found is not None:
                        logger.debug(
                            "%s re-exported from %s (line %d)",
                            name, "::".join(target) or "crate root", line_of(text, m.start()),
                        )
                        return found
        return None

    @staticmethod
    def _reexport_target(current: tuple[str, ...], segments: list[str]) -> tuple[str, ...] | None:
        head = segments[0]
        if head == "crate":
            return tuple(segments[1:])
        if head == "self":
            return current + tuple(segments[1:])
        if head == "super":
            return current[:-1] + tuple(segments[1:]) if current else None
        # 2018-edition paths are relative to the current module
        return current + tuple(segments)
