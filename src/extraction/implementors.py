# src/extraction/implementors.py — v1
"""Decode trait implementor payloads into ImplEdges.

An implementor script lists, per crate, the rendered ``impl`` headers of a
trait. Entries come as bare HTML strings, ``{"text": ..., "types": [...]}``
objects, or ``[html, synthetic, [paths]]`` lists depending on the
generator version. Headers are turned into (trait, type, generics,
blanket) by a small angle-bracket aware scanner.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from bs4 import BeautifulSoup

from dociium.core.models import ImplEdge
from dociium.extraction.delimiters import DelimiterError, extract_literal_at

logger = logging.getLogger(__name__)

_ASSIGN = re.compile(r"(?:var|let|const)?\s*implementors\s*=\s*")
_PER_CRATE = re.compile(r"implementors\[\s*[\"']([^\"']+)[\"']\s*\]\s*=\s*")
_FROM_ENTRIES = re.compile(r"Object\.fromEntries\(\s*")
_IMPL_KEYWORD = re.compile(r"(?:unsafe\s+)?impl\b")


def split_top_level(text: str, sep: str) -> list[str]:
    """Split on sep where angle/paren/bracket depth is zero."""
    parts: list[str] = []
    depth = 0
    buf: list[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch in "<([":
            depth += 1
        elif ch == ">" and i > 0 and text[i - 1] == "-":
            pass  # return-type arrow
        elif ch in ">)]":
            depth = max(0, depth - 1)
        if depth == 0 and text.startswith(sep, i):
            parts.append("".join(buf))
            buf = []
            i += len(sep)
            continue
        buf.append(ch)
        i += 1
    parts.append("".join(buf))
    return parts


def _angle_block(text: str) -> tuple[str, str]:
    """text starts with '<'; return (inside, remainder)."""
    depth = 0
    for i, ch in enumerate(text):
        if ch == "<":
            depth += 1
        elif ch == ">" and not (i > 0 and text[i - 1] == "-"):
            depth -= 1
            if depth == 0:
                return text[1:i], text[i + 1 :]
    raise ValueError(f"unbalanced generics in {text!r}")


def _strip_generic_args(type_text: str) -> str:
    idx = type_text.find("<")
    return type_text[:idx].strip() if idx >= 0 else type_text.strip()


def parse_impl_header(header: str) -> tuple[str, str, tuple[str, ...], bool] | None:
    """'impl<T: Clone> Trait for Vec<T>' -> ("Trait", "Vec<T>", ("T",), False).

    Returns None for inherent or negative impls and unparseable text.
    """
    text = " ".join(header.split())
    m = _IMPL_KEYWORD.match(text)
    if m is None:
        return None
    text = text[m.end() :].strip()

    generics: tuple[str, ...] = ()
    if text.startswith("<"):
        inside, text = _angle_block(text)
        params = [p.strip() for p in split_top_level(inside, ",") if p.strip()]
        generics = tuple(p.split(":", 1)[0].strip() for p in params)
        text = text.strip()

    if text.startswith("!"):
        return None

    halves = split_top_level(text, " for ")
    if len(halves) < 2:
        return None
    trait_text = halves[0].strip()
    type_text = " for ".join(halves[1:])
    type_text = split_top_level(type_text, " where ")[0].strip().rstrip("{").strip()
    if not trait_text or not type_text:
        return None

    bare = type_text.lstrip("&").strip()
    if bare.startswith("mut "):
        bare = bare[4:].strip()
    if bare.startswith("'"):
        bare = bare.split(None, 1)[-1]
    is_blanket = bare in generics
    return trait_text, type_text, generics, is_blanket


def _entry_text_and_paths(entry: Any) -> tuple[str, list[str]]:
    if isinstance(entry, str):
        return entry, []
    if isinstance(entry, dict):
        return str(entry.get("text", "")), [str(t) for t in entry.get("types", [])]
    if isinstance(entry, list) and entry and isinstance(entry[0], str):
        paths: list[str] = []
        for extra in entry[1:]:
            if isinstance(extra, list):
                paths = [str(p) for p in extra if isinstance(p, str)]
        return entry[0], paths
    return "", []


def _html_to_text(fragment: str) -> str:
    if "<" not in fragment and "&" not in fragment:
        return fragment
    return BeautifulSoup(fragment, "html.parser").get_text()


def _load_tables(text: str) -> dict[str, list[Any]]:
    tables: dict[str, list[Any]] = {}
    m = _ASSIGN.search(text)
    if m:
        pos = m.end()
        fe = _FROM_ENTRIES.match(text, pos)
        try:
            root = json.loads(extract_literal_at(text, fe.end() if fe else pos))
        except (ValueError, DelimiterError) as e:
            logger.debug("implementors root not decodable: %s", e)
            root = None
        if isinstance(root, list):
            root = {p[0]: p[1] for p in root if isinstance(p, list) and len(p) == 2}
        if isinstance(root, dict):
            for crate, entries in root.items():
                if isinstance(entries, list):
                    tables.setdefault(crate, []).extend(entries)

    for m in _PER_CRATE.finditer(text):
        try:
            entries = json.loads(extract_literal_at(text, m.end()))
        except (ValueError, DelimiterError) as e:
            logger.debug("implementors[%s] not decodable: %s", m.group(1), e)
            continue
        if isinstance(entries, list):
            tables.setdefault(m.group(1), []).extend(entries)
    return tables


def parse_implementors(text: str, trait_path: str) -> set[ImplEdge]:
    """All ImplEdges listed by an implementor script for trait_path.

    Raises:
        ValueError: payload has no recognisable implementor table.
    """
    tables = _load_tables(text)
    if not tables:
        raise ValueError("no implementor table found")

    edges: set[ImplEdge] = set()
    for entries in tables.values():
        for entry in entries:
            raw, paths = _entry_text_and_paths(entry)
            if not raw:
                continue
            parsed = parse_impl_header(_html_to_text(raw))
            if parsed is None:
                continue
            _, type_text, generics, is_blanket = parsed
            if paths and not is_blanket:
                type_path = paths[0]
            else:
                type_path = _strip_generic_args(type_text) if not is_blanket else type_text
            edges.add(
                ImplEdge(
                    trait_path=trait_path,
                    type_path=type_path,
                    generics=generics,
                    is_blanket=is_blanket,
                )
            )
    return edges
