# src/extraction/decoders.py — v1
"""Layered search-index decoders.

The search-index payload changed shape several times upstream. Each decoder
here is a pure function ``(text, package, version) -> NormalizedDocument``
that understands one family of layouts. ``decode_search_index`` tries them
in order; the first that yields symbols wins, and if none does every
failure is reported together as a ParseDriftError.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable

from dociium.core.errors import ParseDriftError
from dociium.core.models import NormalizedDocument, SymbolKind, SymbolRecord
from dociium.extraction.delimiters import (
    DelimiterError,
    enclosing_object,
    extract_assigned_literal,
    extract_literal_at,
)

logger = logging.getLogger(__name__)

Decoder = Callable[..., NormalizedDocument]

INDEX_NAMES = ("searchIndex",)


class EmptyIndexError(ValueError):
    """Decoder ran cleanly but produced no symbols."""


# --- shared helpers ---


def _as_text(payload: str | bytes) -> str:
    if isinstance(payload, bytes):
        return payload.decode("utf-8", errors="replace")
    return payload


def crate_keys(package: str) -> list[str]:
    """Keys the crate may be stored under (``my-crate`` is indexed as ``my_crate``)."""
    keys = [package]
    underscored = package.replace("-", "_")
    if underscored != package:
        keys.append(underscored)
    return keys


def _normalize_root(root: Any) -> dict[str, Any]:
    # new Map([...]) payloads decode to a list of [key, value] pairs
    if isinstance(root, list):
        pairs = {}
        for pair in root:
            if isinstance(pair, list) and len(pair) == 2 and isinstance(pair[0], str):
                pairs[pair[0]] = pair[1]
        return pairs
    if isinstance(root, dict):
        return root
    raise ValueError(f"search index root is {type(root).__name__}, expected object")


def load_crate_data(text: str, package: str) -> dict[str, Any]:
    """Locate and decode the per-crate object of a search-index script."""
    root = _normalize_root(json.loads(extract_assigned_literal(text, INDEX_NAMES)))
    for key in crate_keys(package):
        data = root.get(key)
        if isinstance(data, dict):
            return data
    raise ValueError(f"crate {package!r} not present in search index")


def load_crate_data_legacy(text: str, package: str) -> dict[str, Any]:
    """Older scripts assign per crate: ``searchIndex["crate"] = {...}``."""
    for key in crate_keys(package):
        m = re.search(
            rf"searchIndex\[\s*[\"']{re.escape(key)}[\"']\s*\]\s*=\s*", text
        )
        if m:
            return json.loads(extract_literal_at(text, m.end()))
    try:
        return load_crate_data(text, package)
    except ValueError as e:
        logger.debug("legacy locator: assignment form failed (%s), scanning for key", e)
    for key in crate_keys(package):
        try:
            outer = json.loads(enclosing_object(text, key))
        except (ValueError, DelimiterError):
            continue
        data = outer.get(key) if isinstance(outer, dict) else None
        if isinstance(data, dict):
            return data
    raise ValueError(f"crate {package!r} not found by any legacy locator")


def _kind(code: Any) -> SymbolKind:
    if isinstance(code, int):
        return SymbolKind.from_item_type(code)
    if isinstance(code, str) and len(code) == 1 and code.isalpha():
        return SymbolKind.from_item_type(ord(code) - ord("A"))
    if isinstance(code, str):
        return SymbolKind.parse(code)
    return SymbolKind.UNKNOWN


def _record(
    module_path: str, parent: str | None, name: str, kind: SymbolKind, desc: str
) -> SymbolRecord:
    parts = [p for p in (module_path, parent, name) if p]
    completeness = 0.5 + (0.25 if desc else 0.0)
    return SymbolRecord(
        path="::".join(parts),
        name=name,
        kind=kind,
        doc=desc,
        completeness=completeness,
    )


def _build_document(
    package: str,
    version: str,
    records: list[SymbolRecord],
    strategy: str,
    max_symbols: int,
) -> NormalizedDocument:
    unique: dict[str, SymbolRecord] = {}
    for rec in records:
        unique.setdefault(rec.path, rec)
    symbols = list(unique.values())
    if not symbols:
        raise EmptyIndexError(f"{strategy}: decoded zero symbols")

    truncated = len(symbols) > max_symbols
    if truncated:
        logger.warning(
            "%s@%s: %d symbols exceeds limit, keeping %d",
            package, version, len(symbols), max_symbols,
        )
        symbols = symbols[:max_symbols]

    completeness = sum(s.completeness for s in symbols) / len(symbols)
    if truncated:
        completeness *= max_symbols / len(unique)
    return NormalizedDocument(
        package=package,
        version=version,
        symbols=tuple(symbols),
        strategy=strategy,
        completeness=round(completeness, 4),
    )


def _parent_names(raw_parents: Any) -> list[str]:
    names = []
    for entry in raw_parents or []:
        if isinstance(entry, list) and len(entry) >= 2:
            names.append(str(entry[1]))
        else:
            names.append("")
    return names


# --- decoders ---


def decode_columnar(
    payload: str | bytes, package: str, version: str, max_symbols: int = 500_000
) -> NormalizedDocument:
    """Current layout: parallel columns ``t`` (kinds), ``n`` (names),
    ``q`` (module paths), ``d`` (descriptions), ``i`` (parent index into
    ``p``, 1-based, 0 = none).

    ``t`` is either a list of ints or a string of letters (``A`` = 0).
    ``q`` is either dense (empty string inherits the previous path) or
    sparse ``[[row, path], ...]``.
    """
    data = load_crate_data(_as_text(payload), package)
    names = data.get("n")
    kinds = data.get("t")
    if not isinstance(names, list) or kinds is None:
        raise ValueError("columnar keys 'n'/'t' missing")
    if isinstance(kinds, str):
        kinds = list(kinds)
    if len(kinds) != len(names):
        raise ValueError(f"column length mismatch: t={len(kinds)} n={len(names)}")

    descs = data.get("d") or []
    parents_idx = data.get("i") or []
    parent_names = _parent_names(data.get("p"))

    raw_paths = data.get("q") or []
    sparse: dict[int, str] = {}
    dense: list[str] = []
    if raw_paths and isinstance(raw_paths[0], list):
        sparse = {int(row): str(path) for row, path in raw_paths}
    else:
        dense = [str(p) for p in raw_paths]

    crate_name = crate_keys(package)[-1]
    current_path = crate_name
    records: list[SymbolRecord] = []
    for row, name in enumerate(names):
        if sparse:
            current_path = sparse.get(row, current_path)
        elif row < len(dense) and dense[row]:
            current_path = dense[row]

        parent = None
        if row < len(parents_idx) and isinstance(parents_idx[row], int) and parents_idx[row] > 0:
            pidx = parents_idx[row] - 1
            if pidx < len(parent_names):
                parent = parent_names[pidx] or None

        desc = descs[row] if row < len(descs) and isinstance(descs[row], str) else ""
        # first row of the column set is the crate root itself
        if row == 0 and name in ("", crate_name):
            records.append(
                SymbolRecord(
                    path=crate_name, name=crate_name, kind=SymbolKind.MODULE,
                    doc=desc, completeness=0.75 if desc else 0.5,
                )
            )
            continue
        records.append(_record(current_path, parent, str(name), _kind(kinds[row]), desc))

    return _build_document(package, version, records, "columnar", max_symbols)


def decode_rows(
    payload: str | bytes, package: str, version: str, max_symbols: int = 500_000
) -> NormalizedDocument:
    """Legacy layout: ``items``/``i`` holds rows ``[kind, name, path, desc, parent?]``.

    An empty path inherits the previous row's path; ``parent`` indexes
    ``paths``/``p`` directly.
    """
    data = load_crate_data_legacy(_as_text(payload), package)
    rows = data.get("items", data.get("i"))
    if not isinstance(rows, list) or not rows or not isinstance(rows[0], list):
        raise ValueError("row keys 'items'/'i' missing or not row-shaped")
    parent_names = _parent_names(data.get("paths", data.get("p")))

    crate_name = crate_keys(package)[-1]
    current_path = crate_name
    records: list[SymbolRecord] = []
    for row in rows:
        if not isinstance(row, list) or len(row) < 2:
            continue
        kind = _kind(row[0])
        name = str(row[1])
        if len(row) > 2 and isinstance(row[2], str) and row[2]:
            current_path = row[2]
        desc = row[3] if len(row) > 3 and isinstance(row[3], str) else ""
        parent = None
        if len(row) > 4 and isinstance(row[4], int) and 0 <= row[4] < len(parent_names):
            parent = parent_names[row[4]] or None
        records.append(_record(current_path, parent, name, kind, desc))

    return _build_document(package, version, records, "rows", max_symbols)


DEFAULT_DECODERS: list[tuple[str, Decoder]] = [
    ("columnar", decode_columnar),
    ("rows", decode_rows),
]


def decode_search_index(
    payload: str | bytes,
    package: str,
    version: str,
    decoders: list[tuple[str, Decoder]] | None = None,
    max_bytes: int | None = None,
    max_symbols: int = 500_000,
) -> NormalizedDocument:
    """Run decoders in order; first success wins.

    Raises:
        ParseDriftError: every decoder failed or produced zero symbols.
    """
    if max_bytes is not None and len(payload) > max_bytes:
        raise ParseDriftError(
            f"{package}@{version}: search index is {len(payload)} bytes, limit {max_bytes}",
            attempted=[],
        )

    attempted: list[str] = []
    details: dict[str, str] = {}
    all_empty = True
    for name, decoder in decoders or DEFAULT_DECODERS:
        attempted.append(name)
        try:
            doc = decoder(payload, package, version, max_symbols=max_symbols)
        except EmptyIndexError as e:
            details[name] = str(e)
            continue
        except (ValueError, KeyError, TypeError, IndexError) as e:
            all_empty = False
            details[name] = f"{type(e).__name__}: {e}"
            logger.debug("%s@%s: decoder %s failed: %s", package, version, name, e)
            continue
        logger.info(
            "%s@%s: decoded %d symbols with %s strategy",
            package, version, len(doc.symbols), name,
        )
        return doc

    reason = "decoded zero symbols" if all_empty else "no decoder understood the payload"
    raise ParseDriftError(
        f"{package}@{version}: {reason}", attempted=attempted, details=details
    )
