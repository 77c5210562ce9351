# src/extraction/html_item.py — v1
"""Parse a single rendered item page into a SymbolRecord.

Requires the 'beautifulsoup4' package. Selectors are tried from the newest
markup to the oldest; anything missing only lowers the record's
completeness score.
"""

from __future__ import annotations

import logging
import re

from bs4 import BeautifulSoup, Tag

from dociium.core.errors import ParseDriftError
from dociium.core.models import SourceAnchor, SymbolKind, SymbolRecord

logger = logging.getLogger(__name__)

_SIGNATURE_SELECTORS = ("pre.item-decl", ".item-decl pre", ".code-header", "pre.rust")
_DOC_SELECTORS = ("details.top-doc .docblock", "main .docblock", ".docblock")
_HEADING_SELECTORS = ("h1.main-heading", "main h1", "h1.fqn", "h1")
_SOURCE_SELECTORS = ("a.src-link", "a.src", "a.srclink", "a[href*='/src/']")

_LINES = re.compile(r"#L?(\d+)(?:-L?(\d+))?$")


def _first(soup: BeautifulSoup | Tag, selectors: tuple[str, ...]) -> Tag | None:
    for sel in selectors:
        found = soup.select_one(sel)
        if found is not None:
            return found
    return None


def _clean(text: str) -> str:
    lines = [ln.rstrip() for ln in text.splitlines()]
    return "\n".join(ln for ln in lines if ln.strip()).strip()


def parse_source_anchor(href: str) -> SourceAnchor | None:
    """``/src/serde/lib.rs.html#L123-456`` -> SourceAnchor("serde/lib.rs", 123, 456)."""
    marker = href.find("/src/")
    if marker < 0:
        return None
    rest = href[marker + len("/src/") :]
    fragment = ""
    if "#" in rest:
        rest, fragment = rest.split("#", 1)
        fragment = "#" + fragment
    if rest.endswith(".html"):
        rest = rest[: -len(".html")]
    if not rest:
        return None
    start = end = None
    m = _LINES.search(fragment)
    if m:
        start = int(m.group(1))
        end = int(m.group(2)) if m.group(2) else start
    return SourceAnchor(file=rest, start_line=start, end_line=end)


def parse_heading_kind(heading: str) -> SymbolKind:
    """'Struct tokio::sync::Mutex' -> SymbolKind.STRUCT."""
    words = heading.strip().split()
    if not words:
        return SymbolKind.UNKNOWN
    first = words[0].lower()
    if first == "trait" and len(words) > 1 and words[1].lower() == "alias":
        return SymbolKind.TRAIT_ALIAS
    if first in ("attribute", "derive") and len(words) > 1 and words[1].lower() == "macro":
        return SymbolKind.ATTRIBUTE_MACRO if first == "attribute" else SymbolKind.DERIVE_MACRO
    if first == "crate":
        return SymbolKind.MODULE
    return SymbolKind.parse(first)


def parse_item_page(
    html: str,
    path: str,
    kind_hint: SymbolKind = SymbolKind.UNKNOWN,
) -> SymbolRecord:
    """Build a SymbolRecord from an item page.

    Raises:
        ParseDriftError: the page has none of the expected item structure.
    """
    soup = BeautifulSoup(html, "html.parser")

    heading_el = _first(soup, _HEADING_SELECTORS)
    signature_el = _first(soup, _SIGNATURE_SELECTORS)
    doc_el = _first(soup, _DOC_SELECTORS)
    source_el = _first(soup, _SOURCE_SELECTORS)

    if heading_el is None and signature_el is None and doc_el is None:
        raise ParseDriftError(
            f"{path}: page has no heading, declaration or docblock",
            attempted=["heading", "signature", "docblock"],
        )

    kind = kind_hint
    if heading_el is not None:
        parsed = parse_heading_kind(heading_el.get_text(" ", strip=True))
        if parsed is not SymbolKind.UNKNOWN:
            kind = parsed

    signature = _clean(signature_el.get_text()) if signature_el is not None else ""
    doc = _clean(doc_el.get_text("\n")) if doc_el is not None else ""
    examples = (
        [_clean(code.get_text()) for code in doc_el.select("pre code")]
        if doc_el is not None
        else []
    )
    anchor = None
    if source_el is not None and source_el.get("href"):
        anchor = parse_source_anchor(str(source_el["href"]))

    found = [bool(signature), bool(doc), anchor is not None, kind is not SymbolKind.UNKNOWN]
    completeness = sum(found) / len(found)
    if completeness < 1.0:
        logger.debug("%s: partial item page (completeness %.2f)", path, completeness)

    return SymbolRecord(
        path=path,
        name=path.rsplit("::", 1)[-1],
        kind=kind,
        signature=signature,
        doc=doc,
        anchor=anchor,
        examples=[e for e in examples if e],
        completeness=completeness,
    )
