# src/extraction/source_page.py — v1
"""Rendered source pages (``/src/<crate>/<file>.rs.html``) -> plain lines.

Requires the 'beautifulsoup4' package. Line-number gutters are removed
before the text is read, whichever markup generation produced them.
"""

from __future__ import annotations

import logging

from bs4 import BeautifulSoup

from dociium.core.errors import ParseDriftError

logger = logging.getLogger(__name__)

_CODE_SELECTORS = ("pre.rust code", "pre.rust", ".example-wrap pre:not(.src-line-numbers)")
_GUTTER_SELECTORS = ("[data-nosnippet]", ".src-line-numbers", ".line-numbers")


def parse_source_page(html: str, file: str = "") -> list[str]:
    """All source lines of the page, 1-based line N at index N-1.

    Raises:
        ParseDriftError: no code block on the page.
    """
    soup = BeautifulSoup(html, "html.parser")
    for sel in _GUTTER_SELECTORS:
        for gutter in soup.select(sel):
            gutter.decompose()

    for sel in _CODE_SELECTORS:
        code = soup.select_one(sel)
        if code is not None:
            text = code.get_text()
            if text.startswith("\n"):
                text = text[1:]
            lines = text.splitlines()
            logger.debug("%s: %d source lines via %s", file or "source page", len(lines), sel)
            return lines

    raise ParseDriftError(f"{file or 'source page'}: no code block", attempted=list(_CODE_SELECTORS))


def slice_lines(lines: list[str], start: int, end: int, context: int) -> tuple[int, int, str]:
    """(first, last, text) for lines start..end widened by ``context`` each side."""
    if start < 1 or end < start or start > len(lines):
        raise ParseDriftError(
            f"source anchor {start}-{end} does not fit a {len(lines)}-line file",
            attempted=["line-range"],
        )
    first = max(1, start - context)
    last = min(len(lines), end + context)
    return first, last, "\n".join(lines[first - 1 : last])
