# tests/unit/extraction/test_source_page.py — v1
"""Tests for extraction/source_page.py."""

from __future__ import annotations

import pytest

from dociium.core.errors import ParseDriftError
from dociium.extraction.source_page import parse_source_page, slice_lines

LEGACY_HTML = """\
<pre class="line-numbers"><span id="1">1</span>
<span id="2">2</span></pre><pre class="rust">
<span class="kw">fn</span> main() {}
// done
</pre>
"""

INLINE_GUTTER_HTML = (
    '<pre class="rust"><code><a href="#1" data-nosnippet>1</a>use std::fmt;\n'
    '<a href="#2" data-nosnippet>2</a>pub fn f() -&gt; u8 { 1 }</code></pre>'
)


class TestParseSourcePage:
    def test_separate_gutter(self):
        html = (
            '<div class="example-wrap"><div data-nosnippet><pre class="src-line-numbers">1\n2</pre></div>'
            '<pre class="rust"><code>struct A;\nstruct B;</code></pre></div>'
        )
        assert parse_source_page(html) == ["struct A;", "struct B;"]

    def test_legacy_markup(self):
        assert parse_source_page(LEGACY_HTML) == ["fn main() {}", "// done"]

    def test_inline_gutter(self):
        assert parse_source_page(INLINE_GUTTER_HTML) == ["use std::fmt;", "pub fn f() -> u8 { 1 }"]

    def test_no_code_is_drift(self):
        with pytest.raises(ParseDriftError):
            parse_source_page("<html><p>nothing</p></html>", "x.rs")


class TestSliceLines:
    LINES = [f"l{n}" for n in range(1, 11)]

    def test_context_clamped_to_file(self):
        assert slice_lines(self.LINES, 2, 3, 5) == (1, 8, "\n".join(self.LINES[:8]))

    def test_zero_context(self):
        assert slice_lines(self.LINES, 4, 4, 0) == (4, 4, "l4")

    @pytest.mark.parametrize("start, end", [(0, 1), (5, 4), (11, 12)])
    def test_range_outside_file_is_drift(self, start, end):
        with pytest.raises(ParseDriftError):
            slice_lines(self.LINES, start, end, 1)
