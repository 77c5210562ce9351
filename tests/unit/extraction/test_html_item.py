# tests/unit/extraction/test_html_item.py — v1
"""Tests for extraction/html_item.py."""

from __future__ import annotations

import pytest

from dociium.core.errors import ParseDriftError
from dociium.core.models import SymbolKind
from dociium.extraction.html_item import parse_heading_kind, parse_item_page, parse_source_anchor


class TestSourceAnchor:
    def test_line_range(self):
        anchor = parse_source_anchor("../../src/serde/lib.rs.html#L123-456")
        assert (anchor.file, anchor.start_line, anchor.end_line) == ("serde/lib.rs", 123, 456)

    def test_single_line(self):
        anchor = parse_source_anchor("/demo/1.0.0/src/demo/lib.rs.html#7")
        assert (anchor.start_line, anchor.end_line) == (7, 7)

    def test_no_fragment(self):
        anchor = parse_source_anchor("/src/demo/lib.rs.html")
        assert anchor.file == "demo/lib.rs"
        assert anchor.start_line is None

    def test_not_a_source_link(self):
        assert parse_source_anchor("https://example.com/x") is None


class TestHeadingKind:
    @pytest.mark.parametrize(
        "heading, kind",
        [
            ("Struct tokio::sync::Mutex", SymbolKind.STRUCT),
            ("Trait serde::Serialize", SymbolKind.TRAIT),
            ("Trait Alias a::B", SymbolKind.TRAIT_ALIAS),
            ("Derive Macro serde::Serialize", SymbolKind.DERIVE_MACRO),
            ("Attribute Macro tokio::main", SymbolKind.ATTRIBUTE_MACRO),
            ("Crate serde", SymbolKind.MODULE),
            ("Function demo::run", SymbolKind.FUNCTION),
            ("", SymbolKind.UNKNOWN),
        ],
    )
    def test_kinds(self, heading, kind):
        assert parse_heading_kind(heading) is kind


class TestParseItemPage:
    def test_full_page(self, item_html):
        record = parse_item_page(item_html, "demo::shapes::Bar")
        assert record.name == "Bar"
        assert record.kind is SymbolKind.STRUCT
        assert record.signature.startswith("pub struct Bar")
        assert "A bar with a long description." in record.doc
        assert record.examples == ["let b = demo::shapes::Bar::new();"]
        assert record.anchor.file == "demo/shapes.rs"
        assert record.anchor.start_line == 10
        assert record.completeness == 1.0

    def test_partial_page_lowers_completeness(self):
        html = "<main><h1>Enum demo::Color</h1></main>"
        record = parse_item_page(html, "demo::Color")
        assert record.kind is SymbolKind.ENUM
        assert record.signature == ""
        assert record.anchor is None
        assert record.completeness == 0.25

    def test_kind_hint_used_when_heading_silent(self):
        html = '<div class="docblock"><p>Docs only.</p></div>'
        record = parse_item_page(html, "demo::f", kind_hint=SymbolKind.FUNCTION)
        assert record.kind is SymbolKind.FUNCTION
        assert record.doc == "Docs only."

    def test_unrecognisable_page(self):
        with pytest.raises(ParseDriftError):
            parse_item_page("<html><body><p>moved</p></body></html>", "demo::X")
