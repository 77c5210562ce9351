# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

No module redefines these types; all imports come from core.models.
"""

from __future__ import annotations

import hashlib
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# === SYMBOL KINDS ===


class SymbolKind(str, Enum):
    """Closed set of documented item kinds."""

    MODULE = "module"
    EXTERN_CRATE = "extern_crate"
    IMPORT = "import"
    STRUCT = "struct"
    ENUM = "enum"
    FUNCTION = "function"
    TYPE_ALIAS = "type_alias"
    STATIC = "static"
    TRAIT = "trait"
    IMPL = "impl"
    TYMETHOD = "tymethod"
    METHOD = "method"
    STRUCT_FIELD = "struct_field"
    VARIANT = "variant"
    MACRO = "macro"
    PRIMITIVE = "primitive"
    ASSOC_TYPE = "assoc_type"
    CONSTANT = "constant"
    ASSOC_CONST = "assoc_const"
    UNION = "union"
    FOREIGN_TYPE = "foreign_type"
    KEYWORD = "keyword"
    OPAQUE_TYPE = "opaque_type"
    ATTRIBUTE_MACRO = "attribute_macro"
    DERIVE_MACRO = "derive_macro"
    TRAIT_ALIAS = "trait_alias"
    UNKNOWN = "unknown"

    @classmethod
    def from_item_type(cls, code: int) -> SymbolKind:
        """Map a numeric rustdoc item-type id to a kind."""
        if 0 <= code < len(_ITEM_TYPE_ORDER):
            return _ITEM_TYPE_ORDER[code]
        return cls.UNKNOWN

    @classmethod
    def parse(cls, value: str) -> SymbolKind:
        """Lenient lookup by value or common alias ("fn", "type", "const")."""
        key = value.strip().lower()
        key = _KIND_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            return cls.UNKNOWN


# Order matches rustdoc's ItemType numbering.
_ITEM_TYPE_ORDER: list[SymbolKind] = [k for k in SymbolKind if k is not SymbolKind.UNKNOWN]

_KIND_ALIASES: dict[str, str] = {
    "fn": "function",
    "type": "type_alias",
    "typedef": "type_alias",
    "const": "constant",
    "mod": "module",
    "structfield": "struct_field",
    "field": "struct_field",
    "attr": "attribute_macro",
    "derive": "derive_macro",
    "associatedtype": "assoc_type",
    "associatedconstant": "assoc_const",
    "foreigntype": "foreign_type",
    "traitalias": "trait_alias",
}


# === SYMBOLS ===


class SourceAnchor(BaseModel):
    """Best-effort pointer into the source tree."""

    model_config = ConfigDict(frozen=True)

    file: str
    start_line: int | None = None
    end_line: int | None = None


class SymbolRecord(BaseModel):
    """One documented item of a package version."""

    model_config = ConfigDict(frozen=True)

    path: str
    name: str
    kind: SymbolKind = SymbolKind.UNKNOWN
    signature: str = ""
    doc: str = ""
    anchor: SourceAnchor | None = None
    examples: list[str] = Field(default_factory=list)
    completeness: float = Field(default=0.0, ge=0.0, le=1.0)

    @property
    def module_path(self) -> str:
        head, sep, _ = self.path.rpartition("::")
        return head if sep else self.path


class ImplEdge(BaseModel):
    """trait <-> implementing type. Hashable so indexes can hold sets of edges."""

    model_config = ConfigDict(frozen=True)

    trait_path: str
    type_path: str
    generics: tuple[str, ...] = ()
    is_blanket: bool = False


class NormalizedDocument(BaseModel):
    """Stable internal representation of a package version's public surface."""

    model_config = ConfigDict(frozen=True)

    package: str
    version: str
    symbols: tuple[SymbolRecord, ...]
    impls: frozenset[ImplEdge] = frozenset()
    strategy: str = ""
    completeness: float = Field(default=1.0, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def validate_unique_paths(self) -> NormalizedDocument:
        seen: set[str] = set()
        for sym in self.symbols:
            if sym.path in seen:
                raise ValueError(f"duplicate symbol path {sym.path!r}")
            seen.add(sym.path)
        return self

    @property
    def content_hash(self) -> str:
        """Deterministic digest of symbols and edges, used to memoize indexes."""
        h = hashlib.sha256()
        h.update(f"{self.package}@{self.version}".encode())
        for sym in self.symbols:
            h.update(f"\0{sym.path}\0{sym.kind.value}".encode())
        for edge in sorted(self.impls, key=lambda e: (e.trait_path, e.type_path, e.generics)):
            h.update(f"\1{edge.trait_path}\1{edge.type_path}\1{','.join(edge.generics)}".encode())
        return h.hexdigest()[:16]

    def find(self, path: str) -> SymbolRecord | None:
        for sym in self.symbols:
            if sym.path == path:
                return sym
        return None


# === SOURCE ===


class SourceSnippet(BaseModel):
    """Source lines around an item, with the item's own lines marked."""

    code: str
    file: str
    line_start: int
    line_end: int
    context_lines: int
    highlighted_line: int | None = None
    language: str = "rust"


class ImplementationContext(BaseModel):
    """One definition read out of a locally installed package."""

    file_path: str
    item_name: str
    documentation: str = ""
    implementation: str
    language: str


# === IMPORT RESOLUTION ===


class SymbolLocation(BaseModel):
    """Where one imported name is defined."""

    symbol: str
    file: str
    line: int | None = None
    strategy: str
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class ImportResolution(BaseModel):
    """Outcome of mapping one import statement to a file + symbol.

    Group imports (``use a::{B, C}``, ``from m import B, C``) carry one
    location per name in ``locations``; the flat fields mirror the first.
    The statement is resolved only when every requested name was located.
    """

    language: str
    package: str
    import_text: str
    status: Literal["resolved", "unresolved"]
    file: str | None = None
    symbol: str | None = None
    line: int | None = None
    strategy: str | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    attempted: list[str] = Field(default_factory=list)
    reason: str | None = None
    locations: list[SymbolLocation] = Field(default_factory=list)
    missing: list[str] = Field(default_factory=list)

    @field_validator("attempted")
    @classmethod
    def dedupe_attempted(cls, v: list[str]) -> list[str]:  # noqa: N805
        return list(dict.fromkeys(v))

    @property
    def is_resolved(self) -> bool:
        return self.status == "resolved"


# === REGISTRY ===


class CrateSummary(BaseModel):
    """Registry search hit."""

    name: str
    max_version: str = ""
    description: str = ""
    downloads: int = 0
    documentation: str | None = None
    repository: str | None = None


class VersionInfo(BaseModel):
    version: str
    downloads: int = 0
    yanked: bool = False
    created_at: str | None = None


class CrateInfo(BaseModel):
    """Registry metadata for one crate. ``versions`` is newest first."""

    name: str
    latest_version: str = ""
    description: str = ""
    homepage: str | None = None
    repository: str | None = None
    documentation: str | None = None
    license: str | None = None
    downloads: int = 0
    recent_downloads: int | None = None
    keywords: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    versions: list[VersionInfo] = Field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None


# === SEARCH ===


class SearchHit(BaseModel):
    """One ranked symbol search result."""

    symbol: SymbolRecord
    score: float
