# src/resolver/base.py — v1
"""Shared pieces of the per-language import resolvers.

A LanguageResolver turns import text into a ParsedImport (pure string
work) and then runs its ordered strategies against a package root on the
local filesystem. Strategies either return a Match or decline with None;
they never guess.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Pattern

from dociium.core.errors import InvalidInputError
from dociium.core.models import ImportResolution, SymbolLocation

logger = logging.getLogger(__name__)

MAX_SOURCE_BYTES = 4 * 1024 * 1024


class Language(str, Enum):
    RUST = "rust"
    PYTHON = "python"
    NODE = "node"

    @classmethod
    def parse(cls, value: Language | str) -> Language:
        if isinstance(value, Language):
            return value
        key = str(value).strip().lower()
        try:
            return cls(_LANGUAGE_ALIASES.get(key, key))
        except ValueError:
            raise InvalidInputError(f"unsupported language: {value!r}") from None


_LANGUAGE_ALIASES: dict[str, str] = {
    "rs": "rust",
    "py": "python",
    "python3": "python",
    "js": "node",
    "javascript": "node",
    "ts": "node",
    "typescript": "node",
    "nodejs": "node",
}


@dataclass(frozen=True)
class ImportItem:
    """One requested name. ``name == ""`` means the module itself."""

    module: tuple[str, ...]
    name: str


@dataclass(frozen=True)
class ParsedImport:
    text: str
    items: tuple[ImportItem, ...] = ()
    # Set when the statement is well-formed but out of reach of path heuristics.
    reason: str | None = None


@dataclass(frozen=True)
class Match:
    file: Path
    line: int | None
    symbol: str


@dataclass(frozen=True)
class Strategy:
    name: str
    confidence: float
    run: Callable[[Path, ImportItem], Match | None] = field(compare=False)


# --- source helpers ---


def read_source(path: Path) -> str | None:
    """Text of a source file, or None when missing, unreadable or oversized."""
    try:
        if not path.is_file() or path.stat().st_size > MAX_SOURCE_BYTES:
            return None
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.debug("Cannot read %s: %s", path, e)
        return None


def line_of(text: str, offset: int) -> int:
    return text.count("\n", 0, offset) + 1


def first_line(text: str, patterns: Iterable[Pattern[str]], start: int = 0, end: int | None = None) -> int | None:
    """1-based line of the earliest match of any pattern inside text[start:end]."""
    end = len(text) if end is None else end
    best: int | None = None
    for pattern in patterns:
        m = pattern.search(text, start, end)
        if m is not None and (best is None or m.start() < best):
            best = m.start()
    return None if best is None else line_of(text, best)


def first_file(candidates: Iterable[Path]) -> Path | None:
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def strip_alias(item: str) -> str:
    return re.sub(r"\s+as\s+[\w$]+\s*$", "", item.strip())


# --- resolver ABC ---


class LanguageResolver(ABC):
    """Parse + ordered strategies for one language."""

    language: Language

    @abstractmethod
    def parse(self, import_text: str, package: str, context: str | None = None) -> ParsedImport:
        """Parse one statement. Raises InvalidInputError when it is not an import."""

    @abstractmethod
    def strategies(self) -> list[Strategy]:
        """Strategies in the order they are tried."""

    def strategy_names(self) -> list[str]:
        return [s.name for s in self.strategies()]

    def unresolved(self, package: str, parsed: ParsedImport, reason: str) -> ImportResolution:
        return ImportResolution(
            language=self.language.value,
            package=package,
            import_text=parsed.text,
            status="unresolved",
            # short-circuited before any strategy ran
            attempted=["parse"],
            reason=reason,
            missing=[item.name or ".".join(item.module) for item in parsed.items],
        )

    def resolve(self, root: Path, parsed: ParsedImport, package: str) -> ImportResolution:
        """Run strategies for every requested name. Blocking file I/O."""
        if parsed.reason is not None:
            return self.unresolved(package, parsed, parsed.reason)

        attempted: list[str] = []
        locations: list[SymbolLocation] = []
        missing: list[str] = []
        for item in parsed.items:
            label = item.name or ".".join(item.module)
            for strategy in self.strategies():
                attempted.append(strategy.name)
                match = strategy.run(root, item)
                if match is not None:
                    locations.append(SymbolLocation(
                        symbol=match.symbol,
                        file=str(match.file),
                        line=match.line,
                        strategy=strategy.name,
                        confidence=strategy.confidence,
                    ))
                    logger.debug("%s: %s located by %s", parsed.text, label, strategy.name)
                    break
            else:
                missing.append(label)

        resolved = bool(locations) and not missing
        primary = locations[0] if resolved else None
        return ImportResolution(
            language=self.language.value,
            package=package,
            import_text=parsed.text,
            status="resolved" if resolved else "unresolved",
            file=primary.file if primary else None,
            symbol=primary.symbol if primary else None,
            line=primary.line if primary else None,
            strategy=primary.strategy if primary else None,
            confidence=min(loc.confidence for loc in locations) if resolved else 0.0,
            attempted=attempted,
            reason=None if resolved else f"no strategy located: {', '.join(missing)}",
            locations=locations,
            missing=missing,
        )
