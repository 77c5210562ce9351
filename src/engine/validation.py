# src/engine/validation.py — v1
"""Boundary checks. Everything here runs before any cache or network access."""

from __future__ import annotations

import re

from dociium.core.errors import InvalidInputError

_PACKAGE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,63}$")
_VERSION = re.compile(r"^(latest|\*|[0-9]+(\.[0-9]+){0,2}([-+][0-9A-Za-z.+-]+)?)$")
_PATH = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(::[A-Za-z_][A-Za-z0-9_]*)*$")


def validate_package(package: str) -> str:
    if not isinstance(package, str) or not _PACKAGE.match(package):
        raise InvalidInputError(f"invalid package name: {package!r}")
    return package


def validate_version(version: str | None) -> str | None:
    if version is None or version == "":
        return None
    if not _VERSION.match(version):
        raise InvalidInputError(f"invalid version: {version!r}")
    return version


def validate_path(path: str) -> str:
    cleaned = path.strip() if isinstance(path, str) else ""
    if not cleaned or len(cleaned) > 512 or not _PATH.match(cleaned):
        raise InvalidInputError(f"invalid item path: {path!r}")
    return cleaned


def validate_query(query: str) -> str:
    cleaned = query.strip() if isinstance(query, str) else ""
    if not cleaned or len(cleaned) > 256:
        raise InvalidInputError("search query must be 1-256 characters")
    return cleaned


def validate_limit(limit: int, maximum: int) -> int:
    if not isinstance(limit, int) or isinstance(limit, bool) or not 1 <= limit <= maximum:
        raise InvalidInputError(f"limit must be between 1 and {maximum}, got {limit!r}")
    return limit


_IMPORT_PACKAGE = re.compile(r"^(@[A-Za-z0-9][\w.-]*/)?[A-Za-z0-9][\w.-]{0,213}$")


def validate_import_package(package: str) -> str:
    """Looser than validate_package: Python dists use dots, npm uses @scope/."""
    if not isinstance(package, str) or not _IMPORT_PACKAGE.match(package):
        raise InvalidInputError(f"invalid package name: {package!r}")
    return package


def validate_import_text(text: str) -> str:
    cleaned = text.strip() if isinstance(text, str) else ""
    if not cleaned or len(cleaned) > 2048:
        raise InvalidInputError("import statement must be 1-2048 characters")
    return cleaned


# Type paths as rustdoc prints them: `Vec<T>`, `&'a str`, `[u8; 4]`, `dyn Fn() -> T`.
_TYPE_PATH = re.compile(r"^[A-Za-z_&(\[*][A-Za-z0-9_:<>,&'\[\]();*+!=\- ]*$")


def validate_type_path(path: str) -> str:
    """Accept anything validate_path does, plus generic and reference syntax."""
    cleaned = path.strip() if isinstance(path, str) else ""
    if not cleaned or len(cleaned) > 512 or not _TYPE_PATH.match(cleaned):
        raise InvalidInputError(f"invalid type path: {path!r}")
    return cleaned


def validate_context_lines(context: int, maximum: int = 100) -> int:
    if not isinstance(context, int) or isinstance(context, bool) or not 0 <= context <= maximum:
        raise InvalidInputError(f"context_lines must be between 0 and {maximum}, got {context!r}")
    return context
