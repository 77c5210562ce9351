# src/extraction/delimiters.py — v1
"""Balanced-delimiter scanning over JavaScript-like payloads.

The upstream search index is a script, not JSON. These helpers find the
assignment that carries the data and carve out exactly the literal on its
right-hand side, by tracking bracket depth and string-literal boundaries
instead of relying on fixed offsets.
"""

from __future__ import annotations

import re

OPENERS = {"{": "}", "[": "]", "(": ")"}
CLOSERS = {"}", "]", ")"}
QUOTES = {'"', "'", "`"}

_JS_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}


class DelimiterError(ValueError):
    """Raised when a literal cannot be isolated."""


def balanced_slice(text: str, start: int) -> str:
    """Return text[start:end] where text[start] opens a literal and end closes it.

    Brackets inside string literals (any of ``"`` ``'`` or backtick) are
    ignored and backslash escapes inside strings are honoured.

    Raises:
        DelimiterError: start is not an opener, delimiters mismatch,
            or the input ends before the literal closes.
    """
    if start < 0 or start >= len(text) or text[start] not in OPENERS:
        raise DelimiterError(f"no opening delimiter at offset {start}")

    stack: list[str] = []
    quote: str | None = None
    escaped = False
    i = start
    n = len(text)
    while i < n:
        ch = text[i]
        if quote is not None:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = None
        elif ch in QUOTES:
            quote = ch
        elif ch in OPENERS:
            stack.append(OPENERS[ch])
        elif ch in CLOSERS:
            if not stack or stack[-1] != ch:
                raise DelimiterError(f"mismatched {ch!r} at offset {i}")
            stack.pop()
            if not stack:
                return text[start : i + 1]
        i += 1

    if quote is not None:
        raise DelimiterError("unterminated string literal")
    raise DelimiterError(f"unbalanced literal starting at offset {start}")


def read_string_literal(text: str, start: int) -> tuple[str, int]:
    """Read a quoted JS string starting at text[start].

    Returns the raw (still escaped) body and the offset just past the
    closing quote.
    """
    if start >= len(text) or text[start] not in QUOTES:
        raise DelimiterError(f"no string literal at offset {start}")
    quote = text[start]
    i = start + 1
    escaped = False
    while i < len(text):
        ch = text[i]
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == quote:
            return text[start + 1 : i], i + 1
        i += 1
    raise DelimiterError("unterminated string literal")


def unescape_js_string(body: str) -> str:
    """Evaluate backslash escapes of a JS string literal body."""
    out: list[str] = []
    i = 0
    n = len(body)
    while i < n:
        ch = body[i]
        if ch != "\\" or i + 1 >= n:
            out.append(ch)
            i += 1
            continue
        nxt = body[i + 1]
        if nxt in _JS_ESCAPES:
            out.append(_JS_ESCAPES[nxt])
            i += 2
        elif nxt == "x" and i + 4 <= n:
            out.append(chr(int(body[i + 2 : i + 4], 16)))
            i += 4
        elif nxt == "u" and i + 2 < n and body[i + 2] == "{":
            close = body.index("}", i + 3)
            out.append(chr(int(body[i + 3 : close], 16)))
            i = close + 1
        elif nxt == "u" and i + 6 <= n:
            out.append(chr(int(body[i + 2 : i + 6], 16)))
            i += 6
        elif nxt == "\n":
            # line continuation
            i += 2
        else:
            out.append(nxt)
            i += 2
    return "".join(out)


def _assignment_pattern(names: tuple[str, ...]) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(n) for n in names)
    return re.compile(
        r"(?:^|[\s;(,{])"
        r"(?:(?:var|let|const)\s+|(?:self|window|globalThis)\.)?"
        rf"(?:{alternatives})\s*=(?!=)\s*",
        re.MULTILINE,
    )


_JSON_PARSE = re.compile(r"JSON\.parse\(\s*")
_NEW_MAP = re.compile(r"new\s+Map\(\s*")


def extract_literal_at(text: str, pos: int) -> str:
    """Given an offset at the start of a value expression, return JSON text.

    Understands plain object/array literals, ``JSON.parse('...')`` and
    ``new Map(JSON.parse('...'))``.
    """
    while pos < len(text) and text[pos].isspace():
        pos += 1
    m = _NEW_MAP.match(text, pos)
    if m:
        pos = m.end()
    m = _JSON_PARSE.match(text, pos)
    if m:
        body, _ = read_string_literal(text, m.end())
        return unescape_js_string(body)
    return balanced_slice(text, pos)


def locate_assignment(text: str, names: tuple[str, ...] = ("searchIndex",)) -> int:
    """Offset of the value expression assigned to one of names.

    Raises:
        DelimiterError: no assignment found.
    """
    m = _assignment_pattern(names).search(text)
    if m is None:
        raise DelimiterError(f"no assignment to {'/'.join(names)} found")
    return m.end()


def extract_assigned_literal(text: str, names: tuple[str, ...] = ("searchIndex",)) -> str:
    """Locate ``<name> = <literal>`` and return the literal as JSON text."""
    return extract_literal_at(text, locate_assignment(text, names))


def enclosing_object(text: str, key: str) -> str:
    """Fallback: find ``"key"`` and return the smallest object enclosing it.

    Walks back from the key to each preceding ``{`` until one produces a
    balanced literal that contains the key.
    """
    for quoted in (f'"{key}"', f"'{key}'"):
        idx = text.find(quoted)
        if idx < 0:
            continue
        brace = text.rfind("{", 0, idx)
        while brace >= 0:
            try:
                candidate = balanced_slice(text, brace)
            except DelimiterError:
                candidate = ""
            if brace + len(candidate) > idx:
                return candidate
            brace = text.rfind("{", 0, brace)
    raise DelimiterError(f"key {key!r} not found in payload")
