# src/resolver/implementation.py — v1
"""Read one definition, with its documentation, out of a local source file.

Item paths look like ``relative/file#name``. Python files are read with
``ast`` so decorators and docstrings come out exact; Rust and JS/TS files
use a definition regex plus brace matching, and take the ``///`` or
``/** */`` comment block directly above the definition as its docs.
"""

from __future__ import annotations

import ast
import logging
import re
from pathlib import Path

from dociium.core.errors import InvalidInputError, NotFoundError, ParseDriftError
from dociium.core.models import ImplementationContext
from dociium.resolver.base import Language, read_source
from dociium.resolver.rust_resolver import brace_block

logger = logging.getLogger(__name__)

_RUST_DEF = (
    r"^[ \t]*(?:pub(?:\([^)]*\))?[ \t]+)?"
    r"(?:(?:async|const|unsafe|extern[ \t]+\"[^\"]*\")[ \t]+)*"
    r"(?:fn|struct|enum|trait|type|const|static|union|mod|macro_rules!)[ \t]+{name}\b"
)
_NODE_DEF = (
    r"^[ \t]*(?:export[ \t]+(?:default[ \t]+)?)?(?:declare[ \t]+)?(?:abstract[ \t]+)?"
    r"(?:async[ \t]+)?(?:function\*?|class|const|let|var|interface|type|enum)[ \t]+{name}\b"
)
_ATTRIBUTE = re.compile(r"^\s*(#\[|@)")


def split_item_path(item_path: str) -> tuple[str, str]:
    """``src/lib.rs#Foo`` -> ("src/lib.rs", "Foo")."""
    rel, sep, name = item_path.strip().rpartition("#")
    if not sep or not rel.strip() or not re.match(r"^[A-Za-z_$][\w$]*$", name.strip()):
        raise InvalidInputError(
            f"item path must look like 'path/to/file#item_name', got {item_path!r}"
        )
    return rel.strip(), name.strip()


def source_file(root: Path, rel_path: str) -> Path:
    """rel_path under root; anything that escapes the package root is refused."""
    base = root.resolve()
    if base.is_file():
        base = base.parent
    target = (base / rel_path).resolve()
    if target != base and base not in target.parents:
        raise InvalidInputError(f"{rel_path!r} is outside the package root")
    return target


def read_implementation(language: Language, root: Path, rel_path: str, name: str) -> ImplementationContext:
    """Blocking file I/O; run it off the event loop.

    Raises:
        InvalidInputError: rel_path escapes root.
        NotFoundError: file missing or no definition of ``name`` in it.
        ParseDriftError: the file does not parse or the block never closes.
    """
    path = source_file(root, rel_path)
    text = read_source(path)
    if text is None:
        raise NotFoundError(f"{rel_path} not found under {root}")

    if language is Language.PYTHON:
        documentation, implementation = _python_item(text, name, rel_path)
    else:
        pattern = _RUST_DEF if language is Language.RUST else _NODE_DEF
        documentation, implementation = _braced_item(text, name, rel_path, pattern)

    logger.debug("%s#%s: %d implementation lines", rel_path, name, implementation.count("\n") + 1)
    return ImplementationContext(
        file_path=str(path),
        item_name=name,
        documentation=documentation,
        implementation=implementation,
        language=language.value,
    )


def _python_item(text: str, name: str, rel_path: str) -> tuple[str, str]:
    try:
        tree = ast.parse(text)
    except SyntaxError as e:
        raise ParseDriftError(f"{rel_path}: not valid Python ({e.msg})", attempted=["ast"]) from e

    lines = text.splitlines()
    for node in ast.walk(tree):
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)) and node.name == name:
            first = min([node.lineno] + [d.lineno for d in node.decorator_list])
            doc = ast.get_docstring(node) or ""
            return doc, "\n".join(lines[first - 1 : node.end_lineno])
        if isinstance(node, (ast.Assign, ast.AnnAssign)):
            targets = node.targets if isinstance(node, ast.Assign) else [node.target]
            if any(isinstance(t, ast.Name) and t.id == name for t in targets):
                return "", "\n".join(lines[node.lineno - 1 : node.end_lineno])
    raise NotFoundError(f"no definition of {name} in {rel_path}")


def _braced_item(text: str, name: str, rel_path: str, pattern: str) -> tuple[str, str]:
    m = re.compile(pattern.replace("{name}", re.escape(name)), re.M).search(text)
    if m is None:
        raise NotFoundError(f"no definition of {name} in {rel_path}")

    brace = text.find("{", m.end())
    semi = text.find(";", m.end())
    if brace < 0 or 0 <= semi < brace:
        end = semi + 1 if semi >= 0 else len(text)
    else:
        end = brace_block(text, brace)
        if end < 0:
            raise ParseDriftError(f"{rel_path}: block of {name} never closes", attempted=["braces"])
    newline = text.find("\n", end)
    end = len(text) if newline < 0 else newline

    lines = text[: m.start()].split("\n")[:-1]
    start_line = len(lines)
    while start_line > 0 and _ATTRIBUTE.match(lines[start_line - 1]):
        start_line -= 1
    documentation = _doc_comment(lines[:start_line])
    implementation = "\n".join(lines[start_line:] + [text[m.start() : end]])
    return documentation, implementation.strip("\n")


def _doc_comment(above: list[str]) -> str:
    """``///`` lines or a ``/** */`` block ending on the last line of ``above``."""
    i = len(above)
    collected: list[str] = []
    while i > 0 and above[i - 1].strip().startswith("///"):
        i -= 1
        collected.insert(0, above[i].strip()[3:].strip())
    if collected:
        return "\n".join(collected)

    if i == 0 or not above[i - 1].strip().endswith("*/"):
        return ""
    block: list[str] = []
    while i > 0:
        i -= 1
        line = above[i].strip()
        block.insert(0, line)
        if line.startswith("/**"):
            break
        if line.startswith("/*"):
            return ""
    else:
        return ""
    cleaned = []
    for line in block:
        line = line.removeprefix("/**").removesuffix("*/").strip()
        line = line.removeprefix("*").strip()
        if line:
            cleaned.append(line)
    return "\n".join(cleaned)
