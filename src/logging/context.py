# src/logging/context.py — v1
"""Contextual logging support: attach package, version, operation to log records."""

from __future__ import annotations

import contextvars
import uuid
from dataclasses import dataclass
from typing import Any

# Set per request by the service facade.
_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_operation: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "operation", default=None
)
_package: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "package", default=None
)
_version: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "version", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    request_id: str | None = None
    operation: str | None = None
    package: str | None = None
    version: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        operation=_operation.get(),
        package=_package.get(),
        version=_version.get(),
    )


def set_request_context(operation: str, request_id: str | None = None) -> str:
    """Start a request scope and return its id."""
    rid = request_id or uuid.uuid4().hex[:12]
    _request_id.set(rid)
    _operation.set(operation)
    return rid


def set_package_context(package: str, version: str | None = None) -> None:
    """Attach the package being worked on."""
    _package.set(package)
    _version.set(version)


def clear_context() -> None:
    """Reset all context variables."""
    _request_id.set(None)
    _operation.set(None)
    _package.set(None)
    _version.set(None)
