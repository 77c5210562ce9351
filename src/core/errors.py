# src/core/errors.py — v1
"""Error taxonomy shared by extractor, engine and resolver.

Every error carries a stable machine-readable ``kind`` plus a human
message. ``to_dict()`` is what the service facade and CLI emit.
"""

from __future__ import annotations

from typing import Any


class DociiumError(Exception):
    """Base class for all typed dociium errors."""

    kind: str = "internal"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


class NotFoundError(DociiumError):
    """Package, version, item or local package root does not exist. Never retried."""

    kind = "not_found"


class TransientError(DociiumError):
    """Timeout, network failure or 5xx that survived the retry budget."""

    kind = "transient"

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.retry_after is not None:
            data["retry_after"] = self.retry_after
        return data


class ParseDriftError(DociiumError):
    """Upstream payload did not decode with any known strategy, or decoded empty."""

    kind = "parse_drift"

    def __init__(
        self,
        message: str,
        attempted: list[str] | None = None,
        details: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.attempted = list(attempted or [])
        self.details = dict(details or {})

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["attempted"] = self.attempted
        if self.details:
            data["details"] = self.details
        return data


class InvalidInputError(DociiumError):
    """Malformed package name, path or parameter. Raised before any I/O."""

    kind = "invalid_input"
