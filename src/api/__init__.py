# src/api/__init__.py — v1
"""Public service facade."""

from dociium.api.facade import DocService

__all__ = ["DocService"]
