# src/__init__.py — v1
"""dociium: documentation acquisition, caching and indexing engine."""

from dociium.version import __version__

__all__ = ["__version__"]
