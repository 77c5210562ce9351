# src/resolver/__init__.py — v1
"""Import statements -> file and symbol locations in installed packages."""

from dociium.resolver.base import Language
from dociium.resolver.import_resolver import ImportResolver
from dociium.resolver.locator import PackageLocator

__all__ = ["ImportResolver", "Language", "PackageLocator"]
