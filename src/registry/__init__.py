# src/registry/__init__.py — v1
"""Package registry client."""
