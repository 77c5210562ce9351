# src/cache/__init__.py — v1
"""Two-tier key/value cache."""
