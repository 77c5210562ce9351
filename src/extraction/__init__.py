# src/extraction/__init__.py — v1
"""Upstream documentation retrieval and parsing."""
