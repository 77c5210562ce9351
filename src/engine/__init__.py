# src/engine/__init__.py — v1
"""Documentation engine orchestration."""
