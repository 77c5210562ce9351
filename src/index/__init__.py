# src/index/__init__.py — v1
"""Symbol and relationship indexes."""
