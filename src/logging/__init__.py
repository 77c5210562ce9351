# src/logging/__init__.py — v1
"""Logging setup for dociium."""

from dociium.logging.logger import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
