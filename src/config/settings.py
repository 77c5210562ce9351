# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for network, cache, parsing limits and logging.
Every field can be overridden with a ``DOCIIUM_`` prefixed environment
variable (e.g. ``DOCIIUM_DOC_TTL_S=3600``).
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="DOCIIUM_",
        extra="ignore",
    )

    # === Upstream hosts ===
    docs_base_url: str = "https://docs.rs"
    registry_base_url: str = "https://crates.io/api/v1"
    user_agent: str = "dociium (https://github.com/dociium/dociium)"

    # === HTTP ===
    http_timeout_s: float = 10.0
    http_max_retries: int = 2
    http_backoff_base_s: float = 0.5
    fetch_timeout_s: float = 60.0

    # === Documentation cache ===
    cache_dir: Path = Path("~/.cache/dociium")
    cache_enabled_disk: bool = True
    memory_max_entries: int = 1000
    doc_ttl_s: int = 7 * 24 * 3600
    negative_ttl_s: int = 300
    latest_version_ttl_s: int = 3600
    compression_threshold: int = 1024

    # === Import resolution cache ===
    import_cache_ttl_s: int = 300
    import_cache_max_entries: int = 512

    # === Parsing limits ===
    max_index_bytes: int = 64 * 1024 * 1024
    max_symbols: int = 500_000
    max_search_limit: int = 200
    max_implementor_fetches: int = 32
    implementor_concurrency: int = 4

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: str | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    @field_validator(
        "memory_max_entries",
        "doc_ttl_s",
        "negative_ttl_s",
        "import_cache_ttl_s",
        "import_cache_max_entries",
        "max_index_bytes",
        "max_symbols",
        "max_search_limit",
        "implementor_concurrency",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:  # noqa: N805
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @field_validator("http_max_retries", "max_implementor_fetches", "compression_threshold")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:  # noqa: N805
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("docs_base_url", "registry_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:  # noqa: N805
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field TTL and timeout ordering."""
        errors: list[str] = []

        if self.negative_ttl_s >= self.doc_ttl_s:
            errors.append("NEGATIVE_TTL_S must be < DOC_TTL_S")

        if self.import_cache_ttl_s >= self.doc_ttl_s:
            errors.append("IMPORT_CACHE_TTL_S must be < DOC_TTL_S")

        if self.http_timeout_s <= 0 or self.fetch_timeout_s <= 0:
            errors.append("HTTP_TIMEOUT_S and FETCH_TIMEOUT_S must be > 0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def cache_root(self) -> Path:
        """Expanded cache directory."""
        return Path(self.cache_dir).expanduser()


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or CLI flags).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
