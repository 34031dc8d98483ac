# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for ingestion, discovery, extraction, cache and
logging settings.
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
        extra="ignore",
    )

    # === Ingestion ===
    concurrency_limit: int = 6
    inter_batch_delay_ms: int = 200
    max_document_size_mb: float = 10
    cache_enabled: bool = True
    process_pdfs: bool = True
    process_images: bool = False
    process_html: bool = True

    # === Discovery ===
    source_base_url: str = ""
    documents_view_path: str = "/pje/Processo/ConsultaDocumento/listView.seam"
    navigation_timeout_s: float = 10.0
    navigation_poll_interval_s: float = 0.5
    max_documents_pages: int = 50

    # === PDF extraction ===
    pdf_timeout_s: float = 30.0
    pdf_max_retries: int = 2
    pdf_retry_delay_s: float = 1.0
    pdf_max_file_size_mb: float = 50
    pdf_max_pages: int = 100
    pdf_fallback_on_error: bool = True
    pdf_include_page_markers: bool = True

    # === Cache ===
    cache_backend: Literal["memory", "json", "sqlite", "redis"] = "json"
    cache_root: Path = Path("~/.lexingest/cache")
    cache_redis_url: str = ""
    cache_key_prefix: str = "lex_doc_cache_"
    cache_ttl_s: float = 1800
    cache_max_size_mb: float = 50
    cache_max_entry_kb: float = 500
    cache_compression: bool = True
    cache_storage_quota_mb: float | None = None

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("concurrency_limit")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:  # noqa: N805
        if v < 1:
            raise ValueError("concurrency_limit must be >= 1")
        return v

    @field_validator("inter_batch_delay_ms", "pdf_max_retries")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:  # noqa: N805
        if v < 0:
            raise ValueError("value must be >= 0")
        return v

    @field_validator(
        "cache_ttl_s", "cache_max_size_mb", "cache_max_entry_kb",
        "max_document_size_mb", "pdf_timeout_s",
    )
    @classmethod
    def validate_positive(cls, v: float) -> float:  # noqa: N805
        if v <= 0:
            raise ValueError("value must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.cache_max_entry_kb * 1024 > self.cache_max_size_mb * 1024 * 1024:
            errors.append("CACHE_MAX_ENTRY_KB must not exceed CACHE_MAX_SIZE_MB")

        if self.navigation_poll_interval_s >= self.navigation_timeout_s:
            errors.append(
                "NAVIGATION_POLL_INTERVAL_S must be < NAVIGATION_TIMEOUT_S"
            )

        if self.cache_backend == "redis" and not self.cache_redis_url:
            errors.append("CACHE_BACKEND=redis requires CACHE_REDIS_URL")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def max_document_size_bytes(self) -> int:
        return int(self.max_document_size_mb * 1024 * 1024)

    @property
    def pdf_max_file_size_bytes(self) -> int:
        return int(self.pdf_max_file_size_mb * 1024 * 1024)

    @property
    def cache_max_size_bytes(self) -> int:
        return int(self.cache_max_size_mb * 1024 * 1024)

    @property
    def cache_max_entry_bytes(self) -> int:
        return int(self.cache_max_entry_kb * 1024)

    @property
    def cache_storage_quota_bytes(self) -> int | None:
        if self.cache_storage_quota_mb is None:
            return None
        return int(self.cache_storage_quota_mb * 1024 * 1024)


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-run config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
