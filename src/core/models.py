# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

No module redefines these types — all imports come from core.models.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# === KINDS & OUTCOMES ===


class DocumentKind(str, Enum):
    """Content kind of a discovered or downloaded document."""

    PDF = "PDF"
    IMAGE = "IMAGE"
    HTML = "HTML"
    TEXT = "TEXT"
    UNKNOWN = "UNKNOWN"


class ProcessingOutcome(str, Enum):
    """Per-document processing outcome recorded by the orchestrator."""

    OK = "ok"
    CACHED = "cached"
    SKIPPED_TOO_LARGE = "skipped-too-large"
    SKIPPED_DISABLED = "skipped-disabled"
    ERROR = "error"


SessionStatus = Literal[
    "idle", "discovering", "processing", "completed", "cancelled", "error"
]


# === DISCOVERY ===


class DocumentDescriptor(BaseModel):
    """Normalized identity + locator for one discoverable document.

    Immutable. Identity equality is by ``id`` only: locators may be
    ephemeral session URLs.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    locator: str
    name: str
    kind: DocumentKind = DocumentKind.UNKNOWN
    source: str
    discovered_at: datetime = Field(default_factory=utc_now)
    declared_type: str | None = None
    provenance: dict[str, str] = Field(default_factory=dict)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DocumentDescriptor):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


# === EXTRACTION ===


class PageError(BaseModel):
    """Failure recorded for a single PDF page."""

    page: int
    error: str
    type: Literal[
        "CORRUPTED_PAGE", "MEMORY_ERROR", "TIMEOUT_ERROR",
        "ENCRYPTION_ERROR", "UNKNOWN_ERROR",
    ] = "UNKNOWN_ERROR"


class StateTransition(BaseModel):
    """One edge taken through the PDF extraction state machine."""

    source: str
    target: str
    code: str | None = None


class ExtractionStats(BaseModel):
    """Statistics collected during one extraction."""

    total_pages: int = 0
    processed_pages: int = 0
    total_characters: int = 0
    average_chars_per_page: int = 0
    elapsed_ms: int = 0
    attempts: int = 0
    page_errors: list[PageError] = Field(default_factory=list)
    transitions: list[StateTransition] = Field(default_factory=list)


class ExtractionResult(BaseModel):
    """Normalized text plus metadata and statistics for one payload."""

    text: str
    kind: DocumentKind
    metadata: dict[str, Any] = Field(default_factory=dict)
    stats: ExtractionStats = Field(default_factory=ExtractionStats)
    success: bool = True
    fallback: bool = False
    fallback_strategy: Literal[
        "first_page_only", "metadata_only", "error_message", "rejected"
    ] | None = None
    warning: str | None = None
    error_code: str | None = None


class ExtractionOptions(BaseModel):
    """Per-call extraction options (defaults mirror Settings)."""

    timeout_s: float = 30.0
    max_retries: int = 2
    retry_delay_s: float = 1.0
    max_file_size: int = 50 * 1024 * 1024
    max_pages: int = 100
    fallback_on_error: bool = True
    include_page_markers: bool = True
    page_delimiter: str = "\n\n--- Page {page} ---\n\n"


# === INGESTION ===


class ProcessedDocument(BaseModel):
    """A Descriptor plus its extracted text, metadata and outcome. Immutable."""

    model_config = ConfigDict(frozen=True)

    descriptor: DocumentDescriptor
    text: str = ""
    extraction_kind: DocumentKind = DocumentKind.UNKNOWN
    size_bytes: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)
    outcome: ProcessingOutcome
    warning: str | None = None
    error: str | None = None
    processed_at: datetime = Field(default_factory=utc_now)

    @property
    def id(self) -> str:
        return self.descriptor.id


class ProgressEvent(BaseModel):
    """Incremental progress notification emitted after every descriptor."""

    processed: int
    total: int
    current_descriptor: DocumentDescriptor | None = None


class DocumentFailure(BaseModel):
    """Session-level record of a per-document failure."""

    document_id: str
    error: str
    timestamp: datetime = Field(default_factory=utc_now)


class SessionStatistics(BaseModel):
    """Aggregate counts exposed to downstream consumers."""

    total: int = 0
    processed: int = 0
    cached: int = 0
    skipped: int = 0
    errors: int = 0
    elapsed_ms: int = 0


class IngestionOptions(BaseModel):
    """Per-run orchestrator options (defaults mirror Settings)."""

    concurrency_limit: int = Field(default=6, ge=1)
    inter_batch_delay_ms: int = Field(default=200, ge=0)
    max_document_size_bytes: int = 10 * 1024 * 1024
    cache_enabled: bool = True
    process_pdfs: bool = True
    process_images: bool = False
    process_html: bool = True
    extraction: ExtractionOptions = Field(default_factory=ExtractionOptions)
