# src/core/exceptions.py — v1
"""Exception taxonomy shared by discovery, download, extraction and cache."""

from __future__ import annotations

from enum import Enum
from typing import Any


class LexIngestError(Exception):
    """Base exception for lexingest errors."""


# === SOURCE / DISCOVERY ===


class SourceTransportError(LexIngestError):
    """The source collaborator could not complete a network retrieval."""

    def __init__(self, locator: str, message: str, status_code: int | None = None):
        self.locator = locator
        self.status_code = status_code
        super().__init__(f"{message} ({locator})")


class DiscoveryError(LexIngestError):
    """Transport-level discovery failure. Empty results are never errors."""

    def __init__(self, message: str, causes: list[Exception] | None = None):
        self.causes = causes or []
        super().__init__(message)


class DownloadError(LexIngestError):
    """A single document could not be downloaded."""

    def __init__(self, document_id: str, cause: Exception | str):
        self.document_id = document_id
        self.cause = cause
        super().__init__(f"Download failed for document {document_id}: {cause}")


# === EXTRACTION ===


class ExtractionErrorCode(str, Enum):
    PASSWORD_PROTECTED = "PASSWORD_PROTECTED"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    EMPTY_FILE = "EMPTY_FILE"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    CORRUPTED_PDF = "CORRUPTED_PDF"
    OUT_OF_MEMORY = "OUT_OF_MEMORY"
    TIMEOUT = "TIMEOUT"
    PAGE_ERROR = "PAGE_ERROR"
    EXTRACTION_ERROR = "EXTRACTION_ERROR"
    UNSUPPORTED_KIND = "UNSUPPORTED_KIND"


NON_RETRYABLE_CODES: frozenset[ExtractionErrorCode] = frozenset({
    ExtractionErrorCode.PASSWORD_PROTECTED,
    ExtractionErrorCode.FILE_TOO_LARGE,
    ExtractionErrorCode.EMPTY_FILE,
    ExtractionErrorCode.INVALID_SIGNATURE,
    ExtractionErrorCode.CORRUPTED_PDF,
    ExtractionErrorCode.OUT_OF_MEMORY,
    ExtractionErrorCode.UNSUPPORTED_KIND,
})

_USER_MESSAGES: dict[ExtractionErrorCode, str] = {
    ExtractionErrorCode.PASSWORD_PROTECTED: "This PDF is password protected and cannot be processed.",
    ExtractionErrorCode.FILE_TOO_LARGE: "The file is too large to be processed.",
    ExtractionErrorCode.EMPTY_FILE: "The file is empty.",
    ExtractionErrorCode.INVALID_SIGNATURE: "The file is not a valid PDF.",
    ExtractionErrorCode.CORRUPTED_PDF: "The PDF is corrupted or damaged.",
    ExtractionErrorCode.OUT_OF_MEMORY: "Not enough memory to process this PDF.",
    ExtractionErrorCode.TIMEOUT: "Processing took too long and was cancelled.",
    ExtractionErrorCode.PAGE_ERROR: "No page text could be recovered.",
    ExtractionErrorCode.EXTRACTION_ERROR: "An error occurred during text extraction.",
    ExtractionErrorCode.UNSUPPORTED_KIND: "This document kind cannot be extracted.",
}


class ExtractionError(LexIngestError):
    """Typed extraction failure carrying a code and its retryability."""

    def __init__(
        self,
        message: str,
        code: ExtractionErrorCode = ExtractionErrorCode.EXTRACTION_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.details = details or {}
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        return self.code not in NON_RETRYABLE_CODES

    def user_message(self) -> str:
        return _USER_MESSAGES.get(
            self.code, "An unexpected error occurred while processing the document."
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": str(self),
            "code": self.code.value,
            "retryable": self.retryable,
            "details": self.details,
        }


# === CACHE ===


class StorageQuotaExceeded(LexIngestError):
    """Hard quota signal raised by a cache storage medium."""


class CacheWriteRejected(LexIngestError):
    """A cache write was refused. Never fatal to the pipeline."""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Cache write rejected for {key}: {reason}")
