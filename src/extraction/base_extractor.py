# src/extraction/base_extractor.py — v2
"""Abstract extractor interface for document kinds."""

from __future__ import annotations

from abc import ABC, abstractmethod

from lexingest.core.models import DocumentKind, ExtractionOptions, ExtractionResult


class BaseExtractor(ABC):
    """Unified interface for per-kind text extractors."""

    @property
    @abstractmethod
    def supported_kinds(self) -> list[DocumentKind]:
        """Document kinds this extractor handles."""

    @abstractmethod
    async def extract(
        self, payload: bytes, options: ExtractionOptions | None = None,
    ) -> ExtractionResult:
        """Extract normalized text, metadata and statistics from a payload."""
