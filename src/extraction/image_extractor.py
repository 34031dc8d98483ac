# src/extraction/image_extractor.py — v1
"""Image documents — placeholder result, OCR is handled outside this package."""

from __future__ import annotations

from lexingest.core.models import (
    DocumentKind,
    ExtractionOptions,
    ExtractionResult,
    ExtractionStats,
)
from lexingest.extraction.base_extractor import BaseExtractor

IMAGE_PLACEHOLDER = "[IMAGE DOCUMENT] Text recognition is not available for images."


class ImageExtractor(BaseExtractor):
    """Returns a placeholder so image documents still get an outcome."""

    @property
    def supported_kinds(self) -> list[DocumentKind]:
        return [DocumentKind.IMAGE]

    async def extract(
        self, payload: bytes, options: ExtractionOptions | None = None,
    ) -> ExtractionResult:
        return ExtractionResult(
            text=IMAGE_PLACEHOLDER,
            kind=DocumentKind.IMAGE,
            metadata={"size_bytes": len(payload)},
            stats=ExtractionStats(total_characters=len(IMAGE_PLACEHOLDER), attempts=1),
            warning="OCR not available: image text was not extracted",
        )
