# src/extraction/txt_extractor.py — v3
"""Plain text extractor — decode and normalize whitespace."""

from __future__ import annotations

import time

from lexingest.core.models import (
    DocumentKind,
    ExtractionOptions,
    ExtractionResult,
    ExtractionStats,
)
from lexingest.extraction.base_extractor import BaseExtractor
from lexingest.extraction.text_normalizer import normalize_whitespace


class TxtExtractor(BaseExtractor):
    """Extractor for plain text payloads."""

    @property
    def supported_kinds(self) -> list[DocumentKind]:
        return [DocumentKind.TEXT]

    async def extract(
        self, payload: bytes, options: ExtractionOptions | None = None,
    ) -> ExtractionResult:
        start = time.monotonic()
        text = normalize_whitespace(decode_payload(payload))
        return ExtractionResult(
            text=text,
            kind=DocumentKind.TEXT,
            metadata={"size_bytes": len(payload)},
            stats=ExtractionStats(
                total_characters=len(text),
                elapsed_ms=int((time.monotonic() - start) * 1000),
                attempts=1,
            ),
        )


def decode_payload(payload: bytes) -> str:
    """UTF-8 first, Latin-1 for legacy pages."""
    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError:
        return payload.decode("latin-1")
