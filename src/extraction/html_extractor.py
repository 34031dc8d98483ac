# src/extraction/html_extractor.py — v2
"""HTML extractor — strip non-text markup with BeautifulSoup.

Requires the 'beautifulsoup4' package.
"""

from __future__ import annotations

import time

from bs4 import BeautifulSoup

from lexingest.core.models import (
    DocumentKind,
    ExtractionOptions,
    ExtractionResult,
    ExtractionStats,
)
from lexingest.extraction.base_extractor import BaseExtractor
from lexingest.extraction.text_normalizer import normalize_whitespace
from lexingest.extraction.txt_extractor import decode_payload

_NON_TEXT_TAGS = ("script", "style", "noscript", "template", "svg")


class HtmlExtractor(BaseExtractor):
    """Extractor for HTML documents served by the source."""

    @property
    def supported_kinds(self) -> list[DocumentKind]:
        return [DocumentKind.HTML]

    async def extract(
        self, payload: bytes, options: ExtractionOptions | None = None,
    ) -> ExtractionResult:
        start = time.monotonic()
        soup = BeautifulSoup(decode_payload(payload), "html.parser")
        for tag in soup(_NON_TEXT_TAGS):
            tag.decompose()

        metadata: dict[str, object] = {"size_bytes": len(payload)}
        if soup.title and soup.title.string:
            metadata["title"] = soup.title.string.strip()

        body = soup.body or soup
        text = normalize_whitespace(body.get_text("\n"))

        return ExtractionResult(
            text=text,
            kind=DocumentKind.HTML,
            metadata=metadata,
            stats=ExtractionStats(
                total_characters=len(text),
                elapsed_ms=int((time.monotonic() - start) * 1000),
                attempts=1,
            ),
        )
