# src/extraction/extractor_factory.py — v3
"""Factory: instantiate extractor from document kind, plus the ``extract`` entry point."""

from __future__ import annotations

from lexingest.core.exceptions import ExtractionError, ExtractionErrorCode
from lexingest.core.models import DocumentKind, ExtractionOptions, ExtractionResult
from lexingest.extraction.base_extractor import BaseExtractor
from lexingest.extraction.html_extractor import HtmlExtractor
from lexingest.extraction.image_extractor import ImageExtractor
from lexingest.extraction.pdf_extractor import PdfExtractor
from lexingest.extraction.txt_extractor import TxtExtractor

# Registry maps kind → extractor class.
_EXTRACTOR_REGISTRY: dict[DocumentKind, type[BaseExtractor]] = {}


def _register_defaults() -> None:
    """Register built-in extractors."""
    for cls in [PdfExtractor, HtmlExtractor, TxtExtractor, ImageExtractor]:
        instance = cls()
        for kind in instance.supported_kinds:
            _EXTRACTOR_REGISTRY[kind] = cls


_register_defaults()


def create_extractor(kind: DocumentKind) -> BaseExtractor:
    """Create an extractor for the given document kind.

    Raises:
        ExtractionError: UNSUPPORTED_KIND if no extractor is registered.
    """
    cls = _EXTRACTOR_REGISTRY.get(kind)
    if cls is None:
        raise ExtractionError(
            f"No extractor for kind {kind.value!r}. "
            f"Supported: {', '.join(k.value for k in supported_kinds())}",
            code=ExtractionErrorCode.UNSUPPORTED_KIND,
        )
    return cls()


def register_extractor(kind: DocumentKind, cls: type[BaseExtractor]) -> None:
    """Register a custom extractor for a kind."""
    _EXTRACTOR_REGISTRY[kind] = cls


def supported_kinds() -> list[DocumentKind]:
    return sorted(_EXTRACTOR_REGISTRY, key=lambda k: k.value)


async def extract(
    payload: bytes,
    declared_kind: DocumentKind,
    options: ExtractionOptions | None = None,
) -> ExtractionResult:
    """Extract normalized text from a payload of the declared kind.

    Raises:
        ExtractionError: Unsupported kind, or a PDF failure when fallbacks
            are disabled in ``options``.
    """
    return await create_extractor(declared_kind).extract(payload, options)
