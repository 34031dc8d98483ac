# tests/unit/extraction/test_unit_extractor_factory.py — v3
"""Tests for extraction/extractor_factory.py."""

from __future__ import annotations

import pytest

from lexingest.core.exceptions import ExtractionError, ExtractionErrorCode
from lexingest.core.models import DocumentKind, ExtractionResult
from lexingest.extraction import extractor_factory
from lexingest.extraction.base_extractor import BaseExtractor
from lexingest.extraction.extractor_factory import (
    create_extractor,
    extract,
    register_extractor,
    supported_kinds,
)
from lexingest.extraction.html_extractor import HtmlExtractor
from lexingest.extraction.pdf_extractor import PdfExtractor
from lexingest.extraction.txt_extractor import TxtExtractor


class _UnknownExtractor(BaseExtractor):
    @property
    def supported_kinds(self):
        return [DocumentKind.UNKNOWN]

    async def extract(self, payload, options=None):
        return ExtractionResult(text="custom", kind=DocumentKind.UNKNOWN)


class TestCreateExtractor:
    def test_pdf(self):
        assert isinstance(create_extractor(DocumentKind.PDF), PdfExtractor)

    def test_html(self):
        assert isinstance(create_extractor(DocumentKind.HTML), HtmlExtractor)

    def test_text(self):
        assert isinstance(create_extractor(DocumentKind.TEXT), TxtExtractor)

    def test_unsupported(self):
        with pytest.raises(ExtractionError) as info:
            create_extractor(DocumentKind.UNKNOWN)
        assert info.value.code == ExtractionErrorCode.UNSUPPORTED_KIND
        assert info.value.retryable is False

    def test_supported_kinds(self):
        assert supported_kinds() == [
            DocumentKind.HTML, DocumentKind.IMAGE, DocumentKind.PDF, DocumentKind.TEXT,
        ]

    def test_cannot_instantiate_base(self):
        with pytest.raises(TypeError):
            BaseExtractor()  # type: ignore[abstract]


class TestRegistration:
    @pytest.mark.asyncio
    async def test_register_custom(self, monkeypatch):
        monkeypatch.setattr(
            extractor_factory, "_EXTRACTOR_REGISTRY",
            dict(extractor_factory._EXTRACTOR_REGISTRY),
        )
        register_extractor(DocumentKind.UNKNOWN, _UnknownExtractor)
        result = await extract(b"...", DocumentKind.UNKNOWN)
        assert result.text == "custom"


class TestExtract:
    @pytest.mark.asyncio
    async def test_dispatches_by_kind(self):
        result = await extract("<p>Intimação</p>".encode("utf-8"), DocumentKind.HTML)
        assert result.text == "Intimação"
        assert result.kind == DocumentKind.HTML
