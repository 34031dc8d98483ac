# tests/unit/extraction/test_unit_kind_detector.py — v1
"""Tests for extraction/kind_detector.py."""

from __future__ import annotations

import pytest

from lexingest.core.models import DocumentKind
from lexingest.extraction.kind_detector import detect_document_kind, infer_declared_kind


class TestDetectDocumentKind:
    @pytest.mark.parametrize("locator,content_type,expected", [
        ("https://h/x", "application/pdf", DocumentKind.PDF),
        ("https://h/peticao.pdf?x=1", "", DocumentKind.PDF),
        ("https://h/documento/download/1?tipo=pdf", "", DocumentKind.PDF),
        ("https://h/x", "image/png", DocumentKind.IMAGE),
        ("https://h/scan.JPG", "", DocumentKind.IMAGE),
        ("https://h/x", "text/plain; charset=utf-8", DocumentKind.TEXT),
        ("https://h/x", "text/html", DocumentKind.HTML),
        ("https://h/x", "", DocumentKind.HTML),
    ])
    def test_classification(self, locator, content_type, expected):
        assert detect_document_kind(locator, content_type) == expected

    def test_pdf_wins_over_image_suffix(self):
        assert detect_document_kind("https://h/a.png", "application/pdf") == DocumentKind.PDF


class TestInferDeclaredKind:
    def test_from_name(self):
        assert infer_declared_kind("https://h/x", "laudo.pdf") == DocumentKind.PDF
        assert infer_declared_kind("https://h/x", "foto.jpeg") == DocumentKind.IMAGE
        assert infer_declared_kind("https://h/x", "pagina.html") == DocumentKind.HTML

    def test_unknown(self):
        assert infer_declared_kind("https://h/x", "Documento 1") == DocumentKind.UNKNOWN
