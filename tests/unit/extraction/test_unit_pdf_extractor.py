# tests/unit/extraction/test_unit_pdf_extractor.py — v3
"""Tests for extraction/pdf_extractor.py — validation, retries, fallbacks."""

from __future__ import annotations

import asyncio
import threading
import time
from unittest.mock import patch

import fitz
import pytest

from fakes import CORRUPTED_PDF, make_pdf
from lexingest.core.exceptions import ExtractionError, ExtractionErrorCode
from lexingest.core.models import DocumentKind, ExtractionOptions, ExtractionResult
from lexingest.extraction import pdf_extractor
from lexingest.extraction.pdf_extractor import (
    EXTRACTION_FAILED_MARKER,
    PASSWORD_PROTECTED_MARKER,
    PdfExtractor,
    classify_page_error,
    metadata_placeholder,
    parse_pdf_date,
)

FAST = ExtractionOptions(retry_delay_s=0)


def _path(result: ExtractionResult) -> list[tuple[str, str]]:
    return [(t.source, t.target) for t in result.stats.transitions]


class TestSuccess:
    @pytest.mark.asyncio
    async def test_text_markers_and_metadata(self, simple_pdf):
        result = await PdfExtractor().extract(simple_pdf, FAST)
        assert result.success is True
        assert result.kind == DocumentKind.PDF
        assert result.text.startswith("--- Page 1 ---")
        assert "First page of the petition" in result.text
        assert "--- Page 2 ---" in result.text
        assert result.metadata["page_count"] == 2
        assert result.metadata["title"] == "Petição Inicial"
        assert result.metadata["creation_date"] == "2024-01-15T10:30:00"
        assert result.stats.attempts == 1
        assert result.stats.processed_pages == 2
        assert result.stats.total_characters == len(result.text)
        assert _path(result) == [("validating", "extracting"), ("extracting", "done")]

    @pytest.mark.asyncio
    async def test_without_page_markers(self, simple_pdf):
        options = ExtractionOptions(include_page_markers=False)
        result = await PdfExtractor().extract(simple_pdf, options)
        assert "--- Page" not in result.text
        assert "Second page with the request" in result.text

    @pytest.mark.asyncio
    async def test_page_ceiling_warns(self):
        payload = make_pdf(["one", "two", "three"])
        result = await PdfExtractor().extract(payload, ExtractionOptions(max_pages=2))
        assert result.success is True
        assert "three" not in result.text
        assert result.stats.total_pages == 3
        assert "first 2 of 3" in result.warning

    @pytest.mark.asyncio
    async def test_partial_page_failure(self):
        payload = make_pdf(["alpha text", "beta text", "gamma text"])

        def flaky(doc, index):
            if index == 1:
                raise RuntimeError("page object is damaged")
            return doc.load_page(index).get_text("text")

        with patch.object(PdfExtractor, "_page_text", staticmethod(flaky)):
            result = await PdfExtractor().extract(payload, FAST)

        assert result.success is True
        assert "alpha text" in result.text
        assert "gamma text" in result.text
        assert result.stats.processed_pages == 2
        assert result.stats.page_errors[0].page == 2
        assert result.stats.page_errors[0].type == "CORRUPTED_PAGE"
        assert "1 page(s)" in result.warning


class TestValidation:
    @pytest.mark.asyncio
    async def test_password_protected(self, encrypted_pdf):
        result = await PdfExtractor().extract(encrypted_pdf, FAST)
        assert result.success is False
        assert result.text.startswith(PASSWORD_PROTECTED_MARKER)
        assert result.error_code == "PASSWORD_PROTECTED"
        assert result.fallback_strategy == "rejected"
        assert _path(result) == [("validating", "done")]
        assert result.stats.transitions[0].code == "PASSWORD_PROTECTED"

    @pytest.mark.asyncio
    async def test_empty(self):
        result = await PdfExtractor().extract(b"", FAST)
        assert result.error_code == "EMPTY_FILE"
        assert result.text.startswith(EXTRACTION_FAILED_MARKER)

    @pytest.mark.asyncio
    async def test_too_large(self, simple_pdf):
        options = ExtractionOptions(max_file_size=100)
        result = await PdfExtractor().extract(simple_pdf, options)
        assert result.error_code == "FILE_TOO_LARGE"
        assert result.metadata["max_size"] == 100

    @pytest.mark.asyncio
    async def test_invalid_signature(self):
        result = await PdfExtractor().extract(b"<html>not a pdf</html>", FAST)
        assert result.success is False
        assert result.error_code == "INVALID_SIGNATURE"

    @pytest.mark.asyncio
    async def test_rejection_raises_without_fallback(self, encrypted_pdf):
        options = ExtractionOptions(fallback_on_error=False)
        with pytest.raises(ExtractionError) as info:
            await PdfExtractor().extract(encrypted_pdf, options)
        assert info.value.code == ExtractionErrorCode.PASSWORD_PROTECTED

    @pytest.mark.asyncio
    async def test_corrupted_never_raises(self):
        result = await PdfExtractor().extract(CORRUPTED_PDF, FAST)
        assert isinstance(result, ExtractionResult)
        assert result.kind == DocumentKind.PDF


class TestRetriesAndFallbacks:
    @pytest.mark.asyncio
    async def test_retries_then_first_page(self, simple_pdf):
        with patch.object(
            PdfExtractor, "_page_text", side_effect=RuntimeError("render failed"),
        ):
            result = await PdfExtractor().extract(simple_pdf, FAST)

        assert result.stats.attempts == 3
        assert result.fallback is True
        assert result.fallback_strategy == "first_page_only"
        assert result.error_code == "PAGE_ERROR"
        assert "First page of the petition" in result.text
        assert "Second page" not in result.text
        targets = [t.target for t in result.stats.transitions]
        assert targets.count("retrying") == 2
        assert targets[-2:] == ["falling_back", "done"]

    @pytest.mark.asyncio
    async def test_no_retries_configured(self, simple_pdf):
        options = ExtractionOptions(max_retries=0)
        with patch.object(PdfExtractor, "_page_text", side_effect=RuntimeError("x")):
            result = await PdfExtractor().extract(simple_pdf, options)
        assert result.stats.attempts == 1

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self, simple_pdf):
        def slow(doc, index):
            time.sleep(0.6)
            return "late"

        options = ExtractionOptions(timeout_s=0.2, max_retries=0)
        with patch.object(PdfExtractor, "_page_text", staticmethod(slow)):
            result = await PdfExtractor().extract(simple_pdf, options)

        assert result.error_code == "TIMEOUT"
        assert result.fallback_strategy == "first_page_only"

    @pytest.mark.asyncio
    async def test_metadata_only_rung(self, simple_pdf):
        with patch.object(PdfExtractor, "_page_text", side_effect=RuntimeError("x")), \
             patch.object(PdfExtractor, "_first_page_text", return_value=""):
            result = await PdfExtractor().extract(simple_pdf, FAST)
        assert result.success is True
        assert result.fallback_strategy == "metadata_only"
        assert "Pages: 2" in result.text
        assert result.metadata["title"] == "Petição Inicial"

    @pytest.mark.asyncio
    async def test_error_message_rung(self, simple_pdf):
        with patch.object(PdfExtractor, "_page_text", side_effect=RuntimeError("x")), \
             patch.object(PdfExtractor, "_first_page_text", return_value=""), \
             patch.object(PdfExtractor, "_metadata_only", side_effect=RuntimeError("y")):
            result = await PdfExtractor().extract(simple_pdf, FAST)
        assert result.success is False
        assert result.fallback_strategy == "error_message"
        assert result.text.startswith(EXTRACTION_FAILED_MARKER)

    @pytest.mark.asyncio
    async def test_raises_without_fallback(self, simple_pdf):
        options = ExtractionOptions(retry_delay_s=0, fallback_on_error=False)
        with patch.object(PdfExtractor, "_page_text", side_effect=RuntimeError("x")):
            with pytest.raises(ExtractionError) as info:
                await PdfExtractor().extract(simple_pdf, options)
        assert info.value.code == ExtractionErrorCode.PAGE_ERROR


class TestWorkerThreads:
    @pytest.mark.asyncio
    async def test_timed_out_document_closed(self, simple_pdf):
        real_open = fitz.open
        opened = []
        page_calls = []

        def tracking_open(*args, **kwargs):
            doc = real_open(*args, **kwargs)
            opened.append(doc)
            return doc

        def slow(doc, index):
            page_calls.append(index)
            time.sleep(0.3)
            return "late"

        options = ExtractionOptions(timeout_s=0.1, max_retries=0)
        with patch.object(pdf_extractor.fitz, "open", side_effect=tracking_open), \
             patch.object(PdfExtractor, "_page_text", staticmethod(slow)):
            result = await PdfExtractor().extract(simple_pdf, options)
            await asyncio.sleep(0.5)

        assert result.error_code == "TIMEOUT"
        assert page_calls == [0]
        assert opened
        assert all(doc.is_closed for doc in opened)

    @pytest.mark.asyncio
    async def test_password_check_off_event_loop(self, simple_pdf):
        threads = []

        def needs_password(payload):
            threads.append(threading.current_thread())
            return False

        with patch.object(PdfExtractor, "_needs_password", staticmethod(needs_password)):
            await PdfExtractor().extract(simple_pdf, FAST)

        assert threads
        assert threads[0] is not threading.main_thread()


class TestHelpers:
    def test_parse_pdf_date(self):
        assert parse_pdf_date("D:20240115103000+03'00'") == "2024-01-15T10:30:00"
        assert parse_pdf_date("D:2023") == "2023-01-01T00:00:00"
        assert parse_pdf_date("garbage") is None
        assert parse_pdf_date(None) is None

    def test_classify_page_error(self):
        assert classify_page_error(MemoryError()) == "MEMORY_ERROR"
        assert classify_page_error(RuntimeError("document is encrypted")) == "ENCRYPTION_ERROR"
        assert classify_page_error(RuntimeError("operation timed out")) == "TIMEOUT_ERROR"
        assert classify_page_error(RuntimeError("weird")) == "UNKNOWN_ERROR"

    def test_metadata_placeholder(self):
        text = metadata_placeholder({"page_count": 4, "title": "Sentença"})
        assert "Pages: 4" in text
        assert "Title: Sentença" in text
