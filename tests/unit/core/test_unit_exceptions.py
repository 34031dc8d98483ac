# tests/unit/core/test_unit_exceptions.py — v1
"""Tests for core/exceptions.py — error codes and retryability."""

from __future__ import annotations

import pytest

from lexingest.core.exceptions import (
    CacheWriteRejected,
    DiscoveryError,
    DownloadError,
    ExtractionError,
    ExtractionErrorCode,
    LexIngestError,
    SourceTransportError,
)


class TestExtractionError:
    @pytest.mark.parametrize("code", [
        ExtractionErrorCode.PASSWORD_PROTECTED,
        ExtractionErrorCode.FILE_TOO_LARGE,
        ExtractionErrorCode.INVALID_SIGNATURE,
        ExtractionErrorCode.OUT_OF_MEMORY,
        ExtractionErrorCode.CORRUPTED_PDF,
    ])
    def test_non_retryable(self, code):
        assert ExtractionError("x", code=code).retryable is False

    @pytest.mark.parametrize("code", [
        ExtractionErrorCode.TIMEOUT,
        ExtractionErrorCode.PAGE_ERROR,
        ExtractionErrorCode.EXTRACTION_ERROR,
    ])
    def test_retryable(self, code):
        assert ExtractionError("x", code=code).retryable is True

    def test_default_code(self):
        assert ExtractionError("boom").code == ExtractionErrorCode.EXTRACTION_ERROR

    def test_user_message(self):
        error = ExtractionError("x", code=ExtractionErrorCode.PASSWORD_PROTECTED)
        assert "password" in error.user_message().lower()

    def test_to_dict(self):
        error = ExtractionError("x", code=ExtractionErrorCode.TIMEOUT, details={"s": 30})
        assert error.to_dict() == {
            "message": "x", "code": "TIMEOUT", "retryable": True, "details": {"s": 30},
        }


class TestHierarchy:
    def test_all_derive_from_base(self):
        errors = [
            SourceTransportError("u", "m"),
            DiscoveryError("m"),
            DownloadError("1", "cause"),
            ExtractionError("m"),
            CacheWriteRejected("k", "r"),
        ]
        assert all(isinstance(e, LexIngestError) for e in errors)

    def test_transport_error_carries_locator(self):
        error = SourceTransportError("https://x", "HTTP 500", status_code=500)
        assert error.locator == "https://x"
        assert error.status_code == 500
        assert "https://x" in str(error)

    def test_discovery_error_causes(self):
        cause = SourceTransportError("u", "m")
        assert DiscoveryError("m", causes=[cause]).causes == [cause]
