# src/extraction/kind_detector.py — v1
"""Document kind detection from locator patterns, content type and names."""

from __future__ import annotations

import re

from lexingest.core.models import DocumentKind

_PDF_SUFFIX = re.compile(r"\.pdf(\?|$)", re.IGNORECASE)
_IMAGE_SUFFIX = re.compile(r"\.(jpg|jpeg|png|tiff|tif|bmp|gif|webp)(\?|$)", re.IGNORECASE)
_IMAGE_ANYWHERE = re.compile(r"\.(jpg|jpeg|png|tiff|tif|bmp|gif)", re.IGNORECASE)


def is_pdf(locator: str, content_type: str = "") -> bool:
    if content_type and "application/pdf" in content_type.lower():
        return True
    if locator and _PDF_SUFFIX.search(locator):
        return True
    return bool(locator) and "/documento/" in locator and "pdf" in locator.lower()


def is_image(locator: str, content_type: str = "") -> bool:
    if content_type and content_type.lower().startswith("image/"):
        return True
    return bool(locator) and bool(_IMAGE_SUFFIX.search(locator))


def is_plain_text(content_type: str) -> bool:
    return bool(content_type) and content_type.lower().startswith("text/plain")


def detect_document_kind(locator: str, content_type: str = "") -> DocumentKind:
    """Classify a downloaded payload: PDF, then IMAGE, then TEXT, else HTML."""
    if is_pdf(locator, content_type):
        return DocumentKind.PDF
    if is_image(locator, content_type):
        return DocumentKind.IMAGE
    if is_plain_text(content_type):
        return DocumentKind.TEXT
    return DocumentKind.HTML


def infer_declared_kind(locator: str, name: str) -> DocumentKind:
    """Best-effort kind of a descriptor before anything is downloaded."""
    locator_lower = (locator or "").lower()
    name_lower = (name or "").lower()
    if ".pdf" in locator_lower or "pdf" in name_lower:
        return DocumentKind.PDF
    if _IMAGE_ANYWHERE.search(locator_lower) or _IMAGE_ANYWHERE.search(name_lower):
        return DocumentKind.IMAGE
    if name_lower.endswith((".html", ".htm")):
        return DocumentKind.HTML
    return DocumentKind.UNKNOWN
