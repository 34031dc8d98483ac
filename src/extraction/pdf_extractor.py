# src/extraction/pdf_extractor.py — v3
"""PDF extractor using PyMuPDF (fitz), wrapped in a resilience policy.

Extraction runs as an explicit state machine:

    Validating → Extracting → (Retrying → Extracting)* → FallingBack → Done

Every transition is recorded in ``ExtractionStats.transitions`` with the
error code that triggered it. Validation rejections and the last rung of
the fallback ladder produce placeholder results; with
``fallback_on_error`` enabled nothing here raises.

Requires the 'pymupdf' package.
"""

from __future__ import annotations

import asyncio
import logging
import re
import threading
import time
from datetime import datetime
from enum import Enum
from typing import Any

import fitz  # PyMuPDF

from lexingest.core.exceptions import ExtractionError, ExtractionErrorCode
from lexingest.core.models import (
    DocumentKind,
    ExtractionOptions,
    ExtractionResult,
    ExtractionStats,
    PageError,
    StateTransition,
)
from lexingest.extraction.base_extractor import BaseExtractor

logger = logging.getLogger(__name__)

PDF_SIGNATURE = b"%PDF"
PASSWORD_PROTECTED_MARKER = "[PASSWORD PROTECTED PDF]"
EXTRACTION_FAILED_MARKER = "[PDF EXTRACTION FAILED]"
METADATA_ONLY_MARKER = "[PDF METADATA ONLY]"

_PDF_DATE = re.compile(r"^D:(\d{4})(\d{2})?(\d{2})?(\d{2})?(\d{2})?(\d{2})?")


class PdfState(str, Enum):
    VALIDATING = "validating"
    EXTRACTING = "extracting"
    RETRYING = "retrying"
    FALLING_BACK = "falling_back"
    DONE = "done"


# (state, event) → next state
TRANSITIONS: dict[tuple[PdfState, str], PdfState] = {
    (PdfState.VALIDATING, "valid"): PdfState.EXTRACTING,
    (PdfState.VALIDATING, "rejected"): PdfState.DONE,
    (PdfState.EXTRACTING, "succeeded"): PdfState.DONE,
    (PdfState.EXTRACTING, "retryable_failure"): PdfState.RETRYING,
    (PdfState.EXTRACTING, "fatal_failure"): PdfState.FALLING_BACK,
    (PdfState.EXTRACTING, "retries_exhausted"): PdfState.FALLING_BACK,
    (PdfState.RETRYING, "delay_elapsed"): PdfState.EXTRACTING,
    (PdfState.FALLING_BACK, "recovered"): PdfState.DONE,
    (PdfState.FALLING_BACK, "abandoned"): PdfState.DONE,
}


class _Run:
    """Mutable state of one extraction walk through the machine."""

    def __init__(self) -> None:
        self.state = PdfState.VALIDATING
        self.stats = ExtractionStats()
        self.started = time.monotonic()

    def move(self, event: str, code: ExtractionErrorCode | None = None) -> None:
        target = TRANSITIONS[(self.state, event)]
        self.stats.transitions.append(StateTransition(
            source=self.state.value,
            target=target.value,
            code=code.value if code else None,
        ))
        logger.debug("PDF %s → %s (%s)", self.state.value, target.value, event)
        self.state = target

    def finish(self) -> ExtractionStats:
        self.stats.elapsed_ms = int((time.monotonic() - self.started) * 1000)
        return self.stats


class _PageRead:
    """Pages read by one worker-thread pass over a document."""

    def __init__(self, total_pages: int, pages_to_read: int) -> None:
        self.total_pages = total_pages
        self.pages_to_read = pages_to_read
        self.processed = 0
        self.texts: list[tuple[int, str]] = []
        self.errors: list[PageError] = []
        self.metadata: dict[str, Any] = {}


class PdfExtractor(BaseExtractor):
    """Extractor for PDF payloads using PyMuPDF."""

    @property
    def supported_kinds(self) -> list[DocumentKind]:
        return [DocumentKind.PDF]

    async def extract(
        self, payload: bytes, options: ExtractionOptions | None = None,
    ) -> ExtractionResult:
        """Run the validate/extract/retry/fallback machine over a PDF payload.

        Raises:
            ExtractionError: Only when ``options.fallback_on_error`` is False.
        """
        options = options or ExtractionOptions()
        run = _Run()

        try:
            await self._validate(payload, options)
        except ExtractionError as e:
            run.move("rejected", e.code)
            logger.warning("PDF rejected: %s", e)
            if not options.fallback_on_error:
                raise
            return self._rejected_result(e, run)
        run.move("valid")

        while True:
            run.stats.attempts += 1
            try:
                result = await asyncio.wait_for(
                    self._extract_pages(payload, options, run),
                    timeout=options.timeout_s,
                )
            except asyncio.TimeoutError:
                error = ExtractionError(
                    f"PDF extraction timed out after {options.timeout_s}s",
                    code=ExtractionErrorCode.TIMEOUT,
                )
            except ExtractionError as e:
                error = e
            else:
                run.move("succeeded")
                result.stats = run.finish()
                return result

            if not error.retryable:
                run.move("fatal_failure", error.code)
                break
            if run.stats.attempts > options.max_retries:
                run.move("retries_exhausted", error.code)
                break
            run.move("retryable_failure", error.code)
            logger.info(
                "PDF attempt %d failed (%s), retrying in %.1fs",
                run.stats.attempts, error.code.value, options.retry_delay_s,
            )
            await asyncio.sleep(options.retry_delay_s)
            run.move("delay_elapsed", error.code)

        logger.warning("PDF extraction failed after %d attempts: %s", run.stats.attempts, error)
        if not options.fallback_on_error:
            raise error
        return await self._fall_back(payload, options, run, error)

    # --- Validating ---

    async def _validate(self, payload: bytes, options: ExtractionOptions) -> None:
        if not payload:
            raise ExtractionError("PDF payload is empty", code=ExtractionErrorCode.EMPTY_FILE)
        if len(payload) > options.max_file_size:
            raise ExtractionError(
                f"PDF is {len(payload)} bytes (max {options.max_file_size})",
                code=ExtractionErrorCode.FILE_TOO_LARGE,
                details={"size": len(payload), "max_size": options.max_file_size},
            )
        if not payload.startswith(PDF_SIGNATURE):
            raise ExtractionError(
                "Payload lacks the %PDF signature",
                code=ExtractionErrorCode.INVALID_SIGNATURE,
            )
        if await asyncio.to_thread(self._needs_password, payload):
            raise ExtractionError(
                "PDF is password protected",
                code=ExtractionErrorCode.PASSWORD_PROTECTED,
            )

    @staticmethod
    def _needs_password(payload: bytes) -> bool:
        try:
            doc = fitz.open(stream=payload, filetype="pdf")
        except Exception:
            # Unopenable documents are classified during extraction.
            return False
        with doc:
            return bool(doc.needs_pass)

    # --- Extracting ---

    async def _extract_pages(
        self, payload: bytes, options: ExtractionOptions, run: _Run,
    ) -> ExtractionResult:
        stop = threading.Event()
        try:
            pages = await asyncio.to_thread(self._read_document, payload, options, stop)
        except asyncio.CancelledError:
            # The worker stops at the next page and closes the document itself.
            stop.set()
            raise
        return self._assemble(pages, options, run)

    def _read_document(
        self, payload: bytes, options: ExtractionOptions, stop: threading.Event,
    ) -> _PageRead:
        """Open the PDF and read its pages. Runs in a worker thread."""
        try:
            doc = fitz.open(stream=payload, filetype="pdf")
        except MemoryError as e:
            raise ExtractionError(
                "Out of memory opening PDF", code=ExtractionErrorCode.OUT_OF_MEMORY,
            ) from e
        except Exception as e:
            raise ExtractionError(
                f"PDF could not be opened: {e}", code=ExtractionErrorCode.CORRUPTED_PDF,
            ) from e

        with doc:
            if doc.needs_pass:
                raise ExtractionError(
                    "PDF is password protected", code=ExtractionErrorCode.PASSWORD_PROTECTED,
                )
            pages = _PageRead(doc.page_count, min(doc.page_count, options.max_pages))
            for index in range(pages.pages_to_read):
                if stop.is_set():
                    break
                page_number = index + 1
                try:
                    page_text = self._page_text(doc, index)
                except MemoryError as e:
                    raise ExtractionError(
                        f"Out of memory on page {page_number}",
                        code=ExtractionErrorCode.OUT_OF_MEMORY,
                    ) from e
                except Exception as e:
                    pages.errors.append(PageError(
                        page=page_number, error=str(e), type=classify_page_error(e),
                    ))
                    logger.debug("Page %d failed: %s", page_number, e)
                    continue
                pages.processed += 1
                pages.texts.append((page_number, page_text.strip()))
            pages.metadata = read_metadata(doc)
        return pages

    def _assemble(
        self, pages: _PageRead, options: ExtractionOptions, run: _Run,
    ) -> ExtractionResult:
        stats = run.stats
        stats.total_pages = pages.total_pages
        stats.processed_pages = pages.processed
        stats.page_errors = pages.errors

        if pages.pages_to_read and pages.processed == 0:
            raise ExtractionError(
                f"All {pages.pages_to_read} pages failed",
                code=ExtractionErrorCode.PAGE_ERROR,
                details={"page_errors": [p.model_dump() for p in pages.errors]},
            )

        parts: list[str] = []
        for page_number, page_text in pages.texts:
            if not page_text:
                continue
            if options.include_page_markers:
                parts.append(options.page_delimiter.format(page=page_number) + page_text)
            else:
                parts.append(page_text)

        separator = "" if options.include_page_markers else "\n\n"
        text = separator.join(parts).strip()
        stats.total_characters = len(text)
        if stats.processed_pages:
            stats.average_chars_per_page = stats.total_characters // stats.processed_pages

        warning = None
        if pages.total_pages > pages.pages_to_read:
            warning = (
                f"Only the first {pages.pages_to_read} of {pages.total_pages} pages were processed"
            )
        elif pages.errors:
            warning = f"{len(pages.errors)} page(s) could not be extracted"

        return ExtractionResult(
            text=text,
            kind=DocumentKind.PDF,
            metadata=pages.metadata,
            warning=warning,
        )

    @staticmethod
    def _page_text(doc: Any, index: int) -> str:
        return doc.load_page(index).get_text("text")

    # --- Falling back ---

    async def _fall_back(
        self,
        payload: bytes,
        options: ExtractionOptions,
        run: _Run,
        error: ExtractionError,
    ) -> ExtractionResult:
        try:
            first_page = await asyncio.wait_for(
                asyncio.to_thread(self._first_page_text, payload),
                timeout=options.timeout_s,
            )
        except Exception as e:
            logger.debug("First-page fallback failed: %s", e)
            first_page = ""
        if first_page.strip():
            run.move("recovered", error.code)
            text = first_page.strip()
            if options.include_page_markers:
                text = options.page_delimiter.format(page=1).lstrip() + text
            stats = run.finish()
            stats.processed_pages = 1
            stats.total_characters = len(text)
            stats.average_chars_per_page = len(text)
            return ExtractionResult(
                text=text,
                kind=DocumentKind.PDF,
                stats=stats,
                fallback=True,
                fallback_strategy="first_page_only",
                warning=f"Only the first page could be extracted. {error.user_message()}",
                error_code=error.code.value,
            )

        try:
            metadata = await asyncio.to_thread(self._metadata_only, payload)
        except Exception as e:
            logger.debug("Metadata fallback failed: %s", e)
            metadata = None
        if metadata is not None:
            run.move("recovered", error.code)
            text = metadata_placeholder(metadata)
            return ExtractionResult(
                text=text,
                kind=DocumentKind.PDF,
                metadata=metadata,
                stats=run.finish(),
                fallback=True,
                fallback_strategy="metadata_only",
                warning=f"Only document metadata could be read. {error.user_message()}",
                error_code=error.code.value,
            )

        run.move("abandoned", error.code)
        return ExtractionResult(
            text=f"{EXTRACTION_FAILED_MARKER} {error.user_message()}",
            kind=DocumentKind.PDF,
            stats=run.finish(),
            success=False,
            fallback=True,
            fallback_strategy="error_message",
            warning=error.user_message(),
            error_code=error.code.value,
        )

    @staticmethod
    def _first_page_text(payload: bytes) -> str:
        with fitz.open(stream=payload, filetype="pdf") as doc:
            if doc.needs_pass or doc.page_count == 0:
                return ""
            return doc.load_page(0).get_text("text")

    @staticmethod
    def _metadata_only(payload: bytes) -> dict[str, Any]:
        with fitz.open(stream=payload, filetype="pdf") as doc:
            return read_metadata(doc)

    @staticmethod
    def _rejected_result(error: ExtractionError, run: _Run) -> ExtractionResult:
        if error.code == ExtractionErrorCode.PASSWORD_PROTECTED:
            text = f"{PASSWORD_PROTECTED_MARKER} {error.user_message()}"
        else:
            text = f"{EXTRACTION_FAILED_MARKER} {error.user_message()}"
        return ExtractionResult(
            text=text,
            kind=DocumentKind.PDF,
            metadata=dict(error.details),
            stats=run.finish(),
            success=False,
            fallback=True,
            fallback_strategy="rejected",
            warning=error.user_message(),
            error_code=error.code.value,
        )


def classify_page_error(error: BaseException) -> str:
    """Map a page failure to its PageError type."""
    if isinstance(error, MemoryError):
        return "MEMORY_ERROR"
    if isinstance(error, TimeoutError):
        return "TIMEOUT_ERROR"
    message = str(error).lower()
    if "password" in message or "encrypt" in message:
        return "ENCRYPTION_ERROR"
    if "memory" in message:
        return "MEMORY_ERROR"
    if "timeout" in message or "timed out" in message:
        return "TIMEOUT_ERROR"
    if "corrupt" in message or "damaged" in message or "invalid" in message:
        return "CORRUPTED_PAGE"
    return "UNKNOWN_ERROR"


def parse_pdf_date(value: str | None) -> str | None:
    """``D:YYYYMMDDHHmmSS...`` → ISO-8601, or None when unparseable."""
    if not value:
        return None
    match = _PDF_DATE.match(value.strip())
    if not match:
        return None
    year, month, day, hour, minute, second = (
        int(g) if g else default
        for g, default in zip(match.groups(), (0, 1, 1, 0, 0, 0))
    )
    try:
        return datetime(year, month, day, hour, minute, second).isoformat()
    except ValueError:
        return None


def read_metadata(doc: Any) -> dict[str, Any]:
    """Document-level metadata with empty values dropped."""
    raw = doc.metadata or {}
    metadata: dict[str, Any] = {
        "page_count": doc.page_count,
        "title": raw.get("title"),
        "author": raw.get("author"),
        "subject": raw.get("subject"),
        "creator": raw.get("creator"),
        "producer": raw.get("producer"),
        "creation_date": parse_pdf_date(raw.get("creationDate")),
        "modification_date": parse_pdf_date(raw.get("modDate")),
        "pdf_version": raw.get("format"),
    }
    return {k: v for k, v in metadata.items() if v not in (None, "")}


def metadata_placeholder(metadata: dict[str, Any]) -> str:
    lines = [METADATA_ONLY_MARKER, f"Pages: {metadata.get('page_count', 'unknown')}"]
    if metadata.get("title"):
        lines.append(f"Title: {metadata['title']}")
    if metadata.get("author"):
        lines.append(f"Author: {metadata['author']}")
    lines.append("The document text could not be extracted.")
    return "\n".join(lines)
