# src/ingestion/orchestrator.py — v2
"""Ingestion orchestrator: discovery → batched download → extraction → cache.

Documents are processed in batches sized to the concurrency limit, with a
delay between batches. One document's failure never aborts its batch;
discovery transport failures propagate to the caller. There is no retry at
this level.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Awaitable, Callable

from lexingest.cache.document_cache import DocumentCache
from lexingest.config.settings import Settings
from lexingest.core.exceptions import DiscoveryError, DownloadError, ExtractionError
from lexingest.core.models import (
    DocumentDescriptor,
    DocumentKind,
    ExtractionOptions,
    ExtractionResult,
    IngestionOptions,
    ProcessedDocument,
    ProcessingOutcome,
    ProgressEvent,
    utc_now,
)
from lexingest.discovery.engine import DiscoveryEngine
from lexingest.extraction.extractor_factory import extract
from lexingest.extraction.kind_detector import detect_document_kind
from lexingest.ingestion.session import AnalysisSession
from lexingest.logging.context import set_document_context, set_run_context, set_stage
from lexingest.source.base_source import BaseSourceCollaborator

logger = logging.getLogger(__name__)

ProgressObserver = Callable[[ProgressEvent], None]
BatchObserver = Callable[[list[ProcessedDocument]], None]
ExtractFn = Callable[[bytes, DocumentKind, ExtractionOptions], Awaitable[ExtractionResult]]

TOO_LARGE_MARKER = "[DOCUMENT TOO LARGE]"
DISABLED_MARKER = "[DOCUMENT NOT PROCESSED]"
DOWNLOAD_FAILED_MARKER = "[DOWNLOAD FAILED]"


def options_from_settings(settings: Settings) -> IngestionOptions:
    """Per-run options derived from application settings."""
    return IngestionOptions(
        concurrency_limit=settings.concurrency_limit,
        inter_batch_delay_ms=settings.inter_batch_delay_ms,
        max_document_size_bytes=settings.max_document_size_bytes,
        cache_enabled=settings.cache_enabled,
        process_pdfs=settings.process_pdfs,
        process_images=settings.process_images,
        process_html=settings.process_html,
        extraction=ExtractionOptions(
            timeout_s=settings.pdf_timeout_s,
            max_retries=settings.pdf_max_retries,
            retry_delay_s=settings.pdf_retry_delay_s,
            max_file_size=settings.pdf_max_file_size_bytes,
            max_pages=settings.pdf_max_pages,
            fallback_on_error=settings.pdf_fallback_on_error,
            include_page_markers=settings.pdf_include_page_markers,
        ),
    )


def _format_mb(size: int) -> str:
    return f"{size / (1024 * 1024):.1f} MB"


class IngestionOrchestrator:
    """Coordinates discovery, downloads, extraction and cache for one case.

    Args:
        settings: Application settings (defaults for options and discovery).
        discovery: Discovery engine; built from settings when omitted.
        cache: Document cache; None disables caching regardless of options.
        extractor: Extraction entry point (injectable for tests).
    """

    def __init__(
        self,
        settings: Settings | None = None,
        discovery: DiscoveryEngine | None = None,
        cache: DocumentCache | None = None,
        extractor: ExtractFn = extract,
    ) -> None:
        self._settings = settings or Settings(_env_file=None)
        self._discovery = discovery or DiscoveryEngine(self._settings)
        self._cache = cache
        self._extract = extractor
        self._progress_observers: list[ProgressObserver] = []
        self._batch_observers: list[BatchObserver] = []

    @property
    def discovery(self) -> DiscoveryEngine:
        return self._discovery

    def on_progress(self, observer: ProgressObserver) -> None:
        """Register a callback receiving a ProgressEvent after every document."""
        self._progress_observers.append(observer)

    def on_batch_complete(self, observer: BatchObserver) -> None:
        """Register a callback receiving each finished batch's documents."""
        self._batch_observers.append(observer)

    async def run(
        self,
        source: BaseSourceCollaborator,
        options: IngestionOptions | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> AnalysisSession:
        """Ingest every document of the case exposed by ``source``.

        Raises:
            DiscoveryError: If discovery fails at transport level.
        """
        options = options or options_from_settings(self._settings)
        cancel_event = cancel_event or asyncio.Event()

        case_id = await source.case_identifier()
        session = AnalysisSession(case_id=case_id, run_id=uuid.uuid4().hex[:12])
        set_run_context(case_id, session.run_id)
        session.start()
        logger.info("Ingestion run started")

        try:
            descriptors = await self._discovery.discover_all(source)
        except DiscoveryError as e:
            session.finish("error", str(e))
            logger.error("Discovery failed: %s", e)
            raise

        session.total = len(descriptors)
        session.status = "processing"
        set_stage("processing")

        runner = _BatchRunner(self, session, source, options, cancel_event)
        cancelled = await runner.run_all(descriptors)

        session.finish("cancelled" if cancelled else "completed")
        stats = session.statistics()
        logger.info(
            "Ingestion run %s: %d total, %d processed (%d cached), %d skipped, %d errors in %dms",
            session.status, stats.total, stats.processed, stats.cached,
            stats.skipped, stats.errors, stats.elapsed_ms,
        )
        return session

    # --- Per document ---

    async def process_document(
        self,
        source: BaseSourceCollaborator,
        descriptor: DocumentDescriptor,
        options: IngestionOptions,
    ) -> ProcessedDocument:
        """Cache → download → size check → classify → extract → cache. Never raises."""
        use_cache = options.cache_enabled and self._cache is not None

        if use_cache:
            set_document_context(descriptor.id, "cache")
            cached = await self._cache.get(descriptor.id)
            if cached is not None:
                logger.debug("Cache hit")
                return cached.model_copy(update={
                    "descriptor": descriptor,
                    "outcome": ProcessingOutcome.CACHED,
                    "processed_at": utc_now(),
                })

        set_document_context(descriptor.id, "download")
        try:
            payload = await source.download(descriptor.locator)
        except Exception as e:
            error = DownloadError(descriptor.id, e)
            logger.warning("%s", error)
            return ProcessedDocument(
                descriptor=descriptor,
                text=f"{DOWNLOAD_FAILED_MARKER} {descriptor.name}",
                outcome=ProcessingOutcome.ERROR,
                error=str(error),
            )

        if payload.size > options.max_document_size_bytes:
            logger.warning(
                "Document is %s, over the %s ceiling",
                _format_mb(payload.size), _format_mb(options.max_document_size_bytes),
            )
            return ProcessedDocument(
                descriptor=descriptor,
                text=(
                    f"{TOO_LARGE_MARKER} {descriptor.name} ({_format_mb(payload.size)}) "
                    f"exceeds the {_format_mb(options.max_document_size_bytes)} limit "
                    "and was not processed."
                ),
                size_bytes=payload.size,
                metadata={"content_type": payload.content_type},
                outcome=ProcessingOutcome.SKIPPED_TOO_LARGE,
                warning="Document too large",
            )

        kind = detect_document_kind(descriptor.locator, payload.content_type)
        if not _kind_enabled(kind, options):
            logger.info("Processing of %s documents is disabled", kind.value)
            return ProcessedDocument(
                descriptor=descriptor,
                text=f"{DISABLED_MARKER} Processing of {kind.value} documents is disabled.",
                extraction_kind=kind,
                size_bytes=payload.size,
                metadata={"content_type": payload.content_type},
                outcome=ProcessingOutcome.SKIPPED_DISABLED,
            )

        set_document_context(descriptor.id, "extraction")
        try:
            result = await self._extract(payload.content, kind, options.extraction)
        except ExtractionError as e:
            logger.warning("Extraction failed (%s): %s", e.code.value, e)
            return ProcessedDocument(
                descriptor=descriptor,
                text=e.user_message(),
                extraction_kind=kind,
                size_bytes=payload.size,
                metadata={"content_type": payload.content_type},
                outcome=ProcessingOutcome.ERROR,
                error=f"{e.code.value}: {e}",
            )
        except Exception as e:
            logger.warning("Extraction failed: %s", e, exc_info=True)
            return ProcessedDocument(
                descriptor=descriptor,
                text="An error occurred during text extraction.",
                extraction_kind=kind,
                size_bytes=payload.size,
                outcome=ProcessingOutcome.ERROR,
                error=str(e),
            )

        metadata = dict(result.metadata)
        metadata["content_type"] = payload.content_type
        if result.fallback_strategy:
            metadata["fallback_strategy"] = result.fallback_strategy
        document = ProcessedDocument(
            descriptor=descriptor,
            text=result.text,
            extraction_kind=result.kind,
            size_bytes=payload.size,
            metadata=metadata,
            outcome=ProcessingOutcome.OK if result.success else ProcessingOutcome.ERROR,
            warning=result.warning,
            error=None if result.success else (result.error_code or "extraction failed"),
        )

        if result.warning:
            logger.warning("Extraction warning: %s", result.warning)
        if use_cache and document.outcome == ProcessingOutcome.OK:
            set_stage("cache")
            try:
                await self._cache.set(descriptor.id, document)
            except Exception as e:
                logger.warning("Cache write failed, continuing uncached: %s", e)
        return document

    def _notify_progress(self, event: ProgressEvent) -> None:
        for observer in self._progress_observers:
            try:
                observer(event)
            except Exception:
                logger.warning("Progress observer failed", exc_info=True)

    def _notify_batch(self, documents: list[ProcessedDocument]) -> None:
        for observer in self._batch_observers:
            try:
                observer(documents)
            except Exception:
                logger.warning("Batch observer failed", exc_info=True)


def _kind_enabled(kind: DocumentKind, options: IngestionOptions) -> bool:
    if kind == DocumentKind.PDF:
        return options.process_pdfs
    if kind == DocumentKind.IMAGE:
        return options.process_images
    return options.process_html


class _BatchRunner:
    """Bounded-parallel batch loop of one run."""

    def __init__(
        self,
        orchestrator: IngestionOrchestrator,
        session: AnalysisSession,
        source: BaseSourceCollaborator,
        options: IngestionOptions,
        cancel_event: asyncio.Event,
    ) -> None:
        self._orchestrator = orchestrator
        self._session = session
        self._source = source
        self._options = options
        self._cancel = cancel_event
        self._semaphore = asyncio.Semaphore(options.concurrency_limit)
        self._completed = 0

    async def run_all(self, descriptors: list[DocumentDescriptor]) -> bool:
        """Process every batch. Returns True if the run was cancelled."""
        size = self._options.concurrency_limit
        batches = [descriptors[i:i + size] for i in range(0, len(descriptors), size)]

        for index, batch in enumerate(batches):
            if index > 0 and self._options.inter_batch_delay_ms:
                await asyncio.sleep(self._options.inter_batch_delay_ms / 1000)
            if self._cancel.is_set():
                logger.info("Run cancelled before batch %d/%d", index + 1, len(batches))
                return True

            logger.debug("Batch %d/%d: %d documents", index + 1, len(batches), len(batch))
            results = await asyncio.gather(*(self._run_one(d) for d in batch))
            finished = [r for r in results if r is not None]
            self._orchestrator._notify_batch(finished)

        return self._cancel.is_set() and self._completed < len(descriptors)

    async def _run_one(self, descriptor: DocumentDescriptor) -> ProcessedDocument | None:
        async with self._semaphore:
            if self._cancel.is_set():
                return None
            document = await self._orchestrator.process_document(
                self._source, descriptor, self._options,
            )
            self._session.add(document)
            self._completed += 1
            self._orchestrator._notify_progress(ProgressEvent(
                processed=self._completed,
                total=self._session.total,
                current_descriptor=descriptor,
            ))
            return document
