# src/ingestion/session.py — v1
"""Analysis session: the Processed Documents of one orchestrator run.

Mutated only by the orchestrator that owns it. Documents are kept in
completion order; use ``sorted_documents`` for a stable order.
"""

from __future__ import annotations

import time
from collections import defaultdict

from lexingest.core.models import (
    DocumentFailure,
    ProcessedDocument,
    ProcessingOutcome,
    SessionStatistics,
    SessionStatus,
)

_TERMINAL: frozenset[str] = frozenset({"completed", "cancelled", "error"})


class AnalysisSession:
    """Run-level container for Processed Documents and statistics."""

    def __init__(self, case_id: str | None = None, run_id: str | None = None) -> None:
        self.case_id = case_id
        self.run_id = run_id
        self.status: SessionStatus = "idle"
        self.total = 0
        self.error_message: str | None = None
        self._documents: list[ProcessedDocument] = []
        self._by_id: dict[str, ProcessedDocument] = {}
        self._failures: list[DocumentFailure] = []
        self._started: float | None = None
        self._finished: float | None = None

    # --- Orchestrator side ---

    def start(self) -> None:
        self._started = time.monotonic()
        self.status = "discovering"

    def add(self, document: ProcessedDocument) -> None:
        self._documents.append(document)
        self._by_id[document.id] = document
        if document.outcome == ProcessingOutcome.ERROR:
            self._failures.append(DocumentFailure(
                document_id=document.id,
                error=document.error or document.warning or "unknown error",
            ))

    def finish(self, status: SessionStatus, error_message: str | None = None) -> None:
        self.status = status
        self.error_message = error_message
        self._finished = time.monotonic()

    # --- Consumer side ---

    @property
    def is_terminal(self) -> bool:
        return self.status in _TERMINAL

    @property
    def documents(self) -> list[ProcessedDocument]:
        return list(self._documents)

    @property
    def failures(self) -> list[DocumentFailure]:
        return list(self._failures)

    @property
    def elapsed_ms(self) -> int:
        if self._started is None:
            return 0
        end = self._finished if self._finished is not None else time.monotonic()
        return int((end - self._started) * 1000)

    def get_document(self, document_id: str) -> ProcessedDocument | None:
        return self._by_id.get(document_id)

    def search(self, term: str) -> list[ProcessedDocument]:
        """Documents whose name or text contains ``term`` (case-insensitive)."""
        needle = term.lower()
        return [
            d for d in self._documents
            if needle in d.descriptor.name.lower() or needle in d.text.lower()
        ]

    def sorted_documents(self) -> list[ProcessedDocument]:
        """Documents by discovery timestamp, then id."""
        return sorted(
            self._documents,
            key=lambda d: (d.descriptor.discovered_at, d.descriptor.id),
        )

    def documents_by_outcome(self) -> dict[ProcessingOutcome, list[ProcessedDocument]]:
        grouped: dict[ProcessingOutcome, list[ProcessedDocument]] = defaultdict(list)
        for document in self._documents:
            grouped[document.outcome].append(document)
        return dict(grouped)

    def statistics(self) -> SessionStatistics:
        """Aggregate counts: processed = ok + cached; skipped = both skip kinds."""
        counts: dict[ProcessingOutcome, int] = defaultdict(int)
        for document in self._documents:
            counts[document.outcome] += 1
        return SessionStatistics(
            total=self.total,
            processed=counts[ProcessingOutcome.OK] + counts[ProcessingOutcome.CACHED],
            cached=counts[ProcessingOutcome.CACHED],
            skipped=(
                counts[ProcessingOutcome.SKIPPED_TOO_LARGE]
                + counts[ProcessingOutcome.SKIPPED_DISABLED]
            ),
            errors=counts[ProcessingOutcome.ERROR],
            elapsed_ms=self.elapsed_ms,
        )
