# src/logging/context.py — v1
"""Contextual logging support — attach case_id, run_id, document_id, stage to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per run and per document.
_case_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "case_id", default=None
)
_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_document_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "document_id", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    case_id: str | None = None
    run_id: str | None = None
    document_id: str | None = None
    stage: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        case_id=_case_id.get(),
        run_id=_run_id.get(),
        document_id=_document_id.get(),
        stage=_stage.get(),
    )


def set_run_context(case_id: str | None, run_id: str) -> None:
    """Set run-level context (called once per ingestion run)."""
    _case_id.set(case_id)
    _run_id.set(run_id)


def set_document_context(document_id: str | None, stage: str | None = None) -> None:
    """Set document-level context.

    Each in-flight document runs in its own asyncio task, so values set here
    do not leak into sibling documents.
    """
    _document_id.set(document_id)
    _stage.set(stage)


def set_stage(stage: str | None) -> None:
    _stage.set(stage)


def clear_context() -> None:
    """Reset all context variables."""
    _case_id.set(None)
    _run_id.set(None)
    _document_id.set(None)
    _stage.set(None)
