# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides a controllable clock, in-memory caches, sample descriptors and
PDF payloads. No network — sources are scripted (see fakes.py).
"""

from __future__ import annotations

import pytest

from fakes import (
    FakeClock,
    make_descriptor,
    make_encrypted_pdf,
    make_pdf,
    make_processed,
)
from lexingest.cache.document_cache import DocumentCache
from lexingest.cache.memory_store import MemoryCacheStore
from lexingest.core.models import DocumentDescriptor, ProcessedDocument


# === FIXTURES ===


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store() -> MemoryCacheStore:
    return MemoryCacheStore()


@pytest.fixture
def document_cache(memory_store: MemoryCacheStore, clock: FakeClock) -> DocumentCache:
    return DocumentCache(store=memory_store, ttl_s=60, clock=clock)


@pytest.fixture
def sample_descriptor() -> DocumentDescriptor:
    return make_descriptor()


@pytest.fixture
def sample_processed() -> ProcessedDocument:
    return make_processed()


@pytest.fixture
def simple_pdf() -> bytes:
    return make_pdf(
        ["First page of the petition", "Second page with the request"],
        metadata={"title": "Petição Inicial", "author": "Advogado",
                  "creationDate": "D:20240115103000"},
    )


@pytest.fixture
def encrypted_pdf() -> bytes:
    return make_encrypted_pdf()
