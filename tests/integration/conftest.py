# tests/integration/conftest.py — v8
"""Shared fixtures for integration tests.

No external services: the portal is an httpx MockTransport serving scripted
markup and PDFs, caches live in memory or under tmp_path.
"""

from __future__ import annotations

from typing import Callable

import httpx
import pytest
import pytest_asyncio

from fakes import BASE_URL, VIEW_PATH, documents_table, make_pdf
from lexingest.config.settings import Settings
from lexingest.core.models import ExtractionOptions, IngestionOptions
from lexingest.logging.context import clear_context


CASE_ID = "4321"
CASE_PAGE = f"{BASE_URL}/pje/Processo/ConsultaProcesso/Detalhe/detalhe.seam?idProcesso={CASE_ID}"


# ── Pytest markers ──────────────────────────────────────────────

def pytest_configure(config):
    config.addinivalue_line("markers", "portal: tests driving the mock HTTP portal")


# =====================================================================
#  MOCK PORTAL
# =====================================================================


class MockPortal:
    """Scripted case-management portal.

    Args:
        pages: Documents-table pages, each a list of ``(id, name)`` rows.
        case_markup: Markup of the case page (no document links by default).
        broken_pages: Page numbers answering HTTP 503.
    """

    def __init__(
        self,
        pages: list[list[tuple[str, str]]],
        case_markup: str | None = None,
        broken_pages: set[int] | None = None,
    ) -> None:
        self.pages = pages
        self.case_markup = case_markup or (
            "<html><body><h1>Processo 0801234-56.2023.8.20.5001</h1></body></html>"
        )
        self.broken_pages = broken_pages or set()
        self.requests: list[httpx.Request] = []
        self.pdf_pages: dict[str, list[str]] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        params = request.url.params
        if "idProcessoDocumento" in params:
            doc_id = params["idProcessoDocumento"]
            pages = self.pdf_pages.get(doc_id, [f"Conteudo do documento {doc_id}"])
            return httpx.Response(
                200, content=make_pdf(pages), headers={"content-type": "application/pdf"},
            )
        if request.url.path == VIEW_PATH:
            page = int(params.get("page", "1"))
            if page in self.broken_pages:
                return httpx.Response(503)
            if page > len(self.pages):
                return httpx.Response(404)
            return httpx.Response(
                200, text=documents_table(self.pages[page - 1], page_count=len(self.pages)),
            )
        if request.url.path.endswith("detalhe.seam"):
            return httpx.Response(200, text=self.case_markup)
        return httpx.Response(404)

    def download_count(self) -> int:
        return sum(1 for r in self.requests if "idProcessoDocumento" in r.url.params)


@pytest.fixture
def portal_factory() -> Callable[..., MockPortal]:
    return MockPortal


@pytest_asyncio.fixture
async def client_for():
    """Build httpx clients bound to a MockPortal; closed at teardown."""
    clients: list[httpx.AsyncClient] = []

    def build(portal: MockPortal) -> httpx.AsyncClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(portal.handler))
        clients.append(client)
        return client

    yield build
    for client in clients:
        await client.aclose()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        inter_batch_delay_ms=0,
        navigation_timeout_s=0.2,
        navigation_poll_interval_s=0.01,
        cache_backend="memory",
    )


@pytest.fixture
def fast_options() -> IngestionOptions:
    return IngestionOptions(
        inter_batch_delay_ms=0, extraction=ExtractionOptions(retry_delay_s=0),
    )


@pytest.fixture(autouse=True)
def _reset_log_context():
    yield
    clear_context()


@pytest.fixture
def case_page() -> str:
    return CASE_PAGE
