# tests/integration/discovery/test_int_http_portal.py — v1
"""Discovery and ingestion through the httpx collaborator against a mock portal.

Coverage targets: http_source.py, markup.py, discovery/*, orchestrator.py
"""

from __future__ import annotations

import pytest

from lexingest.core.exceptions import DiscoveryError
from lexingest.core.models import ProcessingOutcome
from lexingest.discovery.engine import DiscoveryEngine
from lexingest.ingestion.orchestrator import IngestionOrchestrator
from lexingest.source.http_source import HttpSourceCollaborator

pytestmark = pytest.mark.portal


async def _source(client, case_page: str) -> HttpSourceCollaborator:
    source = HttpSourceCollaborator(client, case_page)
    await source.load_page()
    return source


class TestPaginatedPortal:
    @pytest.mark.asyncio
    async def test_all_pages_discovered(self, portal_factory, client_for, case_page, settings):
        portal = portal_factory([
            [("1", "a.pdf"), ("2", "b.pdf")],
            [("3", "c.pdf"), ("2", "b.pdf")],
            [("4", "d.pdf")],
        ])
        source = await _source(client_for(portal), case_page)
        engine = DiscoveryEngine(settings)
        descriptors = await engine.discover_all(source)

        assert [d.id for d in descriptors] == ["1", "2", "3", "4"]
        assert engine.statistics()["by_source"] == {"out-of-band": 2, "paginated-table": 2}
        assert descriptors[0].provenance["case_number"] == "0801234-56.2023.8.20.5001"

    @pytest.mark.asyncio
    async def test_broken_later_page_keeps_first(self, portal_factory, client_for, case_page, settings):
        portal = portal_factory([[("1", "a.pdf")], [("2", "b.pdf")]], broken_pages={2})
        source = await _source(client_for(portal), case_page)
        descriptors = await DiscoveryEngine(settings).discover_all(source)
        assert [d.id for d in descriptors] == ["1"]

    @pytest.mark.asyncio
    async def test_unreachable_view_raises(self, portal_factory, client_for, case_page, settings):
        portal = portal_factory([[("1", "a.pdf")]], broken_pages={1})
        source = await _source(client_for(portal), case_page)
        with pytest.raises(DiscoveryError):
            await DiscoveryEngine(settings).discover_all(source)


class TestGuidedPortal:
    @pytest.mark.asyncio
    async def test_documents_link_followed_and_restored(
        self, portal_factory, client_for, case_page, settings,
    ):
        markup = (
            "<html><body><p>Processo 0801234-56.2023.8.20.5001</p>"
            '<a href="/pje/Processo/ConsultaDocumento/listView.seam?idProcesso=4321">Documentos</a>'
            "</body></html>"
        )
        portal = portal_factory([[("7", "g.pdf")]], case_markup=markup)
        source = await _source(client_for(portal), case_page)
        descriptors = await DiscoveryEngine(settings).discover_all(source)

        assert [d.source for d in descriptors] == ["guided-navigation"]
        assert source.page_url == case_page


class TestFullRun:
    @pytest.mark.asyncio
    async def test_ingest_over_http(
        self, portal_factory, client_for, case_page, settings, fast_options,
    ):
        portal = portal_factory([[("1", "a.pdf"), ("2", "b.pdf")], [("3", "c.pdf")]])
        portal.pdf_pages["2"] = ["Primeira folha", "Segunda folha"]
        source = await _source(client_for(portal), case_page)

        session = await IngestionOrchestrator(settings).run(source, fast_options)

        assert session.case_id == "4321"
        assert session.statistics().processed == 3
        assert portal.download_count() == 3
        doc = session.get_document("2")
        assert doc.outcome == ProcessingOutcome.OK
        assert "--- Page 2 ---" in doc.text
        assert "Segunda folha" in doc.text
        assert doc.metadata["page_count"] == 2
