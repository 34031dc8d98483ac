# tests/unit/source/test_unit_http_source.py — v1
"""Tests for source/http_source.py — httpx collaborator over a mock transport."""

from __future__ import annotations

import httpx
import pytest
import pytest_asyncio

from lexingest.core.exceptions import SourceTransportError
from lexingest.source.http_source import HttpSourceCollaborator

BASE = "https://pje.example.jus.br"
CASE_PAGE = f"{BASE}/pje/Processo/ConsultaProcesso/Detalhe/detalhe.seam?idProcesso=4321"

CASE_MARKUP = """
<html><body><p>Processo 0801234-56.2023.8.20.5001</p>
<a href="/pje/Processo/ConsultaDocumento/listView.seam?idProcesso=4321">Documentos</a>
</body></html>
"""
VIEW_MARKUP = """
<html><body><table><tr><td>1</td><td>Petição</td><td>01/02/2024</td>
<td><a href="/pje/x.seam?idProcessoDocumento=10&nomeArqProcDocBin=a.pdf">a.pdf</a></td></tr>
</table></body></html>
"""


def _handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path.endswith("detalhe.seam"):
        return httpx.Response(200, text=CASE_MARKUP)
    if path.endswith("listView.seam"):
        return httpx.Response(200, text=VIEW_MARKUP)
    if path.endswith("download.pdf"):
        return httpx.Response(200, content=b"%PDF-1.4 data", headers={"content-type": "application/pdf"})
    return httpx.Response(404)


@pytest_asyncio.fixture
async def client():
    async with httpx.AsyncClient(transport=httpx.MockTransport(_handler)) as c:
        yield c


class TestHttpSourceCollaborator:
    @pytest.mark.asyncio
    async def test_probe_on_case_page(self, client):
        source = HttpSourceCollaborator(client, CASE_PAGE)
        await source.load_page()
        assert await source.probe_discovery_state() is False
        assert await source.case_identifier() == "4321"
        assert await source.case_number() == "0801234-56.2023.8.20.5001"
        assert source.base_url == BASE

    @pytest.mark.asyncio
    async def test_navigate_and_back(self, client):
        source = HttpSourceCollaborator(client, CASE_PAGE)
        await source.load_page()
        assert await source.navigate_to_documents_view() is True
        assert await source.probe_discovery_state() is True
        anchors = await source.query_document_anchors()
        assert anchors[0].identity_param == "10"

        await source.navigate_back()
        assert source.page_url == CASE_PAGE
        assert await source.probe_discovery_state() is False

    @pytest.mark.asyncio
    async def test_out_of_band_keeps_current_page(self, client):
        source = HttpSourceCollaborator(client, CASE_PAGE)
        await source.load_page()
        markup = await source.retrieve_out_of_band(
            f"{BASE}/pje/Processo/ConsultaDocumento/listView.seam?idProcesso=4321"
        )
        assert "idProcessoDocumento=10" in markup
        assert source.page_url == CASE_PAGE
        assert await source.probe_discovery_state() is False

    @pytest.mark.asyncio
    async def test_download(self, client):
        source = HttpSourceCollaborator(client, CASE_PAGE)
        payload = await source.download(f"{BASE}/files/download.pdf")
        assert payload.content.startswith(b"%PDF")
        assert payload.content_type == "application/pdf"
        assert payload.size == len(b"%PDF-1.4 data")

    @pytest.mark.asyncio
    async def test_http_error_raises_transport_error(self, client):
        source = HttpSourceCollaborator(client, CASE_PAGE)
        with pytest.raises(SourceTransportError) as info:
            await source.retrieve_out_of_band(f"{BASE}/missing")
        assert info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_network_error_raises_transport_error(self):
        def fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(fail)) as c:
            source = HttpSourceCollaborator(c, CASE_PAGE)
            with pytest.raises(SourceTransportError, match="Request failed"):
                await source.download(f"{BASE}/x.pdf")
