# src/source/http_source.py — v1
"""HTTP source collaborator over an already-authenticated httpx session.

The "current page" is the last markup loaded through ``load_page`` or guided
navigation. Out-of-band retrieval and downloads never replace it.
Requires the 'httpx' and 'beautifulsoup4' packages.
"""

from __future__ import annotations

import logging
from urllib.parse import urljoin, urlsplit

import httpx

from lexingest.core.exceptions import SourceTransportError
from lexingest.source.base_source import BaseSourceCollaborator
from lexingest.source.markup import (
    extract_case_identifier,
    extract_case_number,
    find_documents_view_link,
    has_document_anchors,
    parse_markup,
    scrape_anchors,
)
from lexingest.source.models import DownloadedPayload, RawAnchor

logger = logging.getLogger(__name__)

_HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml"


class HttpSourceCollaborator(BaseSourceCollaborator):
    """Source collaborator backed by plain authenticated HTTP requests.

    Args:
        client: httpx client carrying the session cookies/headers.
        page_url: URL of the page the user is currently on.
        timeout_s: Per-request timeout.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        page_url: str,
        timeout_s: float = 10.0,
    ) -> None:
        super().__init__()
        self._client = client
        self._timeout_s = timeout_s
        self._page_url = page_url
        self._page_markup = ""
        self._history: list[tuple[str, str]] = []

    @property
    def base_url(self) -> str:
        parts = urlsplit(self._page_url)
        return f"{parts.scheme}://{parts.netloc}" if parts.netloc else ""

    @property
    def page_url(self) -> str:
        return self._page_url

    async def load_page(self, url: str | None = None) -> None:
        """Load (or reload) the current page state."""
        target = url or self._page_url
        self._page_markup = await self._get_text(target, referer=self._page_url)
        self._page_url = target

    async def probe_discovery_state(self) -> bool:
        return has_document_anchors(self._page_markup)

    async def query_document_anchors(self) -> list[RawAnchor]:
        return scrape_anchors(self._page_markup)

    async def navigate_to_documents_view(self) -> bool:
        href = find_documents_view_link(self._page_markup)
        if href is None:
            return False
        target = urljoin(self._page_url, href)
        markup = await self._get_text(target, referer=self._page_url)
        self._history.append((self._page_url, self._page_markup))
        self._page_url, self._page_markup = target, markup
        logger.debug("Navigated to documents view: %s", target)
        return True

    async def navigate_back(self) -> None:
        if self._history:
            self._page_url, self._page_markup = self._history.pop()

    async def retrieve_out_of_band(self, locator: str) -> str:
        return await self._get_text(locator, referer=self._page_url)

    async def download(self, locator: str) -> DownloadedPayload:
        response = await self._request(locator, accept="*/*")
        return DownloadedPayload(
            content=response.content,
            content_type=response.headers.get("content-type", ""),
        )

    async def case_identifier(self) -> str | None:
        return extract_case_identifier(parse_markup(self._page_markup), self._page_url)

    async def case_number(self) -> str | None:
        return extract_case_number(self._page_markup)

    async def _get_text(self, url: str, referer: str | None = None) -> str:
        response = await self._request(url, accept=_HTML_ACCEPT, referer=referer)
        return response.text

    async def _request(
        self, url: str, accept: str, referer: str | None = None,
    ) -> httpx.Response:
        headers = {"Accept": accept, "Cache-Control": "no-cache"}
        if referer:
            headers["Referer"] = referer
        try:
            response = await self._client.get(
                url, headers=headers, timeout=self._timeout_s, follow_redirects=True,
            )
        except httpx.HTTPError as e:
            raise SourceTransportError(url, f"Request failed: {e}") from e
        if response.status_code >= 400:
            raise SourceTransportError(
                url, f"HTTP {response.status_code}", status_code=response.status_code,
            )
        return response
