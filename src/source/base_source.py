# src/source/base_source.py — v1
"""Abstract source collaborator interface.

The source is the already-authenticated page/session of the case-management
application. Discovery and ingestion consume it exclusively through this
interface.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod

from lexingest.source.models import DownloadedPayload, RawAnchor


class BaseSourceCollaborator(ABC):
    """Unified interface over the hosting page's DOM and network capabilities."""

    def __init__(self) -> None:
        # Guards the shared navigation state (see source.navigation).
        self.navigation_lock = asyncio.Lock()

    @abstractmethod
    async def probe_discovery_state(self) -> bool:
        """Whether a documents view is currently exposed."""

    @abstractmethod
    async def query_document_anchors(self) -> list[RawAnchor]:
        """Scrape document anchors from the current page state."""

    @abstractmethod
    async def navigate_to_documents_view(self) -> bool:
        """Trigger in-page navigation to the documents view.

        Returns False when no in-page control exists (strategy unavailable).
        """

    @abstractmethod
    async def navigate_back(self) -> None:
        """Return to the view that was displayed before navigation."""

    @abstractmethod
    async def retrieve_out_of_band(self, locator: str) -> str:
        """Retrieve markup without disturbing the visible page.

        Raises:
            SourceTransportError: If the isolated channel never loads.
        """

    @abstractmethod
    async def download(self, locator: str) -> DownloadedPayload:
        """Authenticated retrieval of a document payload."""

    @abstractmethod
    async def case_identifier(self) -> str | None:
        """Internal case/process identity used to build out-of-band locators."""

    @property
    def base_url(self) -> str:
        """Origin used to resolve relative hrefs."""
        return ""

    async def case_number(self) -> str | None:
        """Human-readable case number, when the page exposes one."""
        return None
