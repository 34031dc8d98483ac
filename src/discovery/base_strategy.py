# src/discovery/base_strategy.py — v1
"""Discovery strategy interface and the per-run discovery context."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from lexingest.core.models import DocumentDescriptor
from lexingest.source.base_source import BaseSourceCollaborator


@dataclass
class DiscoveryContext:
    """State shared by the strategies of one ``discover_all`` call."""

    source: BaseSourceCollaborator
    base_url: str = ""
    case_id: str | None = None
    case_number: str | None = None
    documents_view_path: str = "/pje/Processo/ConsultaDocumento/listView.seam"
    navigation_timeout_s: float = 10.0
    navigation_poll_interval_s: float = 0.5
    max_pages: int = 50
    transport_errors: list[Exception] = field(default_factory=list)
    # Markup of the last out-of-band retrieval (read by pagination).
    last_markup: str | None = None

    def documents_view_locator(self, page: int = 1) -> str | None:
        """Out-of-band documents-view locator, or None without a case id."""
        if not self.case_id:
            return None
        locator = (
            f"{self.base_url.rstrip('/')}{self.documents_view_path}"
            f"?idProcesso={self.case_id}"
        )
        if page > 1:
            locator += f"&page={page}"
        return locator


class BaseDiscoveryStrategy(ABC):
    """One way of reaching the case's document list."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Source tag stamped on the descriptors this strategy finds."""

    @abstractmethod
    async def try_discover(
        self, context: DiscoveryContext,
    ) -> list[DocumentDescriptor] | None:
        """Attempt discovery.

        Returns:
            Descriptors found (possibly empty), or None when the strategy
            is not applicable to the current page state.

        Raises:
            SourceTransportError: On transport-level failure.
        """
