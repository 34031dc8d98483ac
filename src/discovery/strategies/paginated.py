# src/discovery/strategies/paginated.py — v1
"""Strategy 4: paginated documents table.

Wraps the out-of-band strategy: after the first page is retrieved, every
additional page advertised by the pagination controls is fetched out of
band and merged.
"""

from __future__ import annotations

import logging

from lexingest.core.exceptions import SourceTransportError
from lexingest.core.models import DocumentDescriptor
from lexingest.discovery.anchor_parser import merge_unique
from lexingest.discovery.base_strategy import BaseDiscoveryStrategy, DiscoveryContext
from lexingest.discovery.strategies.out_of_band import OutOfBandStrategy
from lexingest.source.markup import detect_page_count

logger = logging.getLogger(__name__)


class PaginatedTableStrategy(BaseDiscoveryStrategy):
    """Follow pagination controls of an out-of-band retrieved view."""

    def __init__(self, first_page: OutOfBandStrategy | None = None) -> None:
        self._first_page = first_page or OutOfBandStrategy()

    @property
    def name(self) -> str:
        return "paginated-table"

    async def try_discover(
        self, context: DiscoveryContext,
    ) -> list[DocumentDescriptor] | None:
        descriptors = await self._first_page.try_discover(context)
        if descriptors is None or context.last_markup is None:
            return descriptors

        page_count = min(detect_page_count(context.last_markup), context.max_pages)
        if page_count <= 1:
            return descriptors

        logger.info("Documents table spans %d pages", page_count)
        for page in range(2, page_count + 1):
            locator = context.documents_view_locator(page)
            if locator is None:
                break
            try:
                page_descriptors = await self._first_page.fetch_page(
                    context, locator, self.name,
                )
            except SourceTransportError as e:
                # Keep what the earlier pages yielded.
                context.transport_errors.append(e)
                logger.warning("Page %d of documents table failed: %s", page, e)
                break
            descriptors = merge_unique(descriptors, page_descriptors)

        return descriptors
