# src/discovery/strategies/out_of_band.py — v1
"""Strategy 3: retrieve the documents view through an isolated channel.

The visible page is never touched; the retrieved markup is parsed directly.
"""

from __future__ import annotations

import logging

from lexingest.core.models import DocumentDescriptor
from lexingest.discovery.anchor_parser import build_descriptors
from lexingest.discovery.base_strategy import BaseDiscoveryStrategy, DiscoveryContext
from lexingest.source.markup import scrape_anchors

logger = logging.getLogger(__name__)


class OutOfBandStrategy(BaseDiscoveryStrategy):
    """Build the documents-view locator from the case id and fetch it."""

    def __init__(self, source_tag: str = "out-of-band") -> None:
        self._source_tag = source_tag

    @property
    def name(self) -> str:
        return self._source_tag

    async def try_discover(
        self, context: DiscoveryContext,
    ) -> list[DocumentDescriptor] | None:
        locator = context.documents_view_locator()
        if locator is None:
            logger.debug("No case identifier: out-of-band retrieval unavailable")
            return None
        return await self.fetch_page(context, locator, self.name)

    async def fetch_page(
        self, context: DiscoveryContext, locator: str, source_tag: str,
    ) -> list[DocumentDescriptor]:
        """Retrieve one documents-view page and parse it.

        Raises:
            SourceTransportError: If the isolated channel never loads.
        """
        markup = await context.source.retrieve_out_of_band(locator)
        context.last_markup = markup
        return build_descriptors(
            scrape_anchors(markup), source_tag, context.base_url, context.case_number,
        )
