# src/discovery/strategies/direct_scrape.py — v1
"""Strategy 1: scrape document links already exposed by the current page."""

from __future__ import annotations

import logging

from lexingest.core.models import DocumentDescriptor
from lexingest.discovery.anchor_parser import build_descriptors
from lexingest.discovery.base_strategy import BaseDiscoveryStrategy, DiscoveryContext

logger = logging.getLogger(__name__)


class DirectScrapeStrategy(BaseDiscoveryStrategy):
    """Parse anchors in place; no extra network round-trips."""

    @property
    def name(self) -> str:
        return "direct-scrape"

    async def try_discover(
        self, context: DiscoveryContext,
    ) -> list[DocumentDescriptor] | None:
        source = context.source
        async with source.navigation_lock:
            if not await source.probe_discovery_state():
                logger.debug("Current page exposes no document links")
                return None
            anchors = await source.query_document_anchors()

        return build_descriptors(
            anchors, self.name, context.base_url, context.case_number,
        )
