# src/discovery/strategies/guided_navigation.py — v1
"""Strategy 2: drive the page to its documents view, scrape, then go back.

Holds the source's navigation state exclusively for its whole duration;
the original view is restored on every exit path, timeout included.
"""

from __future__ import annotations

import asyncio
import logging

from lexingest.core.models import DocumentDescriptor
from lexingest.discovery.anchor_parser import build_descriptors
from lexingest.discovery.base_strategy import BaseDiscoveryStrategy, DiscoveryContext
from lexingest.source.base_source import BaseSourceCollaborator
from lexingest.source.navigation import exclusive_navigation

logger = logging.getLogger(__name__)


class GuidedNavigationStrategy(BaseDiscoveryStrategy):
    """Navigate via an in-page control and poll the structural probe."""

    @property
    def name(self) -> str:
        return "guided-navigation"

    async def try_discover(
        self, context: DiscoveryContext,
    ) -> list[DocumentDescriptor] | None:
        source = context.source
        async with exclusive_navigation(source) as lease:
            if not await lease.navigate_to_documents_view():
                logger.debug("No in-page control leads to the documents view")
                return None

            try:
                await asyncio.wait_for(
                    self._wait_for_documents(source, context.navigation_poll_interval_s),
                    timeout=context.navigation_timeout_s,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "Documents view did not load within %.1fs",
                    context.navigation_timeout_s,
                )
                return []

            anchors = await source.query_document_anchors()

        return build_descriptors(
            anchors, self.name, context.base_url, context.case_number,
        )

    @staticmethod
    async def _wait_for_documents(
        source: BaseSourceCollaborator, poll_interval_s: float,
    ) -> None:
        while not await source.probe_discovery_state():
            await asyncio.sleep(poll_interval_s)
