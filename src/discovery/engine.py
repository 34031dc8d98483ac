# src/discovery/engine.py — v1
"""Discovery engine: ordered strategy chain over a source collaborator.

Strategies are tried in fixed priority order and the first one yielding at
least one descriptor wins. An empty case is a valid result; only transport
failures with nothing discovered surface as DiscoveryError.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from lexingest.config.settings import Settings
from lexingest.core.exceptions import DiscoveryError, SourceTransportError
from lexingest.core.models import DocumentDescriptor
from lexingest.discovery.base_strategy import BaseDiscoveryStrategy, DiscoveryContext
from lexingest.discovery.strategies.direct_scrape import DirectScrapeStrategy
from lexingest.discovery.strategies.guided_navigation import GuidedNavigationStrategy
from lexingest.discovery.strategies.out_of_band import OutOfBandStrategy
from lexingest.discovery.strategies.paginated import PaginatedTableStrategy
from lexingest.logging.context import set_stage
from lexingest.source.base_source import BaseSourceCollaborator

logger = logging.getLogger(__name__)


def default_strategies() -> list[BaseDiscoveryStrategy]:
    """Direct scrape → guided navigation → out-of-band (with pagination)."""
    return [
        DirectScrapeStrategy(),
        GuidedNavigationStrategy(),
        PaginatedTableStrategy(OutOfBandStrategy()),
    ]


class DiscoveryEngine:
    """Produce the deduplicated descriptor list of one case."""

    def __init__(
        self,
        settings: Settings | None = None,
        strategies: list[BaseDiscoveryStrategy] | None = None,
    ) -> None:
        self._settings = settings or Settings(_env_file=None)
        self._strategies = strategies if strategies is not None else default_strategies()
        self._last_result: list[DocumentDescriptor] = []
        self._last_case_id: str | None = None

    @property
    def strategies(self) -> list[BaseDiscoveryStrategy]:
        return list(self._strategies)

    async def discover_all(
        self, source: BaseSourceCollaborator,
    ) -> list[DocumentDescriptor]:
        """Run the strategy chain.

        Returns:
            Ordered descriptors, unique by id. Empty when the case has none.

        Raises:
            DiscoveryError: If nothing was found and a transport failure
                occurred along the way.
        """
        set_stage("discovery")
        context = await self._build_context(source)
        self._last_case_id = context.case_id

        for strategy in self._strategies:
            try:
                result = await strategy.try_discover(context)
            except SourceTransportError as e:
                context.transport_errors.append(e)
                logger.warning("Strategy %s failed: %s", strategy.name, e)
                continue

            if result is None:
                logger.debug("Strategy %s not applicable", strategy.name)
                continue
            if result:
                logger.info(
                    "Strategy %s discovered %d documents", strategy.name, len(result),
                )
                self._last_result = result
                return result
            logger.debug("Strategy %s found no documents", strategy.name)

        self._last_result = []
        if context.transport_errors:
            raise DiscoveryError(
                f"Document discovery failed: {context.transport_errors[-1]}",
                causes=list(context.transport_errors),
            )
        logger.info("No documents discovered for case %s", context.case_id)
        return []

    def statistics(self) -> dict[str, Any]:
        """Counts of the last discovery result by kind and by source tag."""
        return {
            "total": len(self._last_result),
            "by_kind": dict(Counter(d.kind.value for d in self._last_result)),
            "by_source": dict(Counter(d.source for d in self._last_result)),
            "case_id": self._last_case_id,
        }

    async def _build_context(self, source: BaseSourceCollaborator) -> DiscoveryContext:
        s = self._settings
        context = DiscoveryContext(
            source=source,
            base_url=s.source_base_url or source.base_url,
            documents_view_path=s.documents_view_path,
            navigation_timeout_s=s.navigation_timeout_s,
            navigation_poll_interval_s=s.navigation_poll_interval_s,
            max_pages=s.max_documents_pages,
        )
        context.case_id = await source.case_identifier()
        context.case_number = await source.case_number()
        return context
