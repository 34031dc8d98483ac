# src/source/navigation.py — v1
"""Exclusive ownership of the source's navigation state.

Guided navigation drives the shared page, so it must hold the navigation
lock for its whole duration and always restore the original view on exit,
including timeout and cancellation.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from lexingest.source.base_source import BaseSourceCollaborator

logger = logging.getLogger(__name__)


class NavigationLease:
    """Handle given to the lease holder; tracks whether a restore is owed."""

    def __init__(self, source: BaseSourceCollaborator) -> None:
        self._source = source
        self.navigated = False

    async def navigate_to_documents_view(self) -> bool:
        moved = await self._source.navigate_to_documents_view()
        self.navigated = self.navigated or moved
        return moved


@asynccontextmanager
async def exclusive_navigation(
    source: BaseSourceCollaborator,
) -> AsyncIterator[NavigationLease]:
    """Acquire the navigation state; restore the original view on every exit path."""
    async with source.navigation_lock:
        lease = NavigationLease(source)
        try:
            yield lease
        finally:
            if lease.navigated:
                try:
                    await source.navigate_back()
                except Exception:
                    logger.warning(
                        "Could not restore original view after guided navigation",
                        exc_info=True,
                    )
