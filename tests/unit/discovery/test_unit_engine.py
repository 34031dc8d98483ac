# tests/unit/discovery/test_unit_engine.py — v1
"""Tests for discovery/engine.py — strategy chain and failure semantics."""

from __future__ import annotations

import pytest

from fakes import FakeSource, documents_table, make_anchor, view_locator
from lexingest.config.settings import Settings
from lexingest.core.exceptions import DiscoveryError
from lexingest.discovery.engine import DiscoveryEngine, default_strategies


@pytest.fixture
def engine() -> DiscoveryEngine:
    settings = Settings(
        _env_file=None, navigation_timeout_s=0.1, navigation_poll_interval_s=0.01,
    )
    return DiscoveryEngine(settings)


class TestStrategyChain:
    def test_default_order(self):
        names = [s.name for s in default_strategies()]
        assert names == ["direct-scrape", "guided-navigation", "paginated-table"]

    @pytest.mark.asyncio
    async def test_first_productive_strategy_wins(self, engine):
        source = FakeSource(
            page_anchors=[make_anchor("1", "a.pdf")],
            out_of_band={view_locator("12345"): documents_table([("2", "b.pdf")])},
        )
        result = await engine.discover_all(source)
        assert [d.id for d in result] == ["1"]
        assert source.out_of_band_calls == []

    @pytest.mark.asyncio
    async def test_guided_navigation_before_out_of_band(self, engine):
        source = FakeSource(
            has_documents_control=True,
            view_anchors=[make_anchor("7", "g.pdf")],
            out_of_band={view_locator("12345"): documents_table([("2", "b.pdf")])},
        )
        result = await engine.discover_all(source)
        assert [d.source for d in result] == ["guided-navigation"]
        assert source.out_of_band_calls == []

    @pytest.mark.asyncio
    async def test_falls_through_empty_guided_navigation(self, engine):
        source = FakeSource(
            has_documents_control=True,
            view_loads=False,
            out_of_band={view_locator("12345"): documents_table([("2", "b.pdf")])},
        )
        result = await engine.discover_all(source)
        assert [d.id for d in result] == ["2"]
        assert source.back_calls == 1


class TestFailureSemantics:
    @pytest.mark.asyncio
    async def test_empty_case_is_not_an_error(self, engine):
        source = FakeSource(out_of_band={view_locator("12345"): documents_table([])})
        assert await engine.discover_all(source) == []

    @pytest.mark.asyncio
    async def test_no_case_id_and_nothing_found(self, engine):
        assert await engine.discover_all(FakeSource(case_id=None)) == []

    @pytest.mark.asyncio
    async def test_transport_failure_raises_discovery_error(self, engine):
        with pytest.raises(DiscoveryError) as info:
            await engine.discover_all(FakeSource())
        assert len(info.value.causes) == 1


class TestStatistics:
    @pytest.mark.asyncio
    async def test_counts(self, engine):
        source = FakeSource(page_anchors=[
            make_anchor("1", "a.pdf"), make_anchor("2", "b.pdf"), make_anchor("3", "nota"),
        ])
        await engine.discover_all(source)
        stats = engine.statistics()
        assert stats["total"] == 3
        assert stats["by_kind"] == {"PDF": 2, "UNKNOWN": 1}
        assert stats["by_source"] == {"direct-scrape": 3}
        assert stats["case_id"] == "12345"
