"""Tests for frontend performance snapshots."""

from unittest.mock import AsyncMock

import pytest

from sitepulse.infrastructure.performance_metrics import (
    SNAPSHOT_SCRIPT,
    capture_snapshot,
    classify_rendering_impact,
    diff_snapshots,
    snapshot_from_raw,
)
from sitepulse.models import FrontendSnapshot, RenderingImpact

pytest_plugins = ('pytest_asyncio',)


class TestSnapshots:
    """Test cases for snapshot capture and parsing."""

    def test_snapshot_from_raw(self):
        snapshot = snapshot_from_raw({
            "timestamp": 123.0,
            "fcp": 340.5,
            "cls": 0.02,
            "domUpdateTime": 410,
            "renderTime": 820,
            "memory": {"usedJSHeapSize": 2048, "jsHeapSizeLimit": 8192},
            "resourceCount": 17,
        })

        assert snapshot.first_contentful_paint_ms == 340.5
        assert snapshot.render_ms == 820
        assert snapshot.heap_used_bytes == 2048
        assert snapshot.resource_count == 17

    def test_snapshot_without_memory_api(self):
        snapshot = snapshot_from_raw({"timestamp": 1.0, "memory": None})
        assert snapshot.heap_used_bytes is None
        assert snapshot.render_ms == 0.0

    @pytest.mark.asyncio
    async def test_capture_snapshot_evaluates_script(self):
        page = AsyncMock()
        page.evaluate.return_value = {"timestamp": 5.0, "renderTime": 99}

        snapshot = await capture_snapshot(page)

        page.evaluate.assert_awaited_once_with(SNAPSHOT_SCRIPT)
        assert snapshot.render_ms == 99

    @pytest.mark.asyncio
    async def test_capture_snapshot_propagates_errors(self):
        page = AsyncMock()
        page.evaluate.side_effect = RuntimeError("Target closed")

        with pytest.raises(RuntimeError):
            await capture_snapshot(page)


class TestDiff:
    """Test cases for snapshot differencing."""

    @pytest.mark.parametrize("delta,expected", [
        (0, RenderingImpact.LOW),
        (50, RenderingImpact.LOW),
        (50.1, RenderingImpact.MEDIUM),
        (100, RenderingImpact.MEDIUM),
        (101, RenderingImpact.HIGH),
        (-30, RenderingImpact.LOW),
    ])
    def test_rendering_impact_boundaries(self, delta, expected):
        assert classify_rendering_impact(delta) == expected

    def test_diff(self):
        before = FrontendSnapshot(
            timestamp=1.0, first_contentful_paint_ms=100, cumulative_layout_shift=0.05,
            dom_update_ms=200, render_ms=300, heap_used_bytes=1000, resource_count=4,
        )
        after = FrontendSnapshot(
            timestamp=2.0, first_contentful_paint_ms=100, cumulative_layout_shift=0.15,
            dom_update_ms=260, render_ms=375, heap_used_bytes=1500, resource_count=6,
        )

        impact = diff_snapshots(before, after)

        assert impact.render_delta_ms == 75
        assert impact.dom_update_delta_ms == 60
        assert impact.resource_count_delta == 2
        assert impact.memory_delta_bytes == 500
        assert impact.cls_delta == pytest.approx(0.1)
        assert impact.layout_shift_delta == impact.cls_delta
        assert impact.rendering_impact == RenderingImpact.MEDIUM

    def test_memory_delta_requires_both_readings(self):
        before = FrontendSnapshot(timestamp=1.0, heap_used_bytes=None)
        after = FrontendSnapshot(timestamp=2.0, heap_used_bytes=5000)
        assert diff_snapshots(before, after).memory_delta_bytes == 0
