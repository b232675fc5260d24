"""
Frontend Performance Snapshots.

Captures instantaneous frontend performance counters from a live page using
the browser Performance API (paint timing, layout shifts, navigation timing,
resource timing, JS heap) and differences two captures to attribute
rendering impact to whatever happened in between.
"""

import logging
import time
from typing import Any, Dict, Optional

from sitepulse.constants import RENDER_IMPACT_HIGH_MS, RENDER_IMPACT_MEDIUM_MS
from sitepulse.models import FrontendImpact, FrontendSnapshot, RenderingImpact

logger = logging.getLogger(__name__)


# JavaScript evaluated in the page to read current counters
SNAPSHOT_SCRIPT = """
() => {
    const navigation = performance.getEntriesByType('navigation')[0];

    const paintEntries = performance.getEntriesByType('paint');
    const fcpEntry = paintEntries.find(entry => entry.name === 'first-contentful-paint');

    const layoutShifts = performance.getEntriesByType('layout-shift');
    const cls = layoutShifts
        .filter(entry => !entry.hadRecentInput)
        .reduce((sum, entry) => sum + entry.value, 0);

    const memory = performance.memory ? {
        usedJSHeapSize: performance.memory.usedJSHeapSize,
        jsHeapSizeLimit: performance.memory.jsHeapSizeLimit
    } : null;

    return {
        timestamp: Date.now(),
        fcp: fcpEntry ? fcpEntry.startTime : 0,
        cls: cls,
        domUpdateTime: navigation ? navigation.domContentLoadedEventEnd : 0,
        renderTime: navigation ? navigation.loadEventEnd : 0,
        memory: memory,
        resourceCount: performance.getEntriesByType('resource').length
    };
}
"""


def snapshot_from_raw(raw: Optional[Dict[str, Any]]) -> FrontendSnapshot:
    """Build a FrontendSnapshot from the object returned by SNAPSHOT_SCRIPT."""
    raw = raw or {}
    memory = raw.get('memory') or {}
    return FrontendSnapshot(
        timestamp=raw.get('timestamp') or time.time() * 1000,
        first_contentful_paint_ms=raw.get('fcp') or 0.0,
        cumulative_layout_shift=raw.get('cls') or 0.0,
        dom_update_ms=raw.get('domUpdateTime') or 0.0,
        render_ms=raw.get('renderTime') or 0.0,
        heap_used_bytes=memory.get('usedJSHeapSize'),
        heap_limit_bytes=memory.get('jsHeapSizeLimit'),
        resource_count=raw.get('resourceCount') or 0,
    )


async def capture_snapshot(page) -> FrontendSnapshot:
    """
    Capture current frontend counters from a page session.

    Errors propagate; the caller decides how to isolate them.

    Args:
        page: PageSession (anything with an async ``evaluate``)

    Returns:
        FrontendSnapshot for this instant
    """
    raw = await page.evaluate(SNAPSHOT_SCRIPT)
    snapshot = snapshot_from_raw(raw)
    logger.debug(
        f"Captured snapshot: render={snapshot.render_ms}ms, "
        f"resources={snapshot.resource_count}"
    )
    return snapshot


def classify_rendering_impact(render_delta_ms: float) -> RenderingImpact:
    """Bucket a render-time delta into low/medium/high."""
    if render_delta_ms > RENDER_IMPACT_HIGH_MS:
        return RenderingImpact.HIGH
    if render_delta_ms > RENDER_IMPACT_MEDIUM_MS:
        return RenderingImpact.MEDIUM
    return RenderingImpact.LOW


def diff_snapshots(before: FrontendSnapshot, after: FrontendSnapshot) -> FrontendImpact:
    """
    Difference two snapshots into a FrontendImpact.

    Memory delta is 0 unless both snapshots report heap usage.
    """
    render_delta = after.render_ms - before.render_ms
    cls_delta = after.cumulative_layout_shift - before.cumulative_layout_shift

    if after.heap_used_bytes is not None and before.heap_used_bytes is not None:
        memory_delta = after.heap_used_bytes - before.heap_used_bytes
    else:
        memory_delta = 0

    return FrontendImpact(
        fcp_delta_ms=after.first_contentful_paint_ms - before.first_contentful_paint_ms,
        cls_delta=cls_delta,
        resource_count_delta=after.resource_count - before.resource_count,
        dom_update_delta_ms=after.dom_update_ms - before.dom_update_ms,
        render_delta_ms=render_delta,
        layout_shift_delta=cls_delta,
        memory_delta_bytes=memory_delta,
        rendering_impact=classify_rendering_impact(render_delta),
    )
