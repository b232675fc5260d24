"""
Infrastructure Package.

Browser-side performance instrumentation shared by the crawler and the
impact correlator.
"""

from .performance_metrics import (
    SNAPSHOT_SCRIPT,
    capture_snapshot,
    classify_rendering_impact,
    diff_snapshots,
    snapshot_from_raw,
)

__all__ = [
    "SNAPSHOT_SCRIPT",
    "capture_snapshot",
    "classify_rendering_impact",
    "diff_snapshots",
    "snapshot_from_raw",
]
