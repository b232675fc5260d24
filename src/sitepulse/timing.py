"""
Timing estimation for captured network events.

Capture paths disagree on which timestamp fields they populate. This module
maps a raw event record to a single positive duration in milliseconds by
trying each known field pair in a fixed order, and falls back to a
size-based estimate when none is usable. The rule that produced the value
travels with it so measured and synthetic timings are never blended.
"""

import logging
import random
from typing import Any, Callable, Mapping, Optional, Tuple

from sitepulse.constants import (
    ESTIMATE_BASE_LATENCY_MS,
    ESTIMATE_BYTES_PER_MS,
    ESTIMATE_JITTER_MAX_MS,
    ESTIMATE_SIZE_MAX_MS,
    ESTIMATE_SIZE_MIN_MS,
    FLOOR_DURATION_MAX_MS,
    FLOOR_DURATION_MIN_MS,
)
from sitepulse.models import Estimated, Measured, TimingResult

logger = logging.getLogger(__name__)

METHOD_END_START = "endTime-startTime"
METHOD_NETWORK = "networkEndTime-networkRequestTime"
METHOD_RESPONSE_RECEIVED = "responseReceivedTime-requestTime"
METHOD_FINISHED_STARTED = "finished-started"
METHOD_TIMING_OBJECT = "timing object"
METHOD_ESTIMATED = "estimated"
FLOOR_SUFFIX = "+floor"


def _present(value: Any) -> bool:
    # Zero counts as missing: capture paths use 0 for "not recorded"
    return value is not None and value != 0


def _pair(raw: Mapping[str, Any], end_key: str, start_key: str) -> Optional[Tuple[float, float]]:
    end, start = raw.get(end_key), raw.get(start_key)
    if _present(end) and _present(start):
        return float(end), float(start)
    return None


def _timing_object(raw: Mapping[str, Any]) -> Optional[Tuple[float, float]]:
    timing = raw.get("timing")
    if not isinstance(timing, Mapping):
        return None
    return _pair(timing, "receiveHeadersEnd", "requestTime")


# Ordered rules: (method name, extractor, multiplier)
_RULES: Tuple[Tuple[str, Callable[[Mapping[str, Any]], Optional[Tuple[float, float]]], float], ...] = (
    (METHOD_END_START, lambda raw: _pair(raw, "endTime", "startTime"), 1.0),
    (METHOD_NETWORK, lambda raw: _pair(raw, "networkEndTime", "networkRequestTime"), 1.0),
    # Source fields are seconds
    (METHOD_RESPONSE_RECEIVED, lambda raw: _pair(raw, "responseReceivedTime", "requestTime"), 1000.0),
    (METHOD_FINISHED_STARTED, lambda raw: _pair(raw, "finished", "started"), 1.0),
    (METHOD_TIMING_OBJECT, _timing_object, 1.0),
)


def _apply_rule(rule, raw: Mapping[str, Any]) -> Optional[TimingResult]:
    """Measured result for one rule, or None when its fields are missing or unusable."""
    method, extract, multiplier = rule
    try:
        pair = extract(raw)
        if pair is None:
            return None
        end, start = pair
        return Measured(ms=round((end - start) * multiplier), method=method)
    except (TypeError, ValueError, OverflowError) as e:
        logger.debug(f"Skipping {method} rule, unusable fields: {e}")
        return None


def timing_method(raw: Mapping[str, Any]) -> str:
    """Name the rule that would be used for ``raw`` (for debugging)."""
    for rule in _RULES:
        if _apply_rule(rule, raw) is not None:
            return rule[0]
    return METHOD_ESTIMATED


def _size_estimate(raw: Mapping[str, Any], rng: random.Random) -> Optional[int]:
    size = raw.get("transferSize") or raw.get("resourceSize") or 0
    try:
        size_ms = max(ESTIMATE_SIZE_MIN_MS, min(ESTIMATE_SIZE_MAX_MS, float(size) / ESTIMATE_BYTES_PER_MS))
    except (TypeError, ValueError) as e:
        logger.debug(f"Unusable size fields, using floor: {e}")
        return None
    return round(ESTIMATE_BASE_LATENCY_MS + size_ms + rng.random() * ESTIMATE_JITTER_MAX_MS)


def estimate_duration(raw: Mapping[str, Any], rng: Optional[random.Random] = None) -> TimingResult:
    """Derive a positive duration in milliseconds from a raw event record.

    A rule whose fields are present but unusable is skipped and the next
    rule is tried.

    Args:
        raw: Event fields (``startTime``, ``endTime``, ``timing``, ``transferSize``...)
        rng: Random source for jitter and the non-positive floor

    Returns:
        Measured result when a timestamp rule applied, Estimated otherwise.
        ``ms`` is always a positive integer.
    """
    rng = rng or random
    result: Optional[TimingResult] = None

    for rule in _RULES:
        result = _apply_rule(rule, raw)
        if result is not None:
            break
    else:
        size_ms = _size_estimate(raw, rng)
        if size_ms is not None:
            result = Estimated(ms=size_ms, method=METHOD_ESTIMATED)

    if result is None or result.ms <= 0:
        method = result.method if result else METHOD_ESTIMATED
        floor_ms = round(FLOOR_DURATION_MIN_MS + rng.random() * (FLOOR_DURATION_MAX_MS - FLOOR_DURATION_MIN_MS))
        result = Estimated(ms=floor_ms, method=f"{method}{FLOOR_SUFFIX}")

    return result
