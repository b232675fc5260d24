"""Aggregate metrics over a set of observed API calls."""

import logging
import re
from typing import Dict, Iterable, List, Mapping, Sequence

from sitepulse.constants import HIGH_PAYLOAD_BYTES, SLOW_API_MS
from sitepulse.models import ApiAnalysis, ApiCallRecord, EndpointStats

logger = logging.getLogger(__name__)

# Immutable mapping of endpoint key -> stats; callers own the value
EndpointLog = Mapping[str, EndpointStats]

_UUID_SEGMENT = re.compile(r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$', re.I)
_NUMERIC_SEGMENT = re.compile(r'^\d+$')
_TOKEN_SEGMENT = re.compile(r'^[a-f0-9]{24,}$', re.I)


def format_bytes(num_bytes: float) -> str:
    """Format a byte count for humans (``0B``, ``1.5KB``, ``5MB``)."""
    if not num_bytes or num_bytes <= 0:
        return "0B"

    sizes = ["B", "KB", "MB", "GB"]
    value = float(num_bytes)
    i = 0
    while value >= 1024 and i < len(sizes) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 1):g}{sizes[i]}"


def normalize_endpoint_path(path: str) -> str:
    """Collapse dynamic path segments so calls to the same endpoint share a key.

    ``/api/users/42`` and ``/api/users/43`` both become ``/api/users/{id}``.
    """
    segments = path.strip('/').split('/')
    normalized = []
    for segment in segments:
        if _UUID_SEGMENT.match(segment) or _NUMERIC_SEGMENT.match(segment):
            normalized.append("{id}")
        elif _TOKEN_SEGMENT.match(segment):
            normalized.append("{token}")
        else:
            normalized.append(segment)
    return '/' + '/'.join(normalized)


def endpoint_key(call: ApiCallRecord) -> str:
    return f"{call.method} {normalize_endpoint_path(call.endpoint)}"


def accumulate(
    log: EndpointLog,
    key: str,
    duration_ms: float,
    is_error: bool = False,
    estimated: bool = False,
) -> EndpointLog:
    """Return a new log with one more call recorded under ``key``.

    An estimated duration is counted but not added to the endpoint's time.
    """
    current = log.get(key, EndpointStats(key=key))
    updated = dict(log)
    updated[key] = EndpointStats(
        key=key,
        calls=current.calls + 1,
        total_time_ms=current.total_time_ms + (0 if estimated else duration_ms),
        errors=current.errors + (1 if is_error else 0),
        estimated=current.estimated + (1 if estimated else 0),
    )
    return updated


def accumulate_calls(log: EndpointLog, calls: Iterable[ApiCallRecord]) -> EndpointLog:
    """Fold a batch of calls into ``log``."""
    for call in calls:
        log = accumulate(
            log,
            endpoint_key(call),
            call.duration_ms,
            is_error=call.is_error,
            estimated=not call.has_measured_duration,
        )
    return log


def average_response_time(calls: Sequence[ApiCallRecord]) -> int:
    """Mean measured duration in ms, 0 when no call has a measured duration."""
    measured = [call.duration_ms for call in calls if call.has_measured_duration]
    if not measured:
        return 0
    return round(sum(measured) / len(measured))


def analyze_api_calls(calls: Iterable[ApiCallRecord]) -> ApiAnalysis:
    """
    Summarize a set of API calls.

    Slow calls took more than 500ms, high payload calls exceed 1MB, and
    error-prone calls returned a 4xx/5xx status. Calls without an observed
    response are never counted as errors, and estimated durations are kept
    out of the slow list and the average.

    Args:
        calls: API calls to analyze

    Returns:
        ApiAnalysis (all zero/empty for an empty input)
    """
    calls = list(calls)

    slowest_apis: List[Dict] = [
        {'endpoint': call.endpoint, 'method': call.method, 'time_taken': call.duration_ms}
        for call in sorted(calls, key=lambda c: c.duration_ms, reverse=True)
        if call.has_measured_duration and call.duration_ms > SLOW_API_MS
    ]

    high_payload_apis = [
        {
            'endpoint': call.endpoint,
            'method': call.method,
            'payload_size': format_bytes(call.payload_size_bytes),
        }
        for call in calls
        if call.payload_size_bytes > HIGH_PAYLOAD_BYTES
    ]

    error_prone_apis = [
        {
            'endpoint': call.endpoint,
            'method': call.method,
            'status': call.status,
            'error': f"Error {call.status}",
        }
        for call in calls
        if call.is_error
    ]

    log = accumulate_calls({}, calls)

    analysis = ApiAnalysis(
        slowest_apis=slowest_apis,
        high_payload_apis=high_payload_apis,
        error_prone_apis=error_prone_apis,
        total_api_calls=len(calls),
        average_response_time=average_response_time(calls),
        estimated_api_calls=sum(1 for call in calls if not call.has_measured_duration),
        endpoint_stats=sorted(log.values(), key=lambda s: s.total_time_ms, reverse=True),
    )

    logger.debug(
        f"Analyzed {analysis.total_api_calls} API calls: {len(slowest_apis)} slow, "
        f"{len(error_prone_apis)} errors, avg {analysis.average_response_time}ms"
    )
    return analysis
