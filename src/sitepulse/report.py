"""Plain-text views of audit metrics and API call analysis."""

import math
from typing import Dict, List, Optional, Sequence

from sitepulse.api_analysis import format_bytes
from sitepulse.models import ApiAnalysis, ApiCallRecord, FrontendMetrics

API_TABLE_HEADER = "\t".join(
    ("API Endpoint", "Method", "Status", "Time Taken (ms)", "Payload Size", "Errors")
)

# (label, FrontendMetrics attribute, what it measures, rating bands)
METRIC_GUIDE = (
    ("First Contentful Paint (FCP)", "fcp",
     "Time until the first text or image is rendered",
     "Good: < 1.8s, Needs Improvement: < 3.0s, Poor: ≥ 3.0s"),
    ("Largest Contentful Paint (LCP)", "lcp",
     "Time taken to render the largest visible element",
     "Good: < 2.5s, Needs Improvement: < 4.0s, Poor: ≥ 4.0s"),
    ("Cumulative Layout Shift (CLS)", "cls",
     "Measures visual stability (e.g., content jumping)",
     "Good: < 0.1, Needs Improvement: < 0.25, Poor: ≥ 0.25"),
    ("Time to Interactive (TTI)", "tti",
     "Time when the page becomes fully interactive",
     "Good: < 3.8s, Needs Improvement: < 7.3s, Poor: ≥ 7.3s"),
    ("Total Blocking Time (TBT)", "tbt",
     "Time the main thread is blocked and unresponsive",
     "Good: < 200ms, Needs Improvement: < 600ms, Poor: ≥ 600ms"),
    ("Speed Index", "si",
     "Average time to display visible content",
     "Good: < 3.4s, Needs Improvement: < 5.8s, Poor: ≥ 5.8s"),
)

NONE_DETECTED = "• None detected"


def _performance_score(frontend: Optional[FrontendMetrics]) -> str:
    if frontend is None or frontend.performance is None:
        return "N/A"
    return f"{int(math.floor(frontend.performance * 100 + 0.5))}/100"


def _display(frontend: Optional[FrontendMetrics], attr: str) -> str:
    return getattr(frontend, attr) if frontend is not None else "N/A"


def _bullets(lines: List[str]) -> List[str]:
    return lines or [NONE_DETECTED]


def format_api_table(calls: Sequence[ApiCallRecord]) -> str:
    """Tab-separated table of API calls, one row per call.

    Estimated durations are marked so they are not read as measurements.
    """
    if not calls:
        return "No API calls detected."

    rows = [API_TABLE_HEADER]
    for call in calls:
        time_taken = f"{call.duration_ms} ms"
        if not call.has_measured_duration:
            time_taken += " (estimated)"
        rows.append("\t".join((
            call.endpoint,
            call.method,
            str(call.status) if call.has_response else "Unknown",
            time_taken,
            format_bytes(call.payload_size_bytes),
            f"Error {call.status}" if call.is_error else "-",
        )))
    return "\n".join(rows)


def _overall_view(frontend: Optional[FrontendMetrics], api_analysis: Optional[ApiAnalysis]) -> str:
    lines = [
        f"Performance Score: {_performance_score(frontend)}",
        "",
        "Core Web Vitals:",
    ]
    for label, attr, _, _ in METRIC_GUIDE[:3]:
        lines.append(f"• {label}: {_display(frontend, attr)}")

    lines.extend(["", "Other Important Metrics:"])
    for label, attr, _, _ in METRIC_GUIDE[3:]:
        lines.append(f"• {label}: {_display(frontend, attr)}")

    if api_analysis is not None:
        lines.extend([
            "",
            "API Performance Summary:",
            f"• Total API Calls: {api_analysis.total_api_calls}",
            f"• Average Response Time: {api_analysis.average_response_time}ms",
            f"• Slow APIs: {len(api_analysis.slowest_apis)}",
            f"• Error-Prone APIs: {len(api_analysis.error_prone_apis)}",
        ])
        if api_analysis.estimated_api_calls:
            lines.append(f"• Calls With Estimated Timing: {api_analysis.estimated_api_calls}")

    return "\n".join(lines)


def _frontend_view(frontend: Optional[FrontendMetrics]) -> str:
    lines = ["Core Web Vitals:"]
    for label, attr, description, bands in METRIC_GUIDE:
        lines.extend([
            f"• {label}: {_display(frontend, attr)}",
            f"  - {description}",
            f"  - {bands}",
            "",
        ])
    return "\n".join(lines).rstrip()


def _api_view(api_analysis: Optional[ApiAnalysis], api_calls: Sequence[ApiCallRecord]) -> str:
    if api_analysis is None:
        return "API Calls Analysis:\n\nNo API call data was collected for this run."

    lines = ["API Calls Analysis:", "", format_api_table(api_calls), "", "Slowest APIs Identified:"]
    lines.extend(_bullets([
        f"• {api['method']} {api['endpoint']}: {api['time_taken']}ms"
        for api in api_analysis.slowest_apis
    ]))

    lines.extend(["", "High Payload Endpoints:"])
    lines.extend(_bullets([
        f"• {api['method']} {api['endpoint']}: {api['payload_size']}"
        for api in api_analysis.high_payload_apis
    ]))

    lines.extend(["", "Unstable or Error-Prone Endpoints (4xx/5xx):"])
    lines.extend(_bullets([
        f"• {api['method']} {api['endpoint']}: {api['status']} {api['error']}"
        for api in api_analysis.error_prone_apis
    ]))
    return "\n".join(lines)


def format_metrics_for_display(
    frontend: Optional[FrontendMetrics],
    api_analysis: Optional[ApiAnalysis] = None,
    api_calls: Sequence[ApiCallRecord] = (),
) -> Dict[str, str]:
    """
    Render audit metrics and API analysis as text views.

    Args:
        frontend: Aggregated audit metrics; missing values show as N/A
        api_analysis: Output of analyze_api_calls, if API calls were captured
        api_calls: Calls listed in the API table

    Returns:
        Dict with ``overall``, ``frontend`` and ``api`` views
    """
    return {
        'overall': _overall_view(frontend, api_analysis),
        'frontend': _frontend_view(frontend),
        'api': _api_view(api_analysis, api_calls),
    }
