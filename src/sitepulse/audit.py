"""
Audit Engine Contract

The Core Web Vitals auditor is an external capability. This module defines
the interface the analysis pipeline calls and turns a Lighthouse JSON report
(lhr) into the flat FrontendMetrics record the alert engine consumes. The
report's network-requests audit can also be read back as API calls.
"""

import logging
import random
from typing import Any, Dict, Iterable, List, Optional, Protocol, runtime_checkable

from sitepulse.classifier import ApiClassifier, default_classifier
from sitepulse.models import ApiCallRecord, AuditDetails, FrontendMetrics
from sitepulse.network_capture import generate_call_id
from sitepulse.timing import estimate_duration, timing_method

logger = logging.getLogger(__name__)


# FrontendMetrics attribute -> Lighthouse audit id
METRIC_AUDITS = {
    "fcp": "first-contentful-paint",
    "lcp": "largest-contentful-paint",
    "cls": "cumulative-layout-shift",
    "tbt": "total-blocking-time",
    "tti": "interactive",
    "si": "speed-index",
}

SCORE_FIELDS = ("performance", "accessibility", "best_practices", "seo")


@runtime_checkable
class AuditEngine(Protocol):
    """Anything that can produce FrontendMetrics for a URL."""

    async def audit(self, url: str) -> FrontendMetrics:
        ...


def _get_score(category: Optional[Dict]) -> Optional[float]:
    """Extract the 0-1 score from a category."""
    if not category:
        return None
    return category.get("score")


def _get_display_value(audit: Optional[Dict]) -> str:
    if not audit:
        return "N/A"
    return audit.get("displayValue") or "N/A"


def _get_metric_value(audit: Optional[Dict]) -> Optional[float]:
    """Extract numeric value from audit."""
    if not audit:
        return None
    return audit.get("numericValue")


def parse_lighthouse_report(lhr: Dict[str, Any], url: Optional[str] = None) -> FrontendMetrics:
    """
    Parse a Lighthouse report into FrontendMetrics.

    Args:
        lhr: Lighthouse report JSON (lhr = Lighthouse Result)
        url: URL to record; defaults to the report's finalUrl/requestedUrl

    Returns:
        FrontendMetrics with 0-1 scores, display strings and raw values
    """
    categories = lhr.get("categories") or {}
    audits = lhr.get("audits") or {}

    details = AuditDetails(
        **{
            f"{name}_raw": _get_metric_value(audits.get(audit_id))
            for name, audit_id in METRIC_AUDITS.items()
        }
    )

    return FrontendMetrics(
        url=url or lhr.get("finalUrl") or lhr.get("requestedUrl", ""),
        performance=_get_score(categories.get("performance")),
        accessibility=_get_score(categories.get("accessibility")),
        best_practices=_get_score(categories.get("best-practices")),
        seo=_get_score(categories.get("seo")),
        details=details,
        **{
            name: _get_display_value(audits.get(audit_id))
            for name, audit_id in METRIC_AUDITS.items()
        },
    )


def _mean(values: List[float]) -> Optional[float]:
    return sum(values) / len(values) if values else None


def aggregate_frontend_metrics(results: Iterable[FrontendMetrics]) -> Optional[FrontendMetrics]:
    """
    Average audits of several pages into one record.

    Each field is averaged over the pages that reported it; a field no page
    reported stays absent. Display strings are taken from the first page.

    Returns:
        Aggregated FrontendMetrics, or None when there are no results
    """
    results = list(results)
    if not results:
        return None

    first = results[0]

    scores = {
        name: _mean([getattr(r, name) for r in results if getattr(r, name) is not None])
        for name in SCORE_FIELDS
    }
    details = AuditDetails(
        **{
            f"{name}_raw": _mean([
                getattr(r.details, f"{name}_raw")
                for r in results
                if getattr(r.details, f"{name}_raw") is not None
            ])
            for name in METRIC_AUDITS
        }
    )

    logger.debug(f"Aggregated audit results from {len(results)} pages")

    return FrontendMetrics(
        url=first.url,
        details=details,
        **scores,
        **{name: getattr(first, name) for name in METRIC_AUDITS},
    )


def _as_float(value: Any) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def parse_network_requests(
    lhr: Dict[str, Any],
    page_url: str,
    classifier: Optional[ApiClassifier] = None,
    rng: Optional[random.Random] = None,
    depth: int = 0,
) -> List[ApiCallRecord]:
    """
    Extract API calls from a Lighthouse ``network-requests`` audit.

    Each item is classified like live traffic, and its duration is derived
    by the timing estimator from whichever timestamp fields the report
    carries. Items keep report order.

    Args:
        lhr: Lighthouse report JSON
        page_url: Page the report was taken on
        classifier: API classifier; defaults to the URL-pattern heuristic
        rng: Random source for estimated timings
        depth: Crawl depth recorded on the calls

    Returns:
        ApiCallRecords; empty when the report has no network-requests items
    """
    audit = (lhr.get("audits") or {}).get("network-requests") or {}
    items = (audit.get("details") or {}).get("items")
    if not items:
        logger.warning(f"No network-requests audit in Lighthouse report for {page_url}")
        return []

    classifier = classifier or default_classifier
    calls: List[ApiCallRecord] = []

    for item in items:
        url = item.get("url")
        resource_type = item.get("resourceType") or ""
        if not url or not classifier.is_api_call(url, resource_type):
            continue

        timing = estimate_duration(item, rng=rng)
        status = item.get("statusCode")
        start = _as_float(item.get("networkRequestTime") or item.get("startTime"))
        end = _as_float(item.get("networkEndTime") or item.get("endTime"))

        call = ApiCallRecord(
            id=generate_call_id(),
            url=url,
            method=(item.get("method") or "GET").upper(),
            resource_type=resource_type.lower(),
            start_time=start or 0.0,
            page=page_url,
            depth=depth,
            status=status if isinstance(status, int) and status > 0 else None,
            end_time=end,
            duration_ms=timing.ms,
            timing=timing,
            payload_size_bytes=int(_as_float(item.get("transferSize")) or 0),
        )
        logger.debug(f"API call {call.endpoint}: {timing.ms}ms (method used: {timing_method(item)})")
        calls.append(call)

    logger.info(f"Found {len(items)} network requests on {page_url}, {len(calls)} API calls")
    return calls
