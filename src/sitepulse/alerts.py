"""
Performance Alert Engine

Turns audit metrics and observed API calls into severity-ranked alerts.
Every check compares against a warning and a critical threshold; the
critical comparison runs first and a warning is only raised when the
critical one did not fire. Metrics that were not measured are skipped.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from sitepulse.api_analysis import format_bytes
from sitepulse.config import AlertThresholds, default_thresholds
from sitepulse.constants import ALERT_DETAIL_LIMIT
from sitepulse.models import Alert, AlertType, ApiCallRecord, FrontendMetrics

logger = logging.getLogger(__name__)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _seconds(ms: float) -> str:
    return f"{ms / 1000:.2f}s"


def _seconds_threshold(ms: float) -> str:
    return f"{ms / 1000:g}s"


def _milliseconds(ms: float) -> str:
    return f"{ms:.0f}ms"


def _milliseconds_threshold(ms: float) -> str:
    return f"{ms:g}ms"


def _score(score: float) -> str:
    return f"{_round_half_up(score * 100)}/100"


@dataclass(frozen=True)
class MetricRule:
    """Thresholds and wording for one audited metric."""

    field: str
    category: str
    metric: str
    threshold_key: str
    higher_is_worse: bool
    format_value: Callable[[float], str]
    format_threshold: Callable[[float], str]
    critical_message: str
    warning_message: str
    critical_recommendation: str
    warning_recommendation: str

    def read(self, metrics: FrontendMetrics) -> Optional[float]:
        if self.field.endswith("_raw"):
            return getattr(metrics.details, self.field)
        return getattr(metrics, self.field)

    def breaches(self, value: float, threshold: float) -> bool:
        return value >= threshold if self.higher_is_worse else value <= threshold


METRIC_RULES = (
    MetricRule(
        field="fcp_raw",
        category="Core Web Vitals",
        metric="First Contentful Paint (FCP)",
        threshold_key="fcp",
        higher_is_worse=True,
        format_value=_seconds,
        format_threshold=_seconds_threshold,
        critical_message="First Contentful Paint is critically slow",
        warning_message="First Contentful Paint is slow",
        critical_recommendation=(
            "Optimize critical rendering path, reduce server response time, "
            "and minimize render-blocking resources."
        ),
        warning_recommendation="Consider optimizing server response time and reducing render-blocking resources.",
    ),
    MetricRule(
        field="lcp_raw",
        category="Core Web Vitals",
        metric="Largest Contentful Paint (LCP)",
        threshold_key="lcp",
        higher_is_worse=True,
        format_value=_seconds,
        format_threshold=_seconds_threshold,
        critical_message="Largest Contentful Paint is critically slow",
        warning_message="Largest Contentful Paint is slow",
        critical_recommendation=(
            "Optimize and prioritize loading of hero images and text. "
            "Consider using CDN and image optimization."
        ),
        warning_recommendation="Consider optimizing hero images and text loading.",
    ),
    MetricRule(
        field="cls_raw",
        category="Core Web Vitals",
        metric="Cumulative Layout Shift (CLS)",
        threshold_key="cls",
        higher_is_worse=True,
        format_value=lambda v: f"{v:.3f}",
        format_threshold=lambda v: f"{v:.2f}",
        critical_message="Cumulative Layout Shift is critically high",
        warning_message="Cumulative Layout Shift is high",
        critical_recommendation=(
            "Set explicit width/height for images, ads, embeds, and dynamically injected content."
        ),
        warning_recommendation="Consider setting explicit dimensions for images and dynamic content.",
    ),
    MetricRule(
        field="tti_raw",
        category="Performance",
        metric="Time to Interactive (TTI)",
        threshold_key="tti",
        higher_is_worse=True,
        format_value=_seconds,
        format_threshold=_seconds_threshold,
        critical_message="Time to Interactive is critically slow",
        warning_message="Time to Interactive is slow",
        critical_recommendation=(
            "Reduce JavaScript execution time, minimize main thread work, "
            "and defer non-critical JavaScript."
        ),
        warning_recommendation="Consider reducing JavaScript execution time and deferring non-critical scripts.",
    ),
    MetricRule(
        field="tbt_raw",
        category="Performance",
        metric="Total Blocking Time (TBT)",
        threshold_key="tbt",
        higher_is_worse=True,
        format_value=_milliseconds,
        format_threshold=_milliseconds_threshold,
        critical_message="Total Blocking Time is critically high",
        warning_message="Total Blocking Time is high",
        critical_recommendation=(
            "Minimize long tasks, optimize JavaScript execution, and consider code-splitting."
        ),
        warning_recommendation="Consider optimizing JavaScript execution and breaking up long tasks.",
    ),
    MetricRule(
        field="si_raw",
        category="Performance",
        metric="Speed Index (SI)",
        threshold_key="si",
        higher_is_worse=True,
        format_value=_seconds,
        format_threshold=_seconds_threshold,
        critical_message="Speed Index is critically slow",
        warning_message="Speed Index is slow",
        critical_recommendation=(
            "Optimize page load performance, minimize critical rendering path, "
            "and prioritize visible content."
        ),
        warning_recommendation="Consider optimizing page load performance and prioritizing visible content.",
    ),
    MetricRule(
        field="performance",
        category="Overall",
        metric="Performance Score",
        threshold_key="score",
        higher_is_worse=False,
        format_value=_score,
        format_threshold=_score,
        critical_message="Overall performance score is critically low",
        warning_message="Overall performance score is low",
        critical_recommendation="Review all performance metrics and prioritize fixing critical issues first.",
        warning_recommendation="Review performance metrics and address the most impactful issues.",
    ),
    MetricRule(
        field="accessibility",
        category="Accessibility",
        metric="Accessibility Score",
        threshold_key="score",
        higher_is_worse=False,
        format_value=_score,
        format_threshold=_score,
        critical_message="Accessibility score is critically low",
        warning_message="Accessibility score is low",
        critical_recommendation=(
            "Address critical accessibility issues like missing alt text, "
            "insufficient color contrast, and improper ARIA usage."
        ),
        warning_recommendation="Review accessibility issues and address the most impactful problems.",
    ),
    MetricRule(
        field="best_practices",
        category="Best Practices",
        metric="Best Practices Score",
        threshold_key="score",
        higher_is_worse=False,
        format_value=_score,
        format_threshold=_score,
        critical_message="Best practices score is critically low",
        warning_message="Best practices score is low",
        critical_recommendation=(
            "Fix browser console errors, serve all resources over HTTPS, and replace deprecated APIs."
        ),
        warning_recommendation="Review failing best-practice audits and fix the most common violations.",
    ),
    MetricRule(
        field="seo",
        category="SEO",
        metric="SEO Score",
        threshold_key="score",
        higher_is_worse=False,
        format_value=_score,
        format_threshold=_score,
        critical_message="SEO score is critically low",
        warning_message="SEO score is low",
        critical_recommendation=(
            "Add missing titles and meta descriptions, make pages crawlable, and fix invalid links."
        ),
        warning_recommendation="Review SEO audits and address missing metadata.",
    ),
)


def _limit_details(details: Sequence[str], limit: int = ALERT_DETAIL_LIMIT) -> tuple:
    """First ``limit`` details plus a summary line for the rest."""
    shown = list(details[:limit])
    if len(details) > limit:
        shown.append(f"... and {len(details) - limit} more")
    return tuple(shown)


def _check_metric(rule: MetricRule, value: float, thresholds: AlertThresholds) -> Optional[Alert]:
    critical = getattr(thresholds, f"{rule.threshold_key}_critical")
    warning = getattr(thresholds, f"{rule.threshold_key}_warning")

    if rule.breaches(value, critical):
        alert_type, threshold = AlertType.CRITICAL, critical
        message, recommendation = rule.critical_message, rule.critical_recommendation
    elif rule.breaches(value, warning):
        alert_type, threshold = AlertType.WARNING, warning
        message, recommendation = rule.warning_message, rule.warning_recommendation
    else:
        return None

    return Alert(
        type=alert_type,
        category=rule.category,
        metric=rule.metric,
        value=rule.format_value(value),
        threshold=rule.format_threshold(threshold),
        message=message,
        recommendation=recommendation,
    )


def check_frontend_metrics(
    metrics: FrontendMetrics,
    thresholds: AlertThresholds = default_thresholds,
) -> List[Alert]:
    """Alerts for Core Web Vitals, lab metrics and category scores."""
    alerts = []
    for rule in METRIC_RULES:
        value = rule.read(metrics)
        if value is None:
            continue
        alert = _check_metric(rule, value, thresholds)
        if alert:
            alerts.append(alert)
    return alerts


def _check_response_times(calls: List[ApiCallRecord], thresholds: AlertThresholds) -> Optional[Alert]:
    # Estimated durations are synthetic and never raise a latency alert
    calls = [c for c in calls if c.has_measured_duration]
    critical = [c for c in calls if c.duration_ms >= thresholds.response_time_critical]
    if critical:
        return Alert(
            type=AlertType.CRITICAL,
            category="API Performance",
            metric="Slow API Calls",
            value=f"{len(critical)} calls",
            threshold=_milliseconds_threshold(thresholds.response_time_critical),
            message=f"{len(critical)} API calls are critically slow",
            recommendation=(
                "Optimize server response time, implement caching, "
                "and consider API endpoint consolidation."
            ),
            details=_limit_details([f"{c.method} {c.endpoint}: {c.duration_ms}ms" for c in critical]),
        )

    warning = [
        c for c in calls
        if thresholds.response_time_warning <= c.duration_ms < thresholds.response_time_critical
    ]
    if warning:
        return Alert(
            type=AlertType.WARNING,
            category="API Performance",
            metric="Slow API Calls",
            value=f"{len(warning)} calls",
            threshold=_milliseconds_threshold(thresholds.response_time_warning),
            message=f"{len(warning)} API calls are slow",
            recommendation="Consider optimizing server response time and implementing caching.",
            details=_limit_details([f"{c.method} {c.endpoint}: {c.duration_ms}ms" for c in warning]),
        )
    return None


def _check_error_rate(calls: List[ApiCallRecord], thresholds: AlertThresholds) -> Optional[Alert]:
    responded = [c for c in calls if c.has_response]
    errors = [c for c in responded if c.is_error]
    if not errors:
        return None

    error_rate = len(errors) / len(responded)
    details = _limit_details([f"{c.method} {c.endpoint}: {c.status}" for c in errors])

    if error_rate >= thresholds.error_rate_critical:
        return Alert(
            type=AlertType.CRITICAL,
            category="API Reliability",
            metric="API Error Rate",
            value=f"{error_rate * 100:.1f}%",
            threshold=f"{thresholds.error_rate_critical * 100:.1f}%",
            message="API error rate is critically high",
            recommendation=(
                "Investigate and fix failing API endpoints. "
                "Consider implementing retry logic and error handling."
            ),
            details=details,
        )
    if error_rate >= thresholds.error_rate_warning:
        return Alert(
            type=AlertType.WARNING,
            category="API Reliability",
            metric="API Error Rate",
            value=f"{error_rate * 100:.1f}%",
            threshold=f"{thresholds.error_rate_warning * 100:.1f}%",
            message="API error rate is high",
            recommendation="Review failing API endpoints and implement proper error handling.",
            details=details,
        )
    return None


def _check_payload_sizes(calls: List[ApiCallRecord], thresholds: AlertThresholds) -> Optional[Alert]:
    critical = [c for c in calls if c.payload_size_bytes >= thresholds.payload_size_critical]
    if critical:
        return Alert(
            type=AlertType.CRITICAL,
            category="API Efficiency",
            metric="Large API Payloads",
            value=f"{len(critical)} calls",
            threshold=format_bytes(thresholds.payload_size_critical),
            message=f"{len(critical)} API calls have excessively large payloads",
            recommendation=(
                "Implement pagination, reduce payload size, use compression, "
                "and consider GraphQL for selective data fetching."
            ),
            details=_limit_details(
                [f"{c.method} {c.endpoint}: {format_bytes(c.payload_size_bytes)}" for c in critical]
            ),
        )

    warning = [
        c for c in calls
        if thresholds.payload_size_warning <= c.payload_size_bytes < thresholds.payload_size_critical
    ]
    if warning:
        return Alert(
            type=AlertType.WARNING,
            category="API Efficiency",
            metric="Large API Payloads",
            value=f"{len(warning)} calls",
            threshold=format_bytes(thresholds.payload_size_warning),
            message=f"{len(warning)} API calls have large payloads",
            recommendation="Consider implementing pagination and reducing payload size.",
            details=_limit_details(
                [f"{c.method} {c.endpoint}: {format_bytes(c.payload_size_bytes)}" for c in warning]
            ),
        )
    return None


def check_api_calls(
    calls: Iterable[ApiCallRecord],
    thresholds: AlertThresholds = default_thresholds,
) -> List[Alert]:
    """Alerts for response time, error rate and payload size over a call set."""
    calls = list(calls)
    if not calls:
        return []

    checks = (_check_response_times, _check_error_rate, _check_payload_sizes)
    return [alert for alert in (check(calls, thresholds) for check in checks) if alert]


def generate_alerts(
    frontend_metrics: Optional[Union[FrontendMetrics, Dict[str, Any]]] = None,
    api_metrics: Optional[Iterable[ApiCallRecord]] = None,
) -> List[Alert]:
    """
    Generate performance alerts.

    Args:
        frontend_metrics: Audit result (FrontendMetrics or its camelCase dict form)
        api_metrics: Observed API calls

    Returns:
        Alerts, critical first then warnings, each group in check order.
        Empty when both inputs are absent.
    """
    alerts: List[Alert] = []

    if frontend_metrics is not None:
        if isinstance(frontend_metrics, dict):
            frontend_metrics = FrontendMetrics.from_dict(frontend_metrics)
        alerts.extend(check_frontend_metrics(frontend_metrics))

    if api_metrics is not None:
        alerts.extend(check_api_calls(api_metrics))

    ordered = (
        [a for a in alerts if a.type == AlertType.CRITICAL]
        + [a for a in alerts if a.type == AlertType.WARNING]
    )

    if ordered:
        logger.info(f"Generated {len(ordered)} performance alerts")
    return ordered


def summarize_alerts(alerts: Sequence[Alert]) -> Dict[str, int]:
    """Count alerts by severity."""
    critical = sum(1 for a in alerts if a.type == AlertType.CRITICAL)
    return {
        "total": len(alerts),
        "critical": critical,
        "warning": len(alerts) - critical,
    }


def _format_section(title: str, alerts: List[Alert]) -> List[str]:
    lines = [f"{title} ({len(alerts)})", "=" * 20, ""]
    for index, alert in enumerate(alerts, 1):
        lines.append(f"{index}. {alert.message}")
        lines.append(f"   Metric: {alert.metric}")
        lines.append(f"   Value: {alert.value} (Threshold: {alert.threshold})")
        lines.append(f"   Recommendation: {alert.recommendation}")
        if alert.details:
            lines.append("   Details:")
            lines.extend(f"     - {detail}" for detail in alert.details)
        lines.append("")
    return lines


def format_alerts_for_display(alerts: Sequence[Alert]) -> str:
    """
    Render alerts as plain text.

    Critical section, warning section, then a summary of counts.
    """
    if not alerts:
        return "No performance alerts detected. Your website is performing well!"

    critical = [a for a in alerts if a.type == AlertType.CRITICAL]
    warning = [a for a in alerts if a.type == AlertType.WARNING]

    lines: List[str] = []
    if critical:
        lines.extend(_format_section("CRITICAL ALERTS", critical))
    if warning:
        lines.extend(_format_section("WARNING ALERTS", warning))

    counts = summarize_alerts(alerts)
    lines.extend([
        "SUMMARY",
        "=" * 20,
        "",
        f"Total Alerts: {counts['total']}",
        f"Critical Alerts: {counts['critical']}",
        f"Warning Alerts: {counts['warning']}",
    ])
    return "\n".join(lines) + "\n"
