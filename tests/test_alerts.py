"""Tests for the performance alert engine."""

from dataclasses import replace

import pytest

from sitepulse.alerts import format_alerts_for_display, generate_alerts, summarize_alerts
from sitepulse.models import AlertType, ApiCallRecord, AuditDetails, Estimated, FrontendMetrics


def metrics(**details) -> FrontendMetrics:
    return FrontendMetrics(url="https://shop.example.com/", details=AuditDetails(**details))


def make_calls(count, status=200, duration_ms=100, size=0, path="/api/items"):
    return [
        ApiCallRecord(
            id=f"{path}-{status}-{i}",
            url=f"https://shop.example.com{path}",
            method="GET",
            resource_type="fetch",
            start_time=0.0,
            page="https://shop.example.com/",
            depth=0,
            status=status,
            duration_ms=duration_ms,
            payload_size_bytes=size,
        )
        for i in range(count)
    ]


class TestFrontendAlerts:
    """Test cases for audit metric thresholds."""

    def test_lcp_critical(self):
        alerts = generate_alerts(metrics(lcp_raw=4500))

        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.type == AlertType.CRITICAL
        assert alert.category == "Core Web Vitals"
        assert alert.metric == "Largest Contentful Paint (LCP)"
        assert alert.value == "4.50s"
        assert alert.threshold == "4s"

    def test_lcp_warning(self):
        alerts = generate_alerts(metrics(lcp_raw=2600))

        assert len(alerts) == 1
        assert alerts[0].type == AlertType.WARNING
        assert alerts[0].value == "2.60s"
        assert alerts[0].threshold == "2.5s"

    def test_below_threshold(self):
        assert generate_alerts(metrics(fcp_raw=1999, lcp_raw=2499, cls_raw=0.05)) == []

    def test_thresholds_are_inclusive(self):
        alerts = generate_alerts(metrics(fcp_raw=3000))
        assert alerts[0].type == AlertType.CRITICAL

    def test_cls_formatting(self):
        alert = generate_alerts(metrics(cls_raw=0.3))[0]
        assert (alert.value, alert.threshold) == ("0.300", "0.25")

        alert = generate_alerts(metrics(cls_raw=0.12))[0]
        assert (alert.type, alert.threshold) == (AlertType.WARNING, "0.10")

    def test_tbt_formatting(self):
        alert = generate_alerts(metrics(tbt_raw=650))[0]
        assert (alert.category, alert.value, alert.threshold) == ("Performance", "650ms", "600ms")

    def test_tti_and_speed_index(self):
        alerts = generate_alerts(metrics(tti_raw=8000, si_raw=3500))

        assert [(a.metric, a.type) for a in alerts] == [
            ("Time to Interactive (TTI)", AlertType.CRITICAL),
            ("Speed Index (SI)", AlertType.WARNING),
        ]
        assert alerts[0].threshold == "7.3s"

    @pytest.mark.parametrize("field,category", [
        ("performance", "Overall"),
        ("accessibility", "Accessibility"),
        ("best_practices", "Best Practices"),
        ("seo", "SEO"),
    ])
    def test_category_scores(self, field, category):
        critical = generate_alerts(FrontendMetrics(**{field: 0.45}))
        assert len(critical) == 1
        assert critical[0].category == category
        assert (critical[0].value, critical[0].threshold) == ("45/100", "50/100")

        warning = generate_alerts(FrontendMetrics(**{field: 0.7}))
        assert warning[0].type == AlertType.WARNING
        assert warning[0].threshold == "70/100"

        assert generate_alerts(FrontendMetrics(**{field: 0.9})) == []

    def test_absent_metrics_are_skipped(self):
        assert generate_alerts(FrontendMetrics()) == []

    def test_camel_case_dict_input(self):
        alerts = generate_alerts({"bestPractices": 0.4, "details": {"lcpRaw": 4100}})
        assert {a.category for a in alerts} == {"Best Practices", "Core Web Vitals"}


class TestApiAlerts:
    """Test cases for API thresholds."""

    def test_slow_calls_critical_only(self):
        calls = make_calls(2, duration_ms=1200) + make_calls(1, duration_ms=600)

        alerts = generate_alerts(api_metrics=calls)

        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.category == "API Performance"
        assert alert.type == AlertType.CRITICAL
        assert (alert.value, alert.threshold) == ("2 calls", "1000ms")
        assert alert.details == ("GET /api/items: 1200ms", "GET /api/items: 1200ms")

    def test_slow_calls_warning(self):
        alerts = generate_alerts(api_metrics=make_calls(1, duration_ms=650))
        assert (alerts[0].type, alerts[0].value, alerts[0].threshold) == (AlertType.WARNING, "1 calls", "500ms")

    def test_details_are_truncated(self):
        alerts = generate_alerts(api_metrics=make_calls(5, duration_ms=1500))
        assert alerts[0].details[:3] == ("GET /api/items: 1500ms",) * 3
        assert alerts[0].details[3] == "... and 2 more"
        assert len(alerts[0].details) == 4

    def test_error_rate_warning(self):
        calls = make_calls(37) + make_calls(3, status=503, path="/api/orders")

        alerts = generate_alerts(api_metrics=calls)

        assert len(alerts) == 1
        assert alerts[0].category == "API Reliability"
        assert alerts[0].type == AlertType.WARNING
        assert (alerts[0].value, alerts[0].threshold) == ("7.5%", "5.0%")
        assert alerts[0].details[0] == "GET /api/orders: 503"

    def test_error_rate_critical_only(self):
        calls = make_calls(35) + make_calls(5, status=500)

        alerts = generate_alerts(api_metrics=calls)

        assert [(a.category, a.type) for a in alerts] == [("API Reliability", AlertType.CRITICAL)]
        assert (alerts[0].value, alerts[0].threshold) == ("12.5%", "10.0%")

    def test_error_rate_ignores_calls_without_response(self):
        calls = make_calls(19) + make_calls(1, status=404) + make_calls(30, status=None)

        alerts = generate_alerts(api_metrics=calls)

        assert alerts[0].value == "5.0%"
        assert alerts[0].type == AlertType.WARNING

    def test_no_errors_no_alert(self):
        assert generate_alerts(api_metrics=make_calls(10)) == []

    def test_payload_critical(self):
        alerts = generate_alerts(api_metrics=make_calls(1, size=6 * 1024 * 1024, path="/api/export"))

        assert alerts[0].category == "API Efficiency"
        assert (alerts[0].value, alerts[0].threshold) == ("1 calls", "5MB")
        assert alerts[0].details == ("GET /api/export: 6MB",)

    def test_payload_warning(self):
        alerts = generate_alerts(api_metrics=make_calls(2, size=2 * 1024 * 1024))
        assert (alerts[0].type, alerts[0].threshold) == (AlertType.WARNING, "1MB")

    def test_estimated_durations_never_alert(self):
        """Test an unanswered call with a synthetic duration is not reported as slow."""
        unanswered = [
            replace(call, timing=Estimated(ms=ms, method="estimated"), duration_ms=ms)
            for call, ms in zip(make_calls(2, status=None), (560, 1500))
        ]

        assert generate_alerts(api_metrics=unanswered) == []

    def test_estimated_calls_do_not_join_measured_slow_calls(self):
        calls = make_calls(1, duration_ms=650, path="/api/slow") + [
            replace(make_calls(1, status=None)[0], timing=Estimated(ms=900, method="estimated"), duration_ms=900)
        ]

        alerts = generate_alerts(api_metrics=calls)

        assert alerts[0].value == "1 calls"
        assert alerts[0].details == ("GET /api/slow: 650ms",)

    def test_empty_call_set(self):
        assert generate_alerts(api_metrics=[]) == []


class TestAlertEngine:
    """Cross-cutting properties of generate_alerts."""

    def test_nothing_to_check(self):
        assert generate_alerts(None, None) == []

    def test_idempotent(self):
        frontend = metrics(lcp_raw=2600, cls_raw=0.3)
        calls = make_calls(3, duration_ms=1100) + make_calls(1, status=500)

        assert generate_alerts(frontend, calls) == generate_alerts(frontend, calls)

    def test_critical_alerts_come_first(self):
        frontend = metrics(lcp_raw=2600, tbt_raw=700)
        calls = make_calls(1, duration_ms=1100)

        alerts = generate_alerts(frontend, calls)

        assert [(a.metric, a.type) for a in alerts] == [
            ("Total Blocking Time (TBT)", AlertType.CRITICAL),
            ("Slow API Calls", AlertType.CRITICAL),
            ("Largest Contentful Paint (LCP)", AlertType.WARNING),
        ]

    def test_summarize(self):
        alerts = generate_alerts(metrics(lcp_raw=2600, tbt_raw=700))
        assert summarize_alerts(alerts) == {"total": 2, "critical": 1, "warning": 1}


class TestFormatAlertsForDisplay:
    """Test cases for the text rendering."""

    def test_no_alerts(self):
        assert format_alerts_for_display([]) == (
            "No performance alerts detected. Your website is performing well!"
        )

    def test_sections_and_summary(self):
        alerts = generate_alerts(metrics(lcp_raw=2600), make_calls(5, duration_ms=1500))

        text = format_alerts_for_display(alerts)

        assert text.index("CRITICAL ALERTS (1)") < text.index("WARNING ALERTS (1)") < text.index("SUMMARY")
        assert "   Value: 5 calls (Threshold: 1000ms)" in text
        assert "     - ... and 2 more" in text
        assert "Total Alerts: 2" in text
        assert "Critical Alerts: 1" in text
