"""End-to-end tests for the website analysis pipeline."""

import asyncio
from dataclasses import replace
from unittest.mock import AsyncMock, patch

import pytest

from sitepulse.analysis import WebsiteAnalyzer, calculate_overall_score, find_critical_issues
from sitepulse.config import Config
from sitepulse.crawler import CrawlScheduler
from sitepulse.models import (
    AlertType,
    ApiCallRecord,
    AuditDetails,
    CrawlResult,
    Estimated,
    FrontendImpact,
    FrontendMetrics,
    RenderingImpact,
)

from fakes import BASE

pytest_plugins = ('pytest_asyncio',)


class RecordingAuditEngine:
    """Audit engine returning fixed metrics and remembering what it audited."""

    def __init__(self, performance=0.62, failing=(), delay=0.0):
        self.performance = performance
        self.failing = set(failing)
        self.delay = delay
        self.audited = []

    async def audit(self, url):
        self.audited.append(url)
        if self.delay:
            await asyncio.sleep(self.delay)
        if url in self.failing:
            raise RuntimeError(f"Lighthouse crashed on {url}")
        return FrontendMetrics(
            url=url,
            performance=self.performance,
            details=AuditDetails(lcp_raw=2600),
        )


class TestWebsiteAnalyzer:
    """Test cases for WebsiteAnalyzer."""

    @pytest.mark.asyncio
    async def test_three_page_scenario(self, navigator, config, no_sleep):
        """Test a failing slow endpoint on page B surfaces as critical alerts."""
        analyzer = WebsiteAnalyzer(navigator, config=config, sleep=no_sleep)

        analysis = await analyzer.analyze(f"{BASE}/", max_pages=10, max_depth=2)

        page_b = analysis.crawl.page_data[f"{BASE}/b"]
        assert page_b.api_call_count >= 1

        orders = next(call for call in analysis.api_calls if call.endpoint == "/api/orders")
        assert orders.status == 500
        assert orders.duration_ms == pytest.approx(1200, abs=1)
        assert isinstance(orders.frontend_impact, FrontendImpact)

        critical = {a.category: a for a in analysis.alerts if a.type == AlertType.CRITICAL}
        assert "API Performance" in critical
        assert "API Reliability" in critical
        assert any("/api/orders" in detail for detail in critical["API Performance"].details)
        assert critical["API Reliability"].details == ("GET /api/orders: 500",)
        assert critical["API Reliability"].value == "33.3%"

    @pytest.mark.asyncio
    async def test_summary_and_score(self, navigator, config, no_sleep):
        analyzer = WebsiteAnalyzer(navigator, config=config, sleep=no_sleep)

        analysis = await analyzer.analyze(f"{BASE}/")

        assert analysis.summary == {
            'total_pages_analyzed': 3,
            'total_api_calls_found': 3,
            'average_api_response_time': 467,
            'pages_with_slow_apis': 1,
            'critical_issues_found': 1,
        }
        assert analysis.critical_issues[0]['type'] == 'api_performance'
        assert analysis.critical_issues[0]['affected_apis'] == [f"{BASE}/api/orders"]
        assert {r['type'] for r in analysis.recommendations} == {'api_optimization', 'api_reliability'}
        assert analysis.overall_score == 85
        assert "CRITICAL ALERTS (2)" in analysis.alerts_formatted

        assert set(analysis.metrics_formatted) == {'overall', 'frontend', 'api'}
        assert "• Total API Calls: 3" in analysis.metrics_formatted['overall']
        assert "• Average Response Time: 467ms" in analysis.metrics_formatted['overall']
        assert "/api/orders\tGET\t500\t" in analysis.metrics_formatted['api']
        assert "• GET /api/orders: 500 Error 500" in analysis.metrics_formatted['api']

    @pytest.mark.asyncio
    async def test_calls_correlated_on_their_own_page(self, navigator, config, no_sleep):
        analyzer = WebsiteAnalyzer(navigator, config=config, sleep=no_sleep)

        analysis = await analyzer.analyze(f"{BASE}/")

        # Three crawl sessions followed by one correlation session per page
        assert navigator.navigations[3:] == [f"{BASE}/", f"{BASE}/b", f"{BASE}/c"]
        assert [c.endpoint for c in analysis.api_calls] == ["/api/items", "/api/orders", "/api/reviews"]

    @pytest.mark.asyncio
    async def test_audits_and_frontend_alerts(self, navigator, config, no_sleep):
        engine = RecordingAuditEngine(performance=0.62, failing={f"{BASE}/c"})
        analyzer = WebsiteAnalyzer(navigator, audit_engine=engine, config=config, sleep=no_sleep)

        analysis = await analyzer.analyze(f"{BASE}/")

        assert engine.audited == [f"{BASE}/", f"{BASE}/b", f"{BASE}/c"]
        assert [a.url for a in analysis.audits] == [f"{BASE}/", f"{BASE}/b"]
        assert analysis.frontend_metrics.performance == pytest.approx(0.62)
        assert analysis.overall_score == 62

        warnings = [a.metric for a in analysis.alerts if a.type == AlertType.WARNING]
        assert "Largest Contentful Paint (LCP)" in warnings
        assert "Performance Score" in warnings

    @pytest.mark.asyncio
    async def test_audit_page_limit(self, navigator, no_sleep):
        engine = RecordingAuditEngine()
        analyzer = WebsiteAnalyzer(
            navigator,
            audit_engine=engine,
            config=Config(simulate_interactions=False, audit_pages=2),
            sleep=no_sleep,
        )

        await analyzer.analyze(f"{BASE}/")

        assert engine.audited == [f"{BASE}/", f"{BASE}/b"]

    @pytest.mark.asyncio
    async def test_audit_timeout_is_isolated(self, navigator, config, no_sleep):
        engine = RecordingAuditEngine(delay=1.0)
        analyzer = WebsiteAnalyzer(
            navigator, audit_engine=engine, config=config, audit_timeout=0.01, sleep=no_sleep
        )

        analysis = await analyzer.analyze(f"{BASE}/")

        assert analysis.audits == []
        assert analysis.frontend_metrics is None
        assert analysis.crawl.total_pages == 3

    @pytest.mark.asyncio
    async def test_budgets_are_clamped(self, navigator, config, no_sleep):
        analyzer = WebsiteAnalyzer(navigator, config=config, sleep=no_sleep)

        with patch.object(CrawlScheduler, "crawl", AsyncMock(return_value=CrawlResult())) as crawl:
            analysis = await analyzer.analyze(f"{BASE}/", max_pages=500, max_depth=50)

        crawl.assert_awaited_once_with(f"{BASE}/", max_pages=50, max_depth=5)
        assert analysis.api_calls == []
        assert analysis.overall_score == 100


class TestOverallScore:
    """Test cases for calculate_overall_score."""

    def _call(self, duration_ms, status=200, impact=None):
        return ApiCallRecord(
            id=f"{duration_ms}-{status}",
            url=f"{BASE}/api/x",
            method="GET",
            resource_type="fetch",
            start_time=0.0,
            page=f"{BASE}/",
            depth=0,
            status=status,
            duration_ms=duration_ms,
            frontend_impact=impact,
        )

    def test_penalties(self):
        calls = [self._call(1500), self._call(1001, status=500), self._call(200, status=404)]
        assert calculate_overall_score(calls, None) == 70

    def test_floor_at_zero(self):
        calls = [self._call(100, status=500)] * 20
        assert calculate_overall_score(calls, None) == 0

    def test_capped_by_performance_score(self):
        assert calculate_overall_score([], FrontendMetrics(performance=0.41)) == 41

    def test_missing_performance_score_does_not_cap(self):
        assert calculate_overall_score([], FrontendMetrics()) == 100

    def test_unmeasured_calls_do_not_count_as_errors(self):
        assert calculate_overall_score([self._call(100, status=None)], None) == 100

    def test_estimated_durations_are_not_penalized(self):
        estimated = replace(self._call(1500, status=None), timing=Estimated(ms=1500, method="estimated"))

        assert calculate_overall_score([estimated], None) == 100
        assert find_critical_issues([estimated]) == []

    def test_high_impact_reported(self):
        impact = FrontendImpact(
            fcp_delta_ms=0, cls_delta=0, resource_count_delta=0, dom_update_delta_ms=0,
            render_delta_ms=180, layout_shift_delta=0, memory_delta_bytes=0,
            rendering_impact=RenderingImpact.HIGH,
        )
        issues = find_critical_issues([self._call(100, impact=impact)])

        assert [i['type'] for i in issues] == ['frontend_impact']
