"""Website analysis pipeline: crawl, correlate, audit, alert."""

import asyncio
import logging
import math
from typing import Awaitable, Callable, Dict, List, Optional

from sitepulse.alerts import format_alerts_for_display, generate_alerts
from sitepulse.api_analysis import analyze_api_calls, average_response_time
from sitepulse.audit import AuditEngine, aggregate_frontend_metrics
from sitepulse.classifier import ApiClassifier
from sitepulse.config import Config
from sitepulse.constants import (
    ERROR_API_SCORE_PENALTY,
    MAX_DEPTH_LIMIT,
    MAX_PAGES_LIMIT,
    SITE_SLOW_API_MS,
    SLOW_API_SCORE_PENALTY,
)
from sitepulse.correlator import ImpactCorrelator
from sitepulse.crawler import CrawlScheduler
from sitepulse.models import (
    ApiCallRecord,
    CrawlResult,
    FrontendImpact,
    FrontendMetrics,
    RenderingImpact,
    WebsiteAnalysis,
)
from sitepulse.navigator import Navigator
from sitepulse.report import format_metrics_for_display

logger = logging.getLogger(__name__)


def _is_slow(call: ApiCallRecord) -> bool:
    return call.has_measured_duration and call.duration_ms > SITE_SLOW_API_MS


def _is_high_impact(call: ApiCallRecord) -> bool:
    impact = call.frontend_impact
    return isinstance(impact, FrontendImpact) and impact.rendering_impact == RenderingImpact.HIGH


def count_pages_with_slow_apis(calls: List[ApiCallRecord]) -> int:
    return len({call.page for call in calls if _is_slow(call)})


def find_critical_issues(calls: List[ApiCallRecord]) -> List[Dict]:
    """Site-level issues: slow API calls and calls with high rendering impact."""
    issues = []

    slow = [call for call in calls if _is_slow(call)]
    if slow:
        issues.append({
            'type': 'api_performance',
            'severity': 'high',
            'message': f"{len(slow)} slow API calls detected across the website",
            'affected_apis': [call.url for call in slow],
        })

    high_impact = [call for call in calls if _is_high_impact(call)]
    if high_impact:
        issues.append({
            'type': 'frontend_impact',
            'severity': 'medium',
            'message': f"{len(high_impact)} API calls significantly impact frontend performance",
            'affected_apis': [call.url for call in high_impact],
        })

    return issues


def build_recommendations(calls: List[ApiCallRecord]) -> List[Dict]:
    recommendations = []

    if any(_is_slow(call) for call in calls):
        recommendations.append({
            'type': 'api_optimization',
            'priority': 'high',
            'message': "Optimize slow API endpoints or implement caching strategies",
        })

    if any(call.is_error for call in calls):
        recommendations.append({
            'type': 'api_reliability',
            'priority': 'high',
            'message': "Fix API endpoints returning error responses",
        })

    if any(_is_high_impact(call) for call in calls):
        recommendations.append({
            'type': 'frontend_rendering',
            'priority': 'medium',
            'message': "Defer rendering work triggered by API responses or batch DOM updates",
        })

    return recommendations


def calculate_overall_score(calls: List[ApiCallRecord], frontend: Optional[FrontendMetrics]) -> int:
    """
    Site score out of 100.

    Starts at 100, loses 5 per slow call and 10 per error call, is capped by
    the average audited performance score, and never drops below 0.
    """
    score = 100
    score -= sum(1 for call in calls if _is_slow(call)) * SLOW_API_SCORE_PENALTY
    score -= sum(1 for call in calls if call.is_error) * ERROR_API_SCORE_PENALTY

    if frontend is not None and frontend.performance is not None:
        score = min(score, frontend.performance * 100)

    return max(0, int(math.floor(score + 0.5)))


class WebsiteAnalyzer:
    """Runs the full crawl and correlate pipeline for one site."""

    def __init__(
        self,
        navigator: Navigator,
        audit_engine: Optional[AuditEngine] = None,
        config: Optional[Config] = None,
        classifier: Optional[ApiClassifier] = None,
        audit_timeout: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the analyzer.

        Args:
            navigator: Started navigator shared by crawl and correlation
            audit_engine: Optional Core Web Vitals auditor
            config: Runtime configuration
            classifier: API classifier passed to the crawler
            audit_timeout: Per-page audit timeout in seconds (None = unbounded)
            sleep: Awaitable sleep, replaceable in tests
        """
        self.navigator = navigator
        self.audit_engine = audit_engine
        self.config = config or Config()
        self.classifier = classifier
        self.audit_timeout = audit_timeout
        self._sleep = sleep

    async def analyze(
        self,
        url: str,
        max_pages: Optional[int] = None,
        max_depth: Optional[int] = None,
    ) -> WebsiteAnalysis:
        """
        Analyze a website end to end.

        Args:
            url: Base URL
            max_pages: Page budget (capped at 50)
            max_depth: Depth budget (capped at 5)

        Returns:
            WebsiteAnalysis
        """
        max_pages = min(self.config.max_pages if max_pages is None else max_pages, MAX_PAGES_LIMIT)
        max_depth = min(self.config.max_depth if max_depth is None else max_depth, MAX_DEPTH_LIMIT)

        logger.info(f"Starting website analysis for {url}")

        logger.info("Phase 1: Crawling website and discovering API calls...")
        scheduler = CrawlScheduler(
            self.navigator,
            config=self.config,
            classifier=self.classifier,
            sleep=self._sleep,
        )
        crawl = await scheduler.crawl(url, max_pages=max_pages, max_depth=max_depth)

        logger.info("Phase 2: Analyzing API impact on frontend metrics...")
        api_calls = await self._correlate_by_page(crawl.api_calls)

        logger.info("Phase 3: Auditing key pages...")
        audits = await self._audit_pages(crawl)
        frontend = aggregate_frontend_metrics(audits)

        api_analysis = analyze_api_calls(api_calls)
        alerts = generate_alerts(frontend, api_calls)
        critical_issues = find_critical_issues(api_calls)

        analysis = WebsiteAnalysis(
            url=url,
            crawl=crawl,
            api_calls=api_calls,
            api_analysis=api_analysis,
            audits=audits,
            frontend_metrics=frontend,
            alerts=alerts,
            alerts_formatted=format_alerts_for_display(alerts),
            metrics_formatted=format_metrics_for_display(frontend, api_analysis, api_calls),
            summary={
                'total_pages_analyzed': crawl.total_pages,
                'total_api_calls_found': crawl.total_api_calls,
                'average_api_response_time': average_response_time(api_calls),
                'pages_with_slow_apis': count_pages_with_slow_apis(api_calls),
                'critical_issues_found': len(critical_issues),
            },
            critical_issues=critical_issues,
            recommendations=build_recommendations(api_calls),
            overall_score=calculate_overall_score(api_calls, frontend),
        )

        logger.info(
            f"Website analysis finished: {crawl.total_pages} pages, "
            f"{crawl.total_api_calls} API calls, {len(alerts)} alerts, score {analysis.overall_score}"
        )
        return analysis

    async def _correlate_by_page(self, calls: List[ApiCallRecord]) -> List[ApiCallRecord]:
        """Correlate each page's calls on that page, keeping crawl order."""
        if not calls:
            return []

        groups: Dict[str, List[ApiCallRecord]] = {}
        for call in calls:
            groups.setdefault(call.page, []).append(call)

        correlator = ImpactCorrelator(self.navigator, config=self.config, sleep=self._sleep)
        enhanced_by_id: Dict[str, ApiCallRecord] = {}
        for page_url, page_calls in groups.items():
            logger.info(f"Correlating {len(page_calls)} API calls on {page_url}")
            for call in await correlator.correlate(page_calls, page_url):
                enhanced_by_id[call.id] = call

        return [enhanced_by_id[call.id] for call in calls]

    async def _audit_pages(self, crawl: CrawlResult) -> List[FrontendMetrics]:
        """Audit the first successfully loaded pages; failures are skipped."""
        if self.audit_engine is None:
            return []

        key_pages = [
            url for url in crawl.visited_urls
            if crawl.page_data.get(url) is not None and crawl.page_data[url].success
        ][:self.config.audit_pages]

        results: List[FrontendMetrics] = []
        for i, page_url in enumerate(key_pages, 1):
            try:
                logger.info(f"[Audit {i}/{len(key_pages)}] Analyzing: {page_url}")
                if self.audit_timeout is not None:
                    result = await asyncio.wait_for(self.audit_engine.audit(page_url), self.audit_timeout)
                else:
                    result = await self.audit_engine.audit(page_url)
                if not result.url:
                    result.url = page_url
                results.append(result)
            except Exception as e:
                error_msg = str(e) if str(e) else type(e).__name__
                logger.warning(f"Audit failed for {page_url}: {error_msg}")

        return results
