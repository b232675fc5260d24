"""Website crawler that correlates API calls with frontend performance."""

__version__ = "0.1.0"

from sitepulse.crawler import CrawlScheduler, crawl_sync
from sitepulse.correlator import ImpactCorrelator
from sitepulse.analysis import WebsiteAnalyzer
from sitepulse.navigator import (
    Navigator,
    PageSession,
    PlaywrightNavigator,
    NavigatorUnavailableError,
)
from sitepulse.browser_config import NavigatorConfig
from sitepulse.classifier import ApiClassifier, PatternApiClassifier, classify
from sitepulse.timing import estimate_duration
from sitepulse.api_analysis import analyze_api_calls
from sitepulse.audit import (
    AuditEngine,
    parse_lighthouse_report,
    parse_network_requests,
    aggregate_frontend_metrics,
)
from sitepulse.alerts import generate_alerts, format_alerts_for_display, summarize_alerts
from sitepulse.report import format_api_table, format_metrics_for_display
from sitepulse.models import (
    PageRecord,
    ApiCallRecord,
    CrawlResult,
    TimingResult,
    Measured,
    Estimated,
    FrontendSnapshot,
    FrontendImpact,
    ImpactFailure,
    Alert,
    AlertType,
    FrontendMetrics,
    ApiAnalysis,
    WebsiteAnalysis,
)
from sitepulse.config import Config, settings

__all__ = [
    "CrawlScheduler",
    "crawl_sync",
    "ImpactCorrelator",
    "WebsiteAnalyzer",
    "Navigator",
    "PageSession",
    "PlaywrightNavigator",
    "NavigatorUnavailableError",
    "NavigatorConfig",
    "ApiClassifier",
    "PatternApiClassifier",
    "classify",
    "estimate_duration",
    "analyze_api_calls",
    "AuditEngine",
    "parse_lighthouse_report",
    "parse_network_requests",
    "aggregate_frontend_metrics",
    "generate_alerts",
    "format_alerts_for_display",
    "summarize_alerts",
    "format_api_table",
    "format_metrics_for_display",
    "PageRecord",
    "ApiCallRecord",
    "CrawlResult",
    "TimingResult",
    "Measured",
    "Estimated",
    "FrontendSnapshot",
    "FrontendImpact",
    "ImpactFailure",
    "Alert",
    "AlertType",
    "FrontendMetrics",
    "ApiAnalysis",
    "WebsiteAnalysis",
    "Config",
    "settings",
]
