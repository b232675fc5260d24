"""Data models for crawl, correlation and alerting."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlparse


@dataclass
class FrontierEntry:
    """A discovered URL waiting to be crawled."""

    url: str
    depth: int
    parent_url: Optional[str] = None


@dataclass(frozen=True)
class PageRecord:
    """Metadata recorded once per visited page."""

    url: str
    depth: int
    parent_url: Optional[str] = None
    title: str = ""
    description: str = ""
    link_count: int = 0
    h1_count: int = 0
    image_count: int = 0
    script_count: int = 0
    api_call_count: int = 0
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'url': self.url,
            'depth': self.depth,
            'parent_url': self.parent_url,
            'title': self.title,
            'description': self.description,
            'link_count': self.link_count,
            'h1_count': self.h1_count,
            'image_count': self.image_count,
            'script_count': self.script_count,
            'api_call_count': self.api_call_count,
            'error': self.error,
        }


@dataclass(frozen=True)
class TimingResult:
    """A duration together with the rule that produced it."""

    ms: int
    method: str

    @property
    def is_estimate(self) -> bool:
        return False


@dataclass(frozen=True)
class Measured(TimingResult):
    """Duration derived from capture timestamps."""


@dataclass(frozen=True)
class Estimated(TimingResult):
    """Duration synthesized because no usable timestamps existed."""

    @property
    def is_estimate(self) -> bool:
        return True


class RenderingImpact(str, Enum):
    """Coarse rendering impact of a single API call."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class FrontendSnapshot:
    """Frontend performance counters captured at one instant."""

    timestamp: float
    first_contentful_paint_ms: float = 0.0
    cumulative_layout_shift: float = 0.0
    dom_update_ms: float = 0.0
    render_ms: float = 0.0
    heap_used_bytes: Optional[int] = None
    heap_limit_bytes: Optional[int] = None
    resource_count: int = 0


@dataclass(frozen=True)
class FrontendImpact:
    """Difference between the snapshots taken around one API call."""

    fcp_delta_ms: float
    cls_delta: float
    resource_count_delta: int
    dom_update_delta_ms: float
    render_delta_ms: float
    layout_shift_delta: float
    memory_delta_bytes: int
    rendering_impact: RenderingImpact

    def to_dict(self) -> Dict[str, Any]:
        return {
            'fcp_delta_ms': self.fcp_delta_ms,
            'cls_delta': self.cls_delta,
            'resource_count_delta': self.resource_count_delta,
            'dom_update_delta_ms': self.dom_update_delta_ms,
            'render_delta_ms': self.render_delta_ms,
            'layout_shift_delta': self.layout_shift_delta,
            'memory_delta_bytes': self.memory_delta_bytes,
            'rendering_impact': self.rendering_impact.value,
        }


@dataclass(frozen=True)
class ImpactFailure:
    """Recorded in place of a FrontendImpact when measuring a call failed."""

    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {'error': self.error}


@dataclass
class ApiCallRecord:
    """One API call observed while a page was loading.

    ``status`` stays None when no matching response was observed. Such a call
    is neither a success nor a failure; check ``has_response`` first.
    """

    id: str
    url: str
    method: str
    resource_type: str
    start_time: float
    page: str
    depth: int
    request_headers: Dict[str, str] = field(default_factory=dict)
    post_data: Optional[str] = None
    response_headers: Optional[Dict[str, str]] = None
    status: Optional[int] = None
    status_text: Optional[str] = None
    end_time: Optional[float] = None
    duration_ms: int = 0
    timing: Optional[TimingResult] = None
    payload_size_bytes: int = 0
    frontend_impact: Optional[Union[FrontendImpact, ImpactFailure]] = None

    @property
    def has_response(self) -> bool:
        return self.status is not None

    @property
    def is_error(self) -> bool:
        return self.status is not None and self.status >= 400

    @property
    def has_measured_duration(self) -> bool:
        """False when ``duration_ms`` was synthesized rather than observed."""
        return self.timing is None or not self.timing.is_estimate

    @property
    def endpoint(self) -> str:
        """URL path of the call, used in alert details and reports."""
        return urlparse(self.url).path or "/"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'url': self.url,
            'method': self.method,
            'request_headers': self.request_headers,
            'response_headers': self.response_headers,
            'post_data': self.post_data,
            'resource_type': self.resource_type,
            'status': self.status,
            'status_text': self.status_text,
            'start_time': self.start_time,
            'end_time': self.end_time,
            'duration_ms': self.duration_ms,
            'timing_method': self.timing.method if self.timing else None,
            'timing_estimated': self.timing.is_estimate if self.timing else None,
            'page': self.page,
            'depth': self.depth,
            'payload_size_bytes': self.payload_size_bytes,
            'frontend_impact': self.frontend_impact.to_dict() if self.frontend_impact else None,
        }


@dataclass
class CrawlResult:
    """Outcome of one crawl run."""

    visited_urls: List[str] = field(default_factory=list)
    page_data: Dict[str, PageRecord] = field(default_factory=dict)
    api_calls: List[ApiCallRecord] = field(default_factory=list)
    total_pages: int = 0
    total_api_calls: int = 0
    max_depth_reached: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'visited_urls': list(self.visited_urls),
            'page_data': {url: page.to_dict() for url, page in self.page_data.items()},
            'api_calls': [call.to_dict() for call in self.api_calls],
            'total_pages': self.total_pages,
            'total_api_calls': self.total_api_calls,
            'max_depth_reached': self.max_depth_reached,
        }


class AlertType(str, Enum):
    """Alert severity."""
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class Alert:
    """A threshold breach with everything needed to act on it."""

    type: AlertType
    category: str
    metric: str
    value: str
    threshold: str
    message: str
    recommendation: str
    details: tuple = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type.value,
            'category': self.category,
            'metric': self.metric,
            'value': self.value,
            'threshold': self.threshold,
            'message': self.message,
            'recommendation': self.recommendation,
            'details': list(self.details),
        }


@dataclass
class AuditDetails:
    """Raw numeric audit values (milliseconds, CLS unitless)."""

    fcp_raw: Optional[float] = None
    lcp_raw: Optional[float] = None
    cls_raw: Optional[float] = None
    tbt_raw: Optional[float] = None
    tti_raw: Optional[float] = None
    si_raw: Optional[float] = None


@dataclass
class FrontendMetrics:
    """Flat record returned by the auditing engine for one page.

    Category scores are on a 0-1 scale. Display strings are whatever the
    engine rendered for humans; alerting only looks at ``details``.
    """

    url: str = ""
    performance: Optional[float] = None
    accessibility: Optional[float] = None
    best_practices: Optional[float] = None
    seo: Optional[float] = None
    fcp: str = "N/A"
    lcp: str = "N/A"
    cls: str = "N/A"
    tbt: str = "N/A"
    tti: str = "N/A"
    si: str = "N/A"
    details: AuditDetails = field(default_factory=AuditDetails)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FrontendMetrics":
        """Build from the engine's camelCase record (``bestPractices``, ``fcpRaw``...)."""
        raw_details = data.get('details') or {}
        details = AuditDetails(
            fcp_raw=raw_details.get('fcpRaw'),
            lcp_raw=raw_details.get('lcpRaw'),
            cls_raw=raw_details.get('clsRaw'),
            tbt_raw=raw_details.get('tbtRaw'),
            tti_raw=raw_details.get('ttiRaw'),
            si_raw=raw_details.get('siRaw'),
        )
        return cls(
            url=data.get('url', ""),
            performance=data.get('performance'),
            accessibility=data.get('accessibility'),
            best_practices=data.get('bestPractices', data.get('best_practices')),
            seo=data.get('seo'),
            fcp=data.get('fcp', "N/A"),
            lcp=data.get('lcp', "N/A"),
            cls=data.get('cls', "N/A"),
            tbt=data.get('tbt', "N/A"),
            tti=data.get('tti', "N/A"),
            si=data.get('si', "N/A"),
            details=details,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'url': self.url,
            'performance': self.performance,
            'accessibility': self.accessibility,
            'bestPractices': self.best_practices,
            'seo': self.seo,
            'fcp': self.fcp,
            'lcp': self.lcp,
            'cls': self.cls,
            'tbt': self.tbt,
            'tti': self.tti,
            'si': self.si,
            'details': {
                'fcpRaw': self.details.fcp_raw,
                'lcpRaw': self.details.lcp_raw,
                'clsRaw': self.details.cls_raw,
                'tbtRaw': self.details.tbt_raw,
                'ttiRaw': self.details.tti_raw,
                'siRaw': self.details.si_raw,
            },
        }


@dataclass(frozen=True)
class EndpointStats:
    """Accumulated timing for one normalized endpoint.

    Calls whose duration was estimated are counted in ``calls`` and
    ``estimated`` but add nothing to ``total_time_ms``.
    """

    key: str
    calls: int = 0
    total_time_ms: float = 0.0
    errors: int = 0
    estimated: int = 0

    @property
    def avg_time_ms(self) -> float:
        timed = self.calls - self.estimated
        return self.total_time_ms / timed if timed else 0.0


@dataclass
class ApiAnalysis:
    """Aggregate view over a set of API calls."""

    slowest_apis: List[Dict[str, Any]] = field(default_factory=list)
    high_payload_apis: List[Dict[str, Any]] = field(default_factory=list)
    error_prone_apis: List[Dict[str, Any]] = field(default_factory=list)
    total_api_calls: int = 0
    average_response_time: int = 0
    estimated_api_calls: int = 0
    endpoint_stats: List[EndpointStats] = field(default_factory=list)


@dataclass
class WebsiteAnalysis:
    """Full result of a crawl, correlate, audit and alert run."""

    url: str
    crawl: CrawlResult
    api_calls: List[ApiCallRecord] = field(default_factory=list)
    api_analysis: ApiAnalysis = field(default_factory=ApiAnalysis)
    audits: List[FrontendMetrics] = field(default_factory=list)
    frontend_metrics: Optional[FrontendMetrics] = None
    alerts: List[Alert] = field(default_factory=list)
    alerts_formatted: str = ""
    metrics_formatted: Dict[str, str] = field(default_factory=dict)
    summary: Dict[str, Any] = field(default_factory=dict)
    critical_issues: List[Dict[str, Any]] = field(default_factory=list)
    recommendations: List[Dict[str, Any]] = field(default_factory=list)
    overall_score: int = 0
    completed_at: datetime = field(default_factory=datetime.now)
