# src/sitepulse/constants.py
"""Centralized constants for the crawl and correlate core.

Alert thresholds are fixed here rather than user-configurable. For runtime
settings (budgets, timeouts, browser options), see config.py.
"""

# =============================================================================
# Crawl Constants
# =============================================================================

# Default crawl budgets
DEFAULT_MAX_PAGES = 20
DEFAULT_MAX_DEPTH = 3

# Upper bounds applied by the analysis pipeline
MAX_PAGES_LIMIT = 50
MAX_DEPTH_LIMIT = 5

# Navigation timeout in milliseconds
DEFAULT_NAVIGATION_TIMEOUT_MS = 30000

# When to consider navigation complete
DEFAULT_WAIT_UNTIL = "networkidle"

# File extensions that never lead to crawlable pages
SKIP_EXTENSIONS = frozenset({
    '.pdf', '.jpg', '.jpeg', '.png', '.gif', '.svg', '.webp',
    '.zip', '.tar', '.gz', '.mp4', '.mp3', '.avi', '.mov',
    '.doc', '.docx', '.xls', '.xlsx', '.ppt', '.pptx',
    '.css', '.js', '.xml', '.json', '.ico', '.woff', '.woff2', '.ttf'
})

# Link prefixes that are not navigable
NON_CRAWLABLE_PREFIXES = ('mailto:', 'tel:', 'javascript:', '#')


# =============================================================================
# API Classification Constants
# =============================================================================

API_RESOURCE_TYPES = frozenset({"xhr", "fetch"})

API_URL_PATTERNS = (
    r"/api/",
    r"/graphql",
    r"/rest/",
    r"/v\d+/",
    r"\.json$",
)


# =============================================================================
# Timing Estimation Constants
# =============================================================================

# Base latency added to every size-based estimate (ms)
ESTIMATE_BASE_LATENCY_MS = 50

# Clamp bounds for the size-derived component (ms)
ESTIMATE_SIZE_MIN_MS = 10
ESTIMATE_SIZE_MAX_MS = 500

# Bytes per millisecond used by the size-derived component
ESTIMATE_BYTES_PER_MS = 1000

# Upper bound of random jitter added to estimates (ms)
ESTIMATE_JITTER_MAX_MS = 100

# Range substituted when a computed duration is not positive (ms)
FLOOR_DURATION_MIN_MS = 20
FLOOR_DURATION_MAX_MS = 100


# =============================================================================
# Impact Correlation Constants
# =============================================================================

# Wait after simulating a call before the second snapshot (ms)
DEFAULT_SETTLE_MS = 500

# Simulated duration for calls with no known duration (ms)
DEFAULT_SIMULATED_CALL_MS = 100

# Render-time delta boundaries for rendering impact (ms)
RENDER_IMPACT_HIGH_MS = 100
RENDER_IMPACT_MEDIUM_MS = 50


# =============================================================================
# Alert Thresholds
# =============================================================================

# Core Web Vitals and lab metrics (ms, CLS unitless)
FCP_WARNING_MS = 2000
FCP_CRITICAL_MS = 3000
LCP_WARNING_MS = 2500
LCP_CRITICAL_MS = 4000
CLS_WARNING = 0.1
CLS_CRITICAL = 0.25
TBT_WARNING_MS = 300
TBT_CRITICAL_MS = 600
TTI_WARNING_MS = 3800
TTI_CRITICAL_MS = 7300
SI_WARNING_MS = 3400
SI_CRITICAL_MS = 5800

# Category scores (0-1, lower is worse)
SCORE_WARNING = 0.7
SCORE_CRITICAL = 0.5

# API thresholds
API_RESPONSE_WARNING_MS = 500
API_RESPONSE_CRITICAL_MS = 1000
API_ERROR_RATE_WARNING = 0.05
API_ERROR_RATE_CRITICAL = 0.1
API_PAYLOAD_WARNING_BYTES = 1024 * 1024
API_PAYLOAD_CRITICAL_BYTES = 5 * 1024 * 1024

# Offending calls listed in an aggregate alert before summarizing the rest
ALERT_DETAIL_LIMIT = 3


# =============================================================================
# Analysis Constants
# =============================================================================

# API calls slower than this are listed as slow in API analysis (ms)
SLOW_API_MS = 500

# Payloads larger than this are listed as high payload (bytes)
HIGH_PAYLOAD_BYTES = 1024 * 1024

# API calls slower than this count against the overall site score (ms)
SITE_SLOW_API_MS = 1000

# Overall score penalties
SLOW_API_SCORE_PENALTY = 5
ERROR_API_SCORE_PENALTY = 10

# Number of crawled pages sent to the auditing engine
DEFAULT_AUDIT_PAGES = 5
