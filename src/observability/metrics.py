"""Prometheus metric definitions for dashboard self-instrumentation.

All metrics are module-level singletons registered with the default
prometheus_client registry.  Import them wherever instrumentation is needed.
"""

from prometheus_client import Counter, Gauge, Histogram, Info

# ---------------------------------------------------------------------------
# Histogram bucket definitions
# ---------------------------------------------------------------------------

REQUEST_DURATION_BUCKETS = (0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 20.0, 30.0, 60.0, 120.0)

# ---------------------------------------------------------------------------
# Request-level metrics (dashboard API)
# ---------------------------------------------------------------------------

REQUEST_DURATION = Histogram(
    "rice_dashboard_request_duration_seconds",
    "End-to-end request duration in seconds",
    labelnames=["endpoint"],
    buckets=REQUEST_DURATION_BUCKETS,
)

REQUESTS_TOTAL = Counter(
    "rice_dashboard_requests_total",
    "Total number of requests",
    labelnames=["endpoint", "status"],
)

REQUESTS_IN_PROGRESS = Gauge(
    "rice_dashboard_requests_in_progress",
    "Number of requests currently being processed",
    labelnames=["endpoint"],
)

# ---------------------------------------------------------------------------
# Query submissions (populated by QueryClient)
# ---------------------------------------------------------------------------

QUERY_SUBMISSIONS_TOTAL = Counter(
    "rice_dashboard_query_submissions_total",
    "Total number of query submissions",
    labelnames=["mode", "status"],
)

# ---------------------------------------------------------------------------
# Cache metrics (populated by FreshnessCache)
# ---------------------------------------------------------------------------

CACHE_LOOKUPS_TOTAL = Counter(
    "rice_dashboard_cache_lookups_total",
    "Cache lookups by outcome (hit, refresh, stale_fallback, error)",
    labelnames=["outcome"],
)

# ---------------------------------------------------------------------------
# Health / info metrics
# ---------------------------------------------------------------------------

SERVICE_HEALTHY = Gauge(
    "rice_dashboard_service_healthy",
    "Whether a backend service is reachable and healthy (1=online, 0=offline)",
    labelnames=["service"],
)

APP_INFO = Info(
    "rice_dashboard",
    "Rice market dashboard build information",
)
