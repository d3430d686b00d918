"""Prometheus metrics."""

from prometheus_client import Counter, Gauge, Histogram

REQUESTS_TOTAL = Counter(
    "lexsync_http_requests_total",
    "Total number of HTTP requests",
    labelnames=["method", "path"],
)

RESPONSES_TOTAL = Counter(
    "lexsync_http_responses_total",
    "Total number of HTTP responses",
    labelnames=["status_code"],
)

REQUEST_DURATION = Histogram(
    "lexsync_http_request_duration_seconds",
    "HTTP request duration in seconds",
    labelnames=["method"],
)

CONTENT_VERSION = Gauge(
    "lexsync_content_version",
    "Current content snapshot version",
)

STORE_CONFLICTS = Counter(
    "lexsync_store_conflicts_total",
    "Revision conflicts hit while writing to the content backend",
)

OPEN_CHANNELS = Gauge(
    "lexsync_open_channels",
    "Number of open update channels",
)

EVENTS_PUBLISHED = Counter(
    "lexsync_events_published_total",
    "Content update events published",
    labelnames=["collection", "action"],
)

CHANNELS_PRUNED = Counter(
    "lexsync_channels_pruned_total",
    "Update channels dropped after a failed write",
)
