"""Prometheus metric inventory.

Every metric the service exports is declared here; the modules that own
the behaviour import the metric and increment/observe it at the point
of action.  Scraped via GET /metrics.

The certificate counters are the ones to alert on:
  - certificates_issued_total grows with course completions
  - certificate_issuance_conflicts_total counts races lost to the
    (learner, course) unique constraint; non-zero is normal under
    client retries, a spike means duplicate completion storms
  - certificate_issuance_failures_total should stay at zero; each
    increment is a completed learner without a certificate
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Progress / certificate pipeline
# ---------------------------------------------------------------------------

PROGRESS_UPDATES = Counter(
    "lesson_progress_updates_total",
    "Lesson progress upserts by outcome",
    ["outcome"],  # "partial" or "completed"
)

CERTIFICATES_ISSUED = Counter(
    "certificates_issued_total",
    "Certificates minted",
)

CERTIFICATE_ISSUANCE_CONFLICTS = Counter(
    "certificate_issuance_conflicts_total",
    "Certificate inserts that lost the (learner, course) uniqueness race",
)

CERTIFICATE_ISSUANCE_FAILURES = Counter(
    "certificate_issuance_failures_total",
    "Issuance attempts that raised after the progress write committed",
)

CERTIFICATE_VERIFICATIONS = Counter(
    "certificate_verifications_total",
    "Public certificate verifications by result",
    ["result"],  # "valid" or "invalid"
)

# ---------------------------------------------------------------------------
# Supporting infrastructure
# ---------------------------------------------------------------------------

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Cache get operations by result",
    ["operation"],  # "hit" or "miss"
)

QUEUE_DEPTH = Gauge(
    "task_queue_depth",
    "Number of tasks waiting in a queue",
    ["queue_name"],
)
