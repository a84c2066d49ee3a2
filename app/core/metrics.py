"""Application metrics (Prometheus client).

Single inventory of everything the service measures.  Modules import the
metric they own and increment/observe it at the point of action;
GET /metrics exposes the default registry for scraping.

HTTP metrics are filled by MetricsMiddleware.  The learning metrics below
cover the side effects that never surface in an HTTP status code: a badge
check that blew up, or a notification that failed to persist, still
returns 200 to the learner, so the counters are the only place those
failures show up on a dashboard.
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
    # Progress refreshes walk every unit of a course, so the upper
    # buckets matter more here than for a plain CRUD service.
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Learning / gamification metrics
# ---------------------------------------------------------------------------

ASSESSMENT_SUBMISSIONS = Counter(
    "assessment_submissions_total",
    "Assessment attempts recorded, by outcome",
    ["result"],  # "passed" or "failed"
)

BLOCK_COMPLETIONS = Counter(
    "block_completions_total",
    "Learning block completion requests, by outcome",
    ["result"],  # "created" or "existing"
)

COURSE_COMPLETIONS = Counter(
    "course_completions_total",
    "Courses that transitioned to completed during a progress evaluation",
)

BADGES_AWARDED = Counter(
    "badges_awarded_total",
    "Badges awarded, by badge type",
    ["badge_type"],
)

BADGE_CHECK_FAILURES = Counter(
    "badge_check_failures_total",
    "Badge evaluations that raised and were swallowed",
    ["trigger"],  # "assessment_passed" | "course_completed" | "full_scan"
)

CERTIFICATES_ISSUED = Counter(
    "certificates_issued_total",
    "Certificates created (idempotent re-requests are not counted)",
)

NOTIFICATION_FAILURES = Counter(
    "notification_failures_total",
    "Notifications that could not be persisted",
    ["type"],
)

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Cache get operations by result",
    ["operation"],  # "hit" or "miss"
)
