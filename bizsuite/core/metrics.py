"""Prometheus metric inventory for bizsuite.

Every metric the service exposes is declared here; the modules that own
the behavior import and increment them at the point of action.

  Counters only go up (requests served, redemptions attempted).
  Gauges go up and down (requests in flight).
  Histograms bucket observations so Prometheus can derive percentiles
  (request latency).

LABEL DISCIPLINE
------------------
Labels are bounded enums: result codes, event types, route templates.
Organization ids, user ids and raw URLs never become label values, since
every distinct value creates a new time series.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by MetricsMiddleware)
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

RATE_LIMIT_HITS = Counter(
    "rate_limit_hits_total",
    "Requests rejected by rate limiting (429s)",
    ["key_type"],  # "user" or "ip"
)

# ---------------------------------------------------------------------------
# Tenant lifecycle
# ---------------------------------------------------------------------------

REDEMPTIONS = Counter(
    "subscription_redemptions_total",
    "Subscription key redemption attempts by result",
    ["result"],  # "success" or an error code such as "key_exhausted"
)

ONBOARDING_COMPLETIONS = Counter(
    "onboarding_completions_total",
    "Onboarding completion calls by outcome",
    ["outcome"],  # "activated", "already_active", or an error code
)

LIFECYCLE_TRANSITIONS = Counter(
    "organization_lifecycle_transitions_total",
    "Organization lifecycle state changes",
    ["from_state", "to_state"],
)

# ---------------------------------------------------------------------------
# Access control
# ---------------------------------------------------------------------------

ROLE_CHANGES = Counter(
    "role_changes_total",
    "Role assignment mutations by outcome",
    ["operation", "outcome"],  # operation: set_role|remove_member
)

GUARD_DECISIONS = Counter(
    "navigation_guard_decisions_total",
    "Route guard outcomes by final stage",
    ["outcome", "stage"],
)

PREVIEW_ROLE_REQUESTS = Counter(
    "preview_role_requests_total",
    "Requests carrying a preview-role header, by handling",
    ["handling"],  # "applied" (dev mode) or "ignored"
)

# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

NOTIFICATIONS_WRITTEN = Counter(
    "notifications_written_total",
    "In-app notification rows written, by event type",
    ["event_type"],
)

EMAILS_SENT = Counter(
    "notification_emails_total",
    "Notification email attempts by result",
    ["result"],  # "sent", "failed", "disabled"
)
