"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# RSVP metrics
rsvp_submissions = Counter(
    'rsvp_submissions_total',
    'Total RSVP submissions',
    ['path', 'result']  # path: user/token; result: created, updated, already_responded, capacity_exceeded
)

admission_latency = Histogram(
    'rsvp_admission_latency_seconds',
    'Token RSVP admission latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Invitation metrics
invitations_created = Counter(
    'invitations_created_total',
    'Invitation tokens issued'
)

invitation_emails = Counter(
    'invitation_emails_total',
    'Invitation email dispatch results',
    ['result']  # sent, failed, skipped
)

# Rate limiting
rate_limit_rejections = Counter(
    'rate_limit_rejections_total',
    'Requests rejected by the rate limiter',
    ['scope']
)

redis_connection_errors = Counter(
    'redis_connection_errors_total',
    'Redis connection errors'
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_rsvp(path: str, result: str):
    """Record an RSVP submission outcome."""
    rsvp_submissions.labels(path=path, result=result).inc()


def record_invitation_email(result: str):
    """Record invitation email outcome. Result: sent, failed, skipped"""
    invitation_emails.labels(result=result).inc()


def record_rate_limited(scope: str):
    rate_limit_rejections.labels(scope=scope).inc()
