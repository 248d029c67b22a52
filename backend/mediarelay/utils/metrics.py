"""
Prometheus metrics definitions.
All metrics are registered here and can be imported by other modules.
"""
from prometheus_client import Counter, Histogram

# HTTP request metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'path', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'path'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Error metrics
errors_total = Counter(
    'errors_total',
    'Total errors',
    ['error_type']
)

# Upload metrics
uploads_total = Counter(
    'uploads_total',
    'Upload requests by outcome',
    ['outcome']
)

upload_bytes_total = Counter(
    'upload_bytes_total',
    'Total bytes relayed upstream'
)

rate_limit_denials_total = Counter(
    'rate_limit_denials_total',
    'Uploads denied by the rate limiter',
    ['tier']
)

# Upstream relay metrics
relay_attempts_total = Counter(
    'relay_attempts_total',
    'Upstream relay calls',
    ['endpoint', 'outcome']
)

relay_latency_seconds = Histogram(
    'relay_latency_seconds',
    'Upstream relay call latency in seconds',
    ['endpoint'],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0]
)
