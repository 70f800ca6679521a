"""
Prometheus metrics for monitoring.

Metrics collected:
- HTTP request duration (histogram)
- HTTP request count by status code (counter)
- Active requests (gauge)
- Object store operation duration (histogram)
- Upload outcomes, uploaded bytes and quota rejections (counters)
- Compensating deletes after failed metadata writes (counter)
"""

from prometheus_client import Counter, Gauge, Histogram, Info

# Application info
app_info = Info("storage_gateway_app", "Storage gateway application information")

# HTTP metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests in progress",
    ["method", "endpoint"],
)

# Object store metrics
object_store_operation_duration_seconds = Histogram(
    "object_store_operation_duration_seconds",
    "Object store operation duration in seconds",
    ["operation", "status"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0),
)

# Business metrics
uploads_total = Counter(
    "storage_uploads_total",
    "Upload attempts by file category and outcome",
    ["category", "outcome"],
)

uploaded_bytes_total = Counter(
    "storage_uploaded_bytes_total",
    "Bytes accepted into the object store",
    ["category"],
)

quota_rejections_total = Counter(
    "storage_quota_rejections_total",
    "Uploads rejected by quota admission",
    ["tier"],
)

compensating_deletes_total = Counter(
    "storage_compensating_deletes_total",
    "Blob removals issued after a failed metadata write",
    ["outcome"],
)

deletes_total = Counter(
    "storage_deletes_total",
    "Stored objects deleted",
    ["category"],
)
