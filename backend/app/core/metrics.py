"""
Prometheus Metrics Module.

Exposes application metrics for monitoring with Prometheus.
"""

from prometheus_client import Counter, Histogram, Info, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response

# ============================================
# Application Info
# ============================================
APP_INFO = Info(
    "app_info",
    "Application information"
)
APP_INFO.info({
    "app_name": "document_metadata_service",
    "version": "1.0.0",
})

# ============================================
# Upload Metrics
# ============================================
UPLOADS_TOTAL = Counter(
    "uploads_total",
    "Total number of document uploads",
    ["status", "content_type"]
)

UPLOAD_SIZE_BYTES = Histogram(
    "upload_size_bytes",
    "Size of uploaded documents in bytes",
    buckets=[1024, 10240, 102400, 1048576, 5242880, 10485760]  # 1KB to 10MB
)

# ============================================
# Metadata Mirror / Bucket Sync Metrics
# ============================================
METADATA_MIRROR_TOTAL = Counter(
    "metadata_mirror_total",
    "Blob header rewrites after a document change",
    ["status"]
)

SYNC_RUNS_TOTAL = Counter(
    "bucket_sync_runs_total",
    "Total number of bucket sync runs",
    ["status"]
)

SYNC_OBJECTS_TOTAL = Counter(
    "bucket_sync_objects_total",
    "Unknown objects processed by bucket sync",
    ["status"]  # created, duplicate, failed
)

SYNC_DURATION_SECONDS = Histogram(
    "bucket_sync_duration_seconds",
    "Time spent on a full bucket sync",
    buckets=[0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0]
)

# ============================================
# HTTP Metrics
# ============================================
HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"]
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)


router = APIRouter()


@router.get("/metrics", include_in_schema=False)
async def metrics():
    """Prometheus scrape endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


# ============================================
# Helper Functions
# ============================================

def track_upload(status: str, content_type: str, size_bytes: int):
    """Track document upload metrics."""
    UPLOADS_TOTAL.labels(status=status, content_type=content_type).inc()
    if status == "success":
        UPLOAD_SIZE_BYTES.observe(size_bytes)


def track_metadata_mirror(status: str):
    """Track a blob header rewrite (success or failed)."""
    METADATA_MIRROR_TOTAL.labels(status=status).inc()


def track_sync_object(status: str):
    """Track one unknown object handled by bucket sync."""
    SYNC_OBJECTS_TOTAL.labels(status=status).inc()


def track_sync_run(status: str, duration_seconds: float):
    """Track a completed (or failed) bucket sync run."""
    SYNC_RUNS_TOTAL.labels(status=status).inc()
    SYNC_DURATION_SECONDS.observe(duration_seconds)


def track_http_request(method: str, endpoint: str, status_code: int, duration_seconds: float):
    """Track HTTP request metrics."""
    HTTP_REQUESTS_TOTAL.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
    HTTP_REQUEST_DURATION_SECONDS.labels(method=method, endpoint=endpoint).observe(duration_seconds)
