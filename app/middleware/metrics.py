"""
Prometheus Metrics Middleware

Exposes:
  - http_requests_total               (counter)
  - http_request_duration_seconds     (histogram)
  - http_requests_in_progress         (gauge)
  - seo_resolutions_total             (counter, by route mode and outcome)
  - seo_resolution_duration_seconds   (histogram)
  - seo_upstream_failures_total       (counter, by lookup stage and kind)
  - app_info                          (info)
"""

import re
import time

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# ── HTTP ──
REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)
REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
)
REQUESTS_IN_PROGRESS = Gauge(
    "http_requests_in_progress",
    "Number of in-progress requests",
    ["method"],
)

# ── Resolution ──
RESOLUTIONS = Counter(
    "seo_resolutions_total",
    "SEO resolutions by route mode and outcome",
    ["mode", "outcome"],
)
RESOLUTION_DURATION = Histogram(
    "seo_resolution_duration_seconds",
    "Wall time of one SEO resolution",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2, 3, 5),
)
UPSTREAM_FAILURES = Counter(
    "seo_upstream_failures_total",
    "Content store lookups that timed out or failed",
    ["stage", "kind"],
)

APP_INFO = Info("app", "Application metadata")

_UUID = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}")
_NUMERIC = re.compile(r"/\d+")


def _normalize_path(path: str) -> str:
    """Collapse UUID / numeric path segments to prevent cardinality explosion."""
    path = _UUID.sub("{id}", path)
    return _NUMERIC.sub("/{id}", path)


def _endpoint_label(request: Request) -> str:
    # Prerendered tenant paths are unbounded; bucket them under one label.
    path = request.url.path
    if path.startswith("/api") or path in ("/health", "/metrics"):
        return _normalize_path(path)
    return "prerender"


class PrometheusMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        method = request.method
        endpoint = _endpoint_label(request)

        if endpoint == "/metrics":
            return await call_next(request)

        REQUESTS_IN_PROGRESS.labels(method=method).inc()
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            REQUEST_COUNT.labels(method=method, endpoint=endpoint, status="500").inc()
            REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(
                time.perf_counter() - start
            )
            REQUESTS_IN_PROGRESS.labels(method=method).dec()
            raise

        elapsed = time.perf_counter() - start
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status=str(response.status_code)).inc()
        REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(elapsed)
        REQUESTS_IN_PROGRESS.labels(method=method).dec()

        return response


def metrics_endpoint(request: Request) -> Response:
    """Expose /metrics for Prometheus scraping."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


def set_app_info(version: str = "1.0.0", env: str = "development") -> None:
    """Set application info metric."""
    APP_INFO.info({"version": version, "environment": env})
