"""Central registry for Prometheus metrics used across the service."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, Summary


REQUEST_COUNTER = Counter(
	"dspace_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"dspace_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

LOGO_UPLOADS = Counter(
	"dspace_logo_uploads_total",
	"Community logos stored",
	["outcome"],
)

LOGO_REJECTIONS = Counter(
	"dspace_logo_rejections_total",
	"Community logo uploads rejected before storage",
	["reason"],
)

LOGO_BYTES = Summary(
	"dspace_logo_upload_bytes",
	"Size of stored community logos in bytes",
)

CONTEXT_ABORTS = Counter(
	"dspace_context_aborts_total",
	"Request transaction contexts rolled back",
)

POSTGRES_UP = Gauge("dspace_postgres_up", "Postgres availability (1=up,0=down)")
POSTGRES_LATENCY = Summary("dspace_postgres_latency_seconds", "Postgres ping latency (seconds)")


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def logo_stored(*, replaced: bool, size_bytes: int) -> None:
	LOGO_UPLOADS.labels(outcome="replaced" if replaced else "created").inc()
	LOGO_BYTES.observe(size_bytes)


def logo_rejected(reason: str) -> None:
	LOGO_REJECTIONS.labels(reason=reason).inc()


def context_aborted() -> None:
	CONTEXT_ABORTS.inc()


def mark_postgres(ok: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		POSTGRES_LATENCY.observe(latency_seconds)
