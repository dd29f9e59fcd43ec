"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram


REQUEST_COUNTER = Counter(
	"connect_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"connect_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

CHECKINS = Counter(
	"connect_checkins_total",
	"Check-in writes by outcome",
	["outcome"],
)

JOIN_TRANSITIONS = Counter(
	"connect_join_transitions_total",
	"Event participation writes by outcome",
	["action", "outcome"],
)

ACTIVITY_APPENDS = Counter(
	"connect_activity_appends_total",
	"Activity feed rows appended",
	["type", "result"],
)

LOOKUP_FAILURES = Counter(
	"connect_lookup_failures_total",
	"Denormalization lookups that failed and degraded to nulls",
	["kind"],
)

LIVE_VENUES_SCAN = Histogram(
	"connect_live_venues_scan_size",
	"Active check-ins scanned per live-venue aggregation",
	buckets=(0, 10, 50, 100, 250, 500),
)

FEED_FILTERED = Counter(
	"connect_feed_expired_filtered_total",
	"Feed rows dropped at read time because their check-in expired",
)

CURATION_UPSERTS = Counter(
	"connect_curation_upserts_total",
	"Curation upserts by outcome",
	["outcome"],
)

RATE_LIMIT_REJECTS = Counter(
	"connect_rate_limit_rejects_total",
	"Connect writes rejected by the rate limiter",
	["kind"],
)

CHECKIN_SWEEP_DELETED = Counter(
	"connect_checkin_sweep_deleted_total",
	"Expired check-ins removed by the hygiene sweep",
)

JOB_RUNS = Counter(
	"connect_job_runs_total",
	"Background job executions",
	["job", "result"],
)

JOB_DURATION = Histogram(
	"connect_job_duration_seconds",
	"Background job duration",
	["job"],
)

REDIS_UP = Gauge("connect_redis_up", "Redis readiness (1=ok)")
REDIS_LATENCY = Histogram("connect_redis_ping_seconds", "Redis ping latency")
POSTGRES_UP = Gauge("connect_postgres_up", "Postgres readiness (1=ok)")
POSTGRES_LATENCY = Histogram("connect_postgres_ping_seconds", "Postgres ping latency")


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_checkin(outcome: str) -> None:
	CHECKINS.labels(outcome=outcome).inc()


def inc_join_transition(action: str, outcome: str) -> None:
	JOIN_TRANSITIONS.labels(action=action, outcome=outcome).inc()


def inc_activity_append(activity_type: str, result: str) -> None:
	ACTIVITY_APPENDS.labels(type=activity_type, result=result).inc()


def inc_lookup_failure(kind: str) -> None:
	LOOKUP_FAILURES.labels(kind=kind).inc()


def observe_live_venues_scan(size: int) -> None:
	LIVE_VENUES_SCAN.observe(size)


def inc_feed_filtered(count: int) -> None:
	if count > 0:
		FEED_FILTERED.inc(count)


def inc_curation_upsert(outcome: str) -> None:
	CURATION_UPSERTS.labels(outcome=outcome).inc()


def inc_rate_limit_reject(kind: str) -> None:
	RATE_LIMIT_REJECTS.labels(kind=kind).inc()


def inc_checkin_sweep(count: int) -> None:
	if count > 0:
		CHECKIN_SWEEP_DELETED.inc(count)


def mark_redis(ok: bool, *, latency_seconds: float | None = None) -> None:
	REDIS_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		REDIS_LATENCY.observe(latency_seconds)


def mark_postgres(ok: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		POSTGRES_LATENCY.observe(latency_seconds)


def record_job_run(name: str, *, result: str, duration_seconds: float | None = None) -> None:
	JOB_RUNS.labels(job=name, result=result).inc()
	if duration_seconds is not None:
		JOB_DURATION.labels(job=name).observe(duration_seconds)
