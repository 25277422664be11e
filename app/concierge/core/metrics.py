from __future__ import annotations

from dataclasses import dataclass

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from app.concierge.core.config import settings


@dataclass
class MetricsSnapshot:
    content: bytes
    content_type: str


class Metrics:
    def __init__(self) -> None:
        self.enabled = bool(settings.METRICS_ENABLED)
        self._registry = None
        self._http_requests_total = None
        self._http_request_duration_ms = None
        self._idempotency_replay_total = None
        self._lock_wait_timeout_total = None
        self._short_code_collisions_total = None
        self._status_conflicts_total = None
        self._receipts_total = None
        self._side_effect_failures_total = None
        if self.enabled:
            self._initialize_registry()

    def _initialize_registry(self) -> None:
        self._registry = CollectorRegistry()
        self._http_requests_total = Counter(
            "http_requests_total",
            "HTTP requests by route/method/status.",
            ["route", "method", "status"],
            registry=self._registry,
        )
        self._http_request_duration_ms = Histogram(
            "http_request_duration_ms",
            "HTTP request latency in milliseconds.",
            ["route", "method", "status"],
            buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
            registry=self._registry,
        )
        self._idempotency_replay_total = Counter(
            "idempotency_replay_total",
            "Idempotent replay responses.",
            registry=self._registry,
        )
        self._lock_wait_timeout_total = Counter(
            "lock_wait_timeout_total",
            "Lock wait timeout occurrences.",
            registry=self._registry,
        )
        self._short_code_collisions_total = Counter(
            "short_code_collisions_total",
            "Short code candidates rejected by the unique constraint.",
            registry=self._registry,
        )
        self._status_conflicts_total = Counter(
            "shipment_status_conflicts_total",
            "Rejected shipment status transitions.",
            ["actor"],
            registry=self._registry,
        )
        self._receipts_total = Counter(
            "shipment_receipts_total",
            "Committed shipment receipts.",
            registry=self._registry,
        )
        self._side_effect_failures_total = Counter(
            "side_effect_failures_total",
            "Post-commit side effects that failed.",
            ["kind"],
            registry=self._registry,
        )

    def reset(self) -> None:
        if not self.enabled:
            return
        self._initialize_registry()

    def record_http_request(self, *, route: str, method: str, status_code: int, latency_ms: float) -> None:
        if not self.enabled:
            return
        labels = {"route": route, "method": method, "status": str(status_code)}
        self._http_requests_total.labels(**labels).inc()
        self._http_request_duration_ms.labels(**labels).observe(latency_ms)

    def increment_idempotency_replay(self) -> None:
        if not self.enabled:
            return
        self._idempotency_replay_total.inc()

    def increment_lock_wait_timeout(self) -> None:
        if not self.enabled:
            return
        self._lock_wait_timeout_total.inc()

    def increment_short_code_collision(self) -> None:
        if not self.enabled:
            return
        self._short_code_collisions_total.inc()

    def increment_status_conflict(self, actor: str) -> None:
        if not self.enabled:
            return
        self._status_conflicts_total.labels(actor=actor).inc()

    def increment_receipt(self) -> None:
        if not self.enabled:
            return
        self._receipts_total.inc()

    def increment_side_effect_failure(self, kind: str) -> None:
        if not self.enabled:
            return
        self._side_effect_failures_total.labels(kind=kind).inc()

    def render(self) -> MetricsSnapshot:
        if not self.enabled:
            return MetricsSnapshot(content=b"metrics_disabled\n", content_type="text/plain")
        return MetricsSnapshot(content=generate_latest(self._registry), content_type=CONTENT_TYPE_LATEST)


metrics = Metrics()
