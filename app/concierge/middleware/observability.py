from __future__ import annotations

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.concierge.core.db_timing import get_db_usage, start_db_timer, stop_db_timer
from app.concierge.core.logging import log_json
from app.concierge.core.metrics import metrics

logger = logging.getLogger("concierge.request")


def _route_template(request: Request) -> str:
    scope_route = request.scope.get("route")
    return getattr(scope_route, "path", None) or request.url.path


def build_request_log_payload(
    *,
    request: Request,
    response: Response | None,
    latency_ms: float,
    db_time_ms: float | None,
    db_queries: int | None = None,
) -> dict:
    return {
        "event": "http_request",
        "trace_id": getattr(request.state, "trace_id", ""),
        "user_id": getattr(request.state, "user_id", None),
        "api_key_id": getattr(request.state, "api_key_id", None),
        "route": _route_template(request),
        "method": request.method,
        "status_code": getattr(response, "status_code", 500),
        "latency_ms": round(latency_ms, 2),
        "db_time_ms": round(db_time_ms, 2) if db_time_ms is not None else None,
        "db_queries": db_queries,
        "error_code": getattr(request.state, "error_code", None),
        "error_class": getattr(request.state, "error_class", None),
    }


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        token = start_db_timer()
        response: Response | None = None
        try:
            response = await call_next(request)
            return response
        finally:
            latency_ms = (time.perf_counter() - start_time) * 1000
            usage = get_db_usage()
            stop_db_timer(token)
            payload = build_request_log_payload(
                request=request,
                response=response,
                latency_ms=latency_ms,
                db_time_ms=usage.time_ms if usage else None,
                db_queries=usage.queries if usage else None,
            )
            log_json(logger, payload)
            metrics.record_http_request(
                route=payload["route"],
                method=payload["method"],
                status_code=payload["status_code"],
                latency_ms=latency_ms,
            )
