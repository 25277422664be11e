import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

TRACE_HEADER = "X-Trace-ID"


class TraceIdMiddleware(BaseHTTPMiddleware):
    """Accept the caller's trace id or mint one, and echo it on the response."""

    async def dispatch(self, request: Request, call_next):
        trace_id = (request.headers.get(TRACE_HEADER) or "").strip()[:64] or uuid.uuid4().hex
        request.state.trace_id = trace_id
        response: Response = await call_next(request)
        response.headers[TRACE_HEADER] = trace_id
        return response
