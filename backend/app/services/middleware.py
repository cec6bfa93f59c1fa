"""HTTP middleware for the growth engine API: request tracing and security headers."""
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("bizplan-api.middleware")

SKIP_LOG_PATHS = {"/health"}

# Simulation context a route may leave on request.state for the request log
_STATE_LOG_FIELDS = ("horizon_months", "event_count")


def request_log_fields(request: Request, status_code: int, duration_ms: float) -> dict:
    """
    Build the ``extra`` mapping for one request log line.

    Growth routes tag ``request.state`` with the simulated horizon and the
    number of events so slow requests can be tied to the size of the run.
    """
    fields = {
        "http_method": request.method,
        "http_path": request.url.path,
        "http_status": status_code,
        "request_id": request.state.request_id,
        "duration_ms": duration_ms,
    }
    for name in _STATE_LOG_FIELDS:
        value = getattr(request.state, name, None)
        if value is not None:
            fields[name] = value
    return fields


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an X-Request-ID, reports the handling time in
    X-Process-Time (ms) and logs one line per request outside SKIP_LOG_PATHS,
    including the simulation horizon for timeline runs.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request.state.request_id = str(uuid.uuid4())
        started = time.perf_counter()

        response: Response = await call_next(request)

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        response.headers["X-Request-ID"] = request.state.request_id
        response.headers["X-Process-Time"] = str(duration_ms)

        if request.url.path not in SKIP_LOG_PATHS:
            fields = request_log_fields(request, response.status_code, duration_ms)
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code}",
                extra=fields,
            )
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds standard security headers to every response."""
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response
