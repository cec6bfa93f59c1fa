"""
Business Plan Growth Engine API v1.0
FastAPI backend exposing the month-by-month growth timeline simulation,
cash projection, operations cost roll-ups and input derivation.
"""
import logging
import sys
import time

from dotenv import load_dotenv

# .env must be loaded before app.config reads the environment
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import API_VERSION, CORS_ORIGINS, JSON_LOGS, LOG_LEVEL, MAX_HORIZON_MONTHS
from app.services.logging_config import setup_logging
from app.services.middleware import RequestTimingMiddleware, SecurityHeadersMiddleware
from app.services.perf_monitor import tracker as perf_tracker

setup_logging(level=LOG_LEVEL, json_output=JSON_LOGS)
logger = logging.getLogger("bizplan-api")

# Record process start time for uptime calculation
_PROCESS_START = time.monotonic()


app = FastAPI(
    title="Business Plan Growth Engine API",
    version=API_VERSION,
    description="Month-by-month growth timeline simulation for business plans",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Requested-With"],
)
app.add_middleware(SecurityHeadersMiddleware)
# Request timing + X-Request-ID must be outermost so it wraps all other middleware
app.add_middleware(RequestTimingMiddleware)

# Routers
from app.api.growth_routes import router as growth_router
from app.api.operations_routes import router as operations_router

app.include_router(growth_router)
app.include_router(operations_router)


@app.get("/health")
async def health_check():
    return {
        "status": "active",
        "version": API_VERSION,
        "max_horizon_months": MAX_HORIZON_MONTHS,
    }


@app.get("/metrics")
async def metrics():
    """
    Performance metrics endpoint.

    Returns computation throughput, average duration, error counts, and
    process-level memory usage from the in-process PerformanceTracker.
    """
    uptime_seconds = round(time.monotonic() - _PROCESS_START, 1)

    memory_mb: float = 0.0
    try:
        import resource  # Unix only
        usage = resource.getrusage(resource.RUSAGE_SELF)
        # ru_maxrss is in kilobytes on Linux, bytes on macOS
        if sys.platform == "darwin":
            memory_mb = round(usage.ru_maxrss / (1024 * 1024), 2)
        else:
            memory_mb = round(usage.ru_maxrss / 1024, 2)
    except ImportError:
        memory_mb = 0.0

    snapshot = perf_tracker.get_metrics()

    return {
        "uptime_seconds": uptime_seconds,
        "computations_processed": snapshot["computations_processed"],
        "avg_duration_ms": snapshot["avg_duration_ms"],
        "months_simulated": snapshot["months_simulated"],
        "error_count": snapshot["error_count"],
        "memory_usage_mb": memory_mb,
        "slowest_kind": snapshot["slowest_kind"],
        "slowest_ms": snapshot["slowest_ms"],
        "error_count_by_kind": snapshot["error_count_by_kind"],
        "avg_duration_ms_by_kind": snapshot["avg_duration_ms_by_kind"],
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
