"""
rackcalc API
Stateless costing, variant simulation and auto-approval for rack installation projects.
"""
import os
import logging
import time

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rackcalc.services.logging_config import setup_logging
from rackcalc.services.middleware import RequestTimingMiddleware
from rackcalc.services.perf_monitor import tracker as perf_tracker

load_dotenv()

_log_level = os.getenv("LOG_LEVEL", "INFO")
_json_logs = os.getenv("LOG_FORMAT", "json").lower() != "text"
setup_logging(level=_log_level, json_output=_json_logs)
logger = logging.getLogger("rackcalc-api")

_PROCESS_START = time.monotonic()

API_VERSION = "1.0.0"

app = FastAPI(
    title="rackcalc Costing API",
    version=API_VERSION,
    description="Cost breakdown, variant what-if simulation and auto-approval for rack installations",
)

# ---------------------------------------------------------------------------
# CORS: allowed origins from env
# ---------------------------------------------------------------------------
_cors_default = "http://localhost:3000,http://localhost:8000"
cors_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", _cors_default).split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "X-Requested-With", "X-Request-ID"],
)
# Outermost so the timing covers every other middleware
app.add_middleware(RequestTimingMiddleware)

from rackcalc.api.costing_routes import costing_router, variants_router  # noqa: E402

app.include_router(costing_router)
app.include_router(variants_router)

logger.info(f"rackcalc API {API_VERSION} ready (CORS origins: {len(cors_origins)})")


@app.get("/health")
async def health_check():
    return {"status": "active", "version": API_VERSION}


@app.get("/metrics")
async def metrics():
    """Engine call counts, average durations and errors from the in-process PerformanceTracker."""
    snapshot = perf_tracker.get_metrics()
    return {
        "uptime_seconds": round(time.monotonic() - _PROCESS_START, 1),
        **snapshot,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("rackcalc.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), reload=True)
