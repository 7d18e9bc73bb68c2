"""Structured logging configuration for the rackcalc API and engines."""
import logging
import json
import sys
from datetime import datetime, timezone
from typing import IO, Optional

# Attributes passed through ``extra=`` that are copied into the JSON line
_EXTRA_FIELDS = (
    "project_id",
    "operation",
    "duration_ms",
    "request_id",
    "http_path",
    "http_status",
)


class JSONFormatter(logging.Formatter):
    """One JSON object per record; enum and other non-JSON values are stringified."""
    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        for key in _EXTRA_FIELDS:
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)
        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO", json_output: bool = True, stream: Optional[IO] = None):
    """
    Route every logger through a single stdout handler.

    ``LOG_LEVEL`` / ``LOG_FORMAT`` (read in main.py) feed ``level`` and
    ``json_output``; ``stream`` is only overridden by tests.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(stream or sys.stdout)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
        ))

    root.handlers = [handler]

    # Per-request lines come from RequestTimingMiddleware already
    for name in ["uvicorn.access", "httpcore", "httpx"]:
        logging.getLogger(name).setLevel(logging.WARNING)
