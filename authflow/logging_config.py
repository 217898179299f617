"""
Logging configuration for the authflow API server.

Liveness probes hit /health and /healthz every few seconds; their access log
lines are dropped so that sync and guard activity stays readable.
"""

import logging
import logging.config
from typing import Any, Dict, List, Optional

PROBE_PATHS = ("/health", "/healthz")


class HealthCheckFilter(logging.Filter):
    """Filter to suppress health check endpoint logs."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name != "uvicorn.access":
            return True
        message = record.getMessage()
        return not any(f'"GET {path} ' in message for path in PROBE_PATHS)


def _stream_handler(formatter: str, filters: Optional[List[str]] = None) -> Dict[str, Any]:
    handler = {
        "class": "logging.StreamHandler",
        "formatter": formatter,
        "stream": "ext://sys.stdout",
    }
    if filters:
        handler["filters"] = filters
    return handler


def get_logging_config(level: str = "INFO") -> Dict[str, Any]:
    """
    Build a dictConfig dictionary for uvicorn and the authflow loggers.

    Args:
        level: Log level for authflow modules and the root logger

    Returns:
        Dictionary suitable for logging.config.dictConfig
    """
    level = level.upper()

    loggers: Dict[str, Dict[str, Any]] = {
        name: {"handlers": ["default"], "level": "INFO", "propagate": False}
        for name in ("uvicorn", "uvicorn.error")
    }
    loggers["uvicorn.access"] = {"handlers": ["access"], "level": "INFO", "propagate": False}
    # httpx logs every backend sync request at INFO
    loggers["httpx"] = {"level": "WARNING"}
    # No handler of its own: records reach the root handler (and pytest's caplog)
    loggers["authflow"] = {"level": level, "propagate": True}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"health_check_filter": {"()": HealthCheckFilter}},
        "formatters": {
            "default": {"format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"},
            "access": {"format": "%(message)s"},
        },
        "handlers": {
            "default": _stream_handler("default"),
            "access": _stream_handler("access", ["health_check_filter"]),
        },
        "loggers": loggers,
        "root": {"level": level, "handlers": ["default"]},
    }


def configure_logging(level: str = "INFO") -> None:
    """Apply the authflow logging configuration."""
    logging.config.dictConfig(get_logging_config(level))
