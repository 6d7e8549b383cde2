"""Logging, in-process metrics and health checks for the storefront API."""

from .logging_config import configure_logging, ensure_request_id
from .metrics import (
    get_counter_value,
    get_metrics_snapshot,
    increment_counter,
    observe_latency,
    record_event,
    reset_metrics,
    set_gauge,
)
from .health import check_database_health

__all__ = [
    "configure_logging",
    "ensure_request_id",
    "get_counter_value",
    "get_metrics_snapshot",
    "increment_counter",
    "observe_latency",
    "record_event",
    "reset_metrics",
    "set_gauge",
    "check_database_health",
]
