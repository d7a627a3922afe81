"""Logging setup with correlation IDs plus Prometheus metrics for ODBC queries."""

import logging
import os
import uuid
from contextvars import ContextVar
from typing import Optional

from prometheus_client import Counter, Histogram, start_http_server

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

LOG_FORMAT = "%(asctime)s [%(correlation_id)s] %(levelname)s %(name)s: %(message)s"


class CorrelationIdFilter(logging.Filter):
    """Stamp each record with the current run's correlation ID."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = correlation_id_var.get() or "-"
        return True


# In-process tallies, reported at the end of a CLI run.
operation_counts = {"success": 0, "failure": 0}

success_counter = Counter(
    "odbc_query_success_total",
    "Queries that returned a result set",
)
failure_counter = Counter(
    "odbc_query_failure_total",
    "Queries that raised a driver or profile error",
)
query_duration = Histogram(
    "odbc_query_duration_seconds",
    "Wall time of successful ODBC queries, connect included",
)


def record_success(duration: Optional[float] = None) -> None:
    operation_counts["success"] += 1
    success_counter.inc()
    if duration is not None:
        query_duration.observe(duration)


def record_failure() -> None:
    operation_counts["failure"] += 1
    failure_counter.inc()


def setup_logging(level: int | str = logging.INFO) -> str:
    """Configure root logging and start a new correlation ID.

    When ``PROMETHEUS_PORT`` is set the metrics endpoint is started on it.
    Returns the correlation ID.
    """
    cid = uuid.uuid4().hex
    correlation_id_var.set(cid)

    root = logging.getLogger()
    root.setLevel(level)

    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)

    for handler in root.handlers:
        if not any(isinstance(f, CorrelationIdFilter) for f in handler.filters):
            handler.addFilter(CorrelationIdFilter())

    port = os.getenv("PROMETHEUS_PORT")
    if port:
        try:
            start_http_server(int(port))
            logging.getLogger(__name__).info("Prometheus metrics server running on port %s", port)
        except (OSError, ValueError) as exc:
            logging.getLogger(__name__).error("Failed to start metrics server: %s", exc)

    return cid
