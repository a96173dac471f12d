"""
Prometheus Metrics for oplog streams
"""

import structlog
from prometheus_client import Counter, start_http_server

logger = structlog.get_logger(__name__)

# Counters
operations_total = Counter(
    "oplog_operations_total",
    "Operations yielded by oplog streams, by kind",
    ["kind"],
)

decode_failures_total = Counter(
    "oplog_decode_failures_total",
    "Oplog entries that could not be decoded",
    ["error_type"],
)

stream_terminations_total = Counter(
    "oplog_stream_terminations_total",
    "Oplog streams that reached the terminated state",
    ["reason"],
)

empty_polls_total = Counter(
    "oplog_empty_polls_total",
    "Await windows that elapsed without a new oplog entry",
)


def start_metrics_server(port: int = 9090) -> None:
    """
    Start Prometheus metrics HTTP server

    Args:
        port: HTTP port to expose /metrics endpoint (default 9090)
    """
    start_http_server(port)
    logger.info("Prometheus metrics server started", port=port)


def increment_operations(kind: str, count: int = 1) -> None:
    """Increment operations yielded counter"""
    operations_total.labels(kind=kind).inc(count)


def increment_decode_failures(error_type: str, count: int = 1) -> None:
    """Increment decode failures counter"""
    decode_failures_total.labels(error_type=error_type).inc(count)


def increment_terminations(reason: str) -> None:
    """Increment stream terminations counter"""
    stream_terminations_total.labels(reason=reason).inc()


def increment_empty_polls() -> None:
    empty_polls_total.inc()
