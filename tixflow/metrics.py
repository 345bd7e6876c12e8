"""
Prometheus metrics for tixflow.

Tracking helpers are no-ops until init_metrics() has run, so library users
who never expose metrics pay nothing.

Environment Variables:
    TIX_METRICS_ENABLED: Enable metrics server (true/false) - default: false
    TIX_METRICS_PORT: HTTP port for /metrics endpoint - default: 9108

Usage:
    from tixflow.metrics import start_metrics_server, track_submit_duration

    start_metrics_server(enabled=True, port=9108)

    with track_submit_duration("buy_and_approve"):
        report = ledger.submit(batch, signer)
"""

import logging
import os
import threading
from contextlib import contextmanager
from typing import Generator

from prometheus_client import Counter, Histogram, start_http_server

logger = logging.getLogger(__name__)

TRANSITIONS_TOTAL: "Counter" = None  # type: ignore
SUBMIT_DURATION: "Histogram" = None  # type: ignore
SETTLEMENT_MISMATCHES: "Counter" = None  # type: ignore

_metrics_initialized = False
_metrics_lock = threading.Lock()


def init_metrics() -> None:
    """Register the tixflow collectors once; later calls are no-ops."""
    global TRANSITIONS_TOTAL, SUBMIT_DURATION, SETTLEMENT_MISMATCHES
    global _metrics_initialized

    with _metrics_lock:
        if _metrics_initialized:
            return

        # outcome: success, ledger_failure, integrity_error
        TRANSITIONS_TOTAL = Counter(
            "tixflow_transitions_total",
            "Lifecycle transitions submitted, by outcome",
            labelnames=["transition", "outcome"],
        )

        SUBMIT_DURATION = Histogram(
            "tixflow_submit_duration_seconds",
            "Duration of ledger submissions in seconds",
            labelnames=["transition"],
            buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0),
        )

        SETTLEMENT_MISMATCHES = Counter(
            "tixflow_settlement_mismatches_total",
            "Successful reports whose settlements failed the conservation check",
        )

        _metrics_initialized = True
        logger.info("tixflow metrics registered")


def metrics_enabled_from_env() -> bool:
    return os.getenv("TIX_METRICS_ENABLED", "false").lower() in ("1", "true", "yes")


def metrics_port_from_env() -> int:
    return int(os.getenv("TIX_METRICS_PORT", "9108"))


def start_metrics_server(enabled: bool, port: int) -> None:
    """
    Expose /metrics on port from a daemon thread.

    A port that is already taken is logged, not raised: metrics never stop
    a transition from running.
    """
    if not enabled:
        logger.info("Metrics server disabled (TIX_METRICS_ENABLED=false)")
        return

    init_metrics()

    try:
        start_http_server(port, addr="0.0.0.0")
        logger.info("serving metrics on :%d/metrics", port)
    except OSError as e:
        logger.error("metrics server not started on :%d: %s", port, e)


@contextmanager
def track_submit_duration(transition: str) -> Generator[None, None, None]:
    """Time one ledger submission."""
    if SUBMIT_DURATION is None:
        yield
        return

    with SUBMIT_DURATION.labels(transition=transition).time():
        yield


def track_transition(transition: str, outcome: str) -> None:
    if TRANSITIONS_TOTAL is not None:
        TRANSITIONS_TOTAL.labels(transition=transition, outcome=outcome).inc()


def track_settlement_mismatch() -> None:
    if SETTLEMENT_MISMATCHES is not None:
        SETTLEMENT_MISMATCHES.inc()
