"""Prometheus metrics for the journal monitor.

Usage:
    from journalmon.metrics import start_metrics_server, RECORDS

    start_metrics_server(port=9464, health=monitor.health)
    RECORDS.labels(outcome="admitted").inc()
"""

from journalmon.metrics.monitor import (
    ALERT_OCCURRENCES,
    ALERTS,
    MONITOR_INFO,
    OPEN_BATCHES,
    RECORDS,
)
from journalmon.metrics.server import start_metrics_server

__all__ = [
    "start_metrics_server",
    "RECORDS",
    "ALERTS",
    "ALERT_OCCURRENCES",
    "OPEN_BATCHES",
    "MONITOR_INFO",
]
