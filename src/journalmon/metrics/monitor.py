"""Prometheus metrics for the monitor pipeline.

All metrics use the 'journalmon_' prefix.
"""

from prometheus_client import Counter, Gauge, Histogram, Info

# Set once at startup
MONITOR_INFO = Info(
    "journalmon",
    "Monitor metadata",
)

RECORDS = Counter(
    "journalmon_records_total",
    "Journal records read from the log source",
    ["outcome"],  # parse_failed, below_threshold, filtered, admitted
)

ALERTS = Counter(
    "journalmon_alerts_total",
    "Alerts handed to the delivery transport",
    ["status"],  # delivered, failed
)

ALERT_OCCURRENCES = Histogram(
    "journalmon_alert_occurrences",
    "Records coalesced into each alert",
    buckets=(1, 2, 5, 10, 25, 50, 100, 500, 1000),
)

OPEN_BATCHES = Gauge(
    "journalmon_open_batches",
    "Batches waiting for their window to elapse",
)
