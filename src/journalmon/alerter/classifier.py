"""Severity gate and service filter for journal records."""

from collections.abc import Sequence
from enum import IntEnum

from .parser import LogRecord


class Priority(IntEnum):
    """Syslog priority levels. Lower is more severe."""

    EMERGENCY = 0
    ALERT = 1
    CRITICAL = 2
    ERROR = 3
    WARNING = 4
    NOTICE = 5
    INFO = 6
    DEBUG = 7


# Badge colors used in rendered alerts
PRIORITY_COLORS: dict[int, str] = {
    Priority.EMERGENCY: "#ef4444",  # Red
    Priority.ALERT: "#ef4444",
    Priority.CRITICAL: "#ef4444",
    Priority.ERROR: "#ef4444",
    Priority.WARNING: "#f59e0b",  # Amber
    Priority.NOTICE: "#3b82f6",  # Blue
    Priority.INFO: "#10b981",  # Green
    Priority.DEBUG: "#6b7280",  # Gray
}
UNKNOWN_COLOR = "#000000"


def priority_name(priority: int) -> str:
    """Human name for a priority, e.g. 3 -> "Error"; "Unknown" if out of range."""
    try:
        return Priority(priority).name.capitalize()
    except ValueError:
        return "Unknown"


def priority_color(priority: int) -> str:
    return PRIORITY_COLORS.get(priority, UNKNOWN_COLOR)


def admit_priority(record: LogRecord, threshold: int) -> bool:
    """Check a record against the severity threshold.

    journalctl is already started with ``-p threshold``, so this is a re-check
    for sources that don't filter (``--input`` files, piped streams).
    """
    return record.priority <= threshold


def admit_service(record: LogRecord, filters: Sequence[str]) -> bool:
    """Check a record against the configured service filters.

    An empty filter set admits everything. Otherwise a record is admitted if any
    filter is a case-sensitive substring of its service id or its unit.
    """
    if not filters:
        return True
    return any(f in record.service_id or f in record.unit for f in filters)
