"""Parser for journal export JSON (``journalctl -o json``) lines."""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

DEFAULT_PRIORITY = 3  # ERROR, matches journalctl's own default for -p

# Field names, first present wins
SERVICE_FIELDS = ("SYSLOG_IDENTIFIER", "_COMM")
UNIT_FIELDS = ("_SYSTEMD_UNIT", "_SYSTEMD_USER_UNIT", "UNIT")


@dataclass(frozen=True)
class LogRecord:
    """One journal entry, reduced to the fields alerts need."""

    timestamp: datetime
    priority: int
    service_id: str
    unit: str
    message: str
    hostname: str = ""
    fields: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class ParseFailure:
    """A line that could not be turned into an actionable record."""

    reason: str
    raw: str


def parse_record(
    raw: bytes | str,
    default_priority: int = DEFAULT_PRIORITY,
    now: datetime | None = None,
) -> LogRecord | ParseFailure:
    """Parse one journal JSON line.

    Args:
        raw: A single line from the log source
        default_priority: Used when PRIORITY is missing or not a valid level
        now: Observation time, used when the realtime timestamp is missing

    Returns:
        LogRecord, or ParseFailure for malformed lines and lines without a message
    """
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    text = text.strip()
    if not text:
        return ParseFailure("empty line", text)

    try:
        entry = json.loads(text)
    except json.JSONDecodeError as e:
        return ParseFailure(f"invalid JSON: {e.msg}", text)

    if not isinstance(entry, dict):
        return ParseFailure(f"expected JSON object, got {type(entry).__name__}", text)

    message = _field_text(entry.get("MESSAGE"))
    if not message:
        return ParseFailure("missing MESSAGE", text)

    return LogRecord(
        timestamp=_parse_timestamp(entry.get("__REALTIME_TIMESTAMP"), now),
        priority=_parse_priority(entry.get("PRIORITY"), default_priority),
        service_id=_first_field(entry, SERVICE_FIELDS),
        unit=_first_field(entry, UNIT_FIELDS),
        message=message,
        hostname=_field_text(entry.get("_HOSTNAME")),
        fields=entry,
    )


def _field_text(value: Any) -> str:
    """Journal field value as text.

    journald encodes binary-unsafe values as an array of byte values, and
    oversized ones as null.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        try:
            return bytes(value).decode("utf-8", errors="replace")
        except (TypeError, ValueError):
            return ""
    return str(value)


def _first_field(entry: dict[str, Any], names: tuple[str, ...]) -> str:
    for name in names:
        value = _field_text(entry.get(name))
        if value:
            return value
    return ""


def _parse_priority(value: Any, default: int) -> int:
    try:
        priority = int(_field_text(value))
    except ValueError:
        return default
    if not 0 <= priority <= 7:
        return default
    return priority


def _parse_timestamp(value: Any, now: datetime | None) -> datetime:
    """__REALTIME_TIMESTAMP is microseconds since the epoch, as a string."""
    try:
        micros = int(_field_text(value))
        return datetime.fromtimestamp(micros / 1_000_000, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        return now or datetime.now(timezone.utc)
