"""Shared fixtures for journalmon tests."""

import json
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import pytest

from journalmon.alerter import LogRecord

BASE_TIME = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_record() -> Callable[..., LogRecord]:
    """Factory for LogRecords with sensible defaults."""

    def factory(**overrides: Any) -> LogRecord:
        values: dict[str, Any] = {
            "timestamp": BASE_TIME,
            "priority": 3,
            "service_id": "nginx",
            "unit": "nginx.service",
            "message": "upstream timed out",
        }
        values.update(overrides)
        return LogRecord(**values)

    return factory


@pytest.fixture
def journal_line() -> Callable[..., bytes]:
    """Factory for raw journal JSON lines as journalctl -o json emits them."""

    def factory(**fields: Any) -> bytes:
        entry: dict[str, Any] = {
            "__REALTIME_TIMESTAMP": "1740830400000000",
            "PRIORITY": "3",
            "SYSLOG_IDENTIFIER": "nginx",
            "_SYSTEMD_UNIT": "nginx.service",
            "_HOSTNAME": "web01",
            "MESSAGE": "upstream timed out",
        }
        for key, value in fields.items():
            if value is None:
                entry.pop(key, None)
            else:
                entry[key] = value
        return (json.dumps(entry) + "\n").encode()

    return factory
