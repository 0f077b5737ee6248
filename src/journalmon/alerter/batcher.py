"""Burst coalescing for alerts.

Records for the same (unit, service) arriving within the batch window are
folded into a single alert carrying an occurrence count, so one failing unit
logging many lines per second produces one alert per window instead of one
per line.
"""

from dataclasses import dataclass
from datetime import datetime

from .parser import LogRecord

BatchKey = tuple[str, str]  # (unit, service_id)


@dataclass(frozen=True)
class AlertEvent:
    """One alert to render: a single record or a flushed batch."""

    representative: LogRecord
    count: int
    priority: int  # worst (lowest-numbered) priority seen
    first_seen: datetime
    last_seen: datetime
    window: float = 0.0

    @property
    def batched(self) -> bool:
        return self.count > 1


@dataclass
class Batch:
    """Open accumulation for one BatchKey."""

    key: BatchKey
    opened_at: float  # monotonic clock
    representative: LogRecord
    first_seen: datetime
    last_seen: datetime
    count: int = 1
    worst_priority: int = 7

    @classmethod
    def open(cls, record: LogRecord, now: float) -> "Batch":
        return cls(
            key=batch_key(record),
            opened_at=now,
            representative=record,
            first_seen=record.timestamp,
            last_seen=record.timestamp,
            worst_priority=record.priority,
        )

    def add(self, record: LogRecord) -> None:
        self.count += 1
        self.last_seen = max(self.last_seen, record.timestamp)
        self.worst_priority = min(self.worst_priority, record.priority)

    def to_event(self, window: float) -> AlertEvent:
        return AlertEvent(
            representative=self.representative,
            count=self.count,
            priority=self.worst_priority,
            first_seen=self.first_seen,
            last_seen=self.last_seen,
            window=window,
        )


def batch_key(record: LogRecord) -> BatchKey:
    return (record.unit, record.service_id)


class Batcher:
    """Time-windowed batch table.

    Not thread-safe; owned by the pipeline driver. ``now`` is a monotonic
    clock reading in seconds, supplied by the caller.
    """

    def __init__(self, window: float):
        self.window = window
        self._batches: dict[BatchKey, Batch] = {}

    @property
    def open_batches(self) -> int:
        return len(self._batches)

    def ingest(self, record: LogRecord, now: float) -> AlertEvent | None:
        """Add an admitted record.

        Returns:
            An event when this record caused a flush (coalescing disabled, or
            the key's previous window had already elapsed), otherwise None
        """
        if self.window <= 0:
            return Batch.open(record, now).to_event(0.0)

        key = batch_key(record)
        batch = self._batches.get(key)

        if batch is None:
            self._batches[key] = Batch.open(record, now)
            return None

        if now - batch.opened_at < self.window:
            batch.add(record)
            return None

        # Window elapsed but tick() hasn't run yet: flush and start over
        del self._batches[key]
        self._batches[key] = Batch.open(record, now)
        return batch.to_event(self.window)

    def tick(self, now: float) -> list[AlertEvent]:
        """Flush every batch whose window has elapsed, oldest first."""
        expired = [
            key for key, batch in self._batches.items() if now - batch.opened_at >= self.window
        ]
        return [self._batches.pop(key).to_event(self.window) for key in expired]

    def drain(self) -> list[AlertEvent]:
        """Flush all open batches regardless of window."""
        events = [batch.to_event(self.window) for batch in self._batches.values()]
        self._batches.clear()
        return events
