"""Monitor daemon that follows the journal and sends alerts."""

import signal
import socket
import threading
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from types import FrameType
from typing import Any

import structlog

from journalmon import __version__
from journalmon.config import Config
from journalmon.metrics import (
    ALERT_OCCURRENCES,
    ALERTS,
    MONITOR_INFO,
    OPEN_BATCHES,
    RECORDS,
    start_metrics_server,
)

from .batcher import AlertEvent, Batcher
from .classifier import admit_priority, admit_service, priority_name
from .dispatcher import Delivered, Dispatcher, build_transport
from .parser import LogRecord, ParseFailure, parse_record
from .renderer import render
from .source import END_OF_STREAM, JournalSource, LogSource, SourceError

log = structlog.get_logger()


class State(Enum):
    STARTING = "starting"
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


@dataclass
class MonitorStats:
    """Counters reported at shutdown."""

    observed: int = 0
    parse_failures: int = 0
    below_threshold: int = 0
    filtered_out: int = 0
    admitted: int = 0
    alerts: int = 0
    dispatched: int = 0
    dispatch_failures: int = 0


class JournalMonitor:
    """Reads journal records and turns qualifying ones into alerts.

    All pipeline state is owned by the thread calling run(). stop() only sets
    an event and may be called from a signal handler or another thread.
    """

    def __init__(
        self,
        config: Config,
        source: LogSource,
        dispatcher: Dispatcher,
        host: str | None = None,
        clock: Callable[[], float] = time.monotonic,
        tick_interval: float = 1.0,
    ):
        """Initialize the monitor.

        Args:
            config: Immutable monitor configuration
            source: Where raw journal lines come from
            dispatcher: Delivers rendered alerts
            host: Host name shown in alerts (default: this machine)
            clock: Monotonic clock used for batch windows
            tick_interval: Longest wait for a record before flushing expired batches
        """
        self.config = config
        self.source = source
        self.dispatcher = dispatcher
        self.host = host or socket.gethostname()
        self.clock = clock
        self.tick_interval = tick_interval

        self.batcher = Batcher(config.batch_window)
        self.stats = MonitorStats()
        self.state = State.STARTING
        self._stop_event = threading.Event()

    def stop(self) -> None:
        """Request a graceful shutdown."""
        self._stop_event.set()

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def health(self) -> tuple[bool, dict[str, Any]]:
        """Health report for the metrics server."""
        healthy = self.state in (State.STARTING, State.RUNNING, State.DRAINING)
        return healthy, {"state": self.state.value, **asdict(self.stats)}

    def run(self) -> int:
        """Run until the source ends or stop() is called.

        Returns:
            Process exit code: 0 on clean shutdown, 1 if the source could not
            be started or died with an error
        """
        log.info(
            "Starting journal monitor",
            min_priority=priority_name(self.config.min_priority),
            batch_window=self.config.batch_window,
            filters=list(self.config.filters),
        )

        try:
            self.source.open()
        except SourceError as e:
            log.error("Cannot start log source", error=str(e))
            self.state = State.STOPPED
            return 1

        self.state = State.RUNNING
        source_failed = False
        source_ended = False

        while not self.stopping:
            line = self.source.next_record(timeout=self.tick_interval)
            if line is END_OF_STREAM:
                source_failed = self.source.failed
                source_ended = True
                break
            if line is not None:
                self.process_line(line)
            self._deliver_all(self.batcher.tick(self.clock()))

        self.state = State.DRAINING
        self.source.close()
        if not source_ended:
            self._drain_source()
        pending = self.batcher.drain()
        if pending:
            log.info("Flushing open batches", count=len(pending))
        self._deliver_all(pending)
        self.dispatcher.close()

        self.state = State.STOPPED
        log.info("Shutdown complete", **asdict(self.stats))
        return 1 if source_failed else 0

    def process_line(self, line: bytes) -> None:
        """Run one raw line through parse, gate, filter and batcher."""
        self.stats.observed += 1

        result = parse_record(line, default_priority=self.config.min_priority)
        if isinstance(result, ParseFailure):
            self.stats.parse_failures += 1
            RECORDS.labels(outcome="parse_failed").inc()
            log.debug("Dropped unparseable record", reason=result.reason)
            return

        if not admit_priority(result, self.config.min_priority):
            self.stats.below_threshold += 1
            RECORDS.labels(outcome="below_threshold").inc()
            return

        if not admit_service(result, self.config.filters):
            self.stats.filtered_out += 1
            RECORDS.labels(outcome="filtered").inc()
            return

        self.stats.admitted += 1
        RECORDS.labels(outcome="admitted").inc()
        log.info(
            "Record admitted",
            n=self.stats.admitted,
            priority=result.priority,
            service=result.service_id,
            unit=result.unit,
            message=result.message[:200],
        )

        event = self.batcher.ingest(result, self.clock())
        OPEN_BATCHES.set(self.batcher.open_batches)
        if event is not None:
            self._deliver(event)

    def _drain_source(self) -> None:
        """Process lines the closed source had already buffered."""
        drained = 0
        while True:
            line = self.source.next_record(timeout=0)
            if line is None or line is END_OF_STREAM:
                break
            self.process_line(line)
            drained += 1
        if drained:
            log.info("Processed buffered records", count=drained)

    def _deliver_all(self, events: list[AlertEvent]) -> None:
        for event in events:
            self._deliver(event)
        OPEN_BATCHES.set(self.batcher.open_batches)

    def _deliver(self, event: AlertEvent) -> None:
        self.stats.alerts += 1
        ALERT_OCCURRENCES.observe(event.count)
        try:
            alert = render(event, self.host)
            outcome = self.dispatcher.dispatch(alert.subject, alert.body)
        except Exception:
            # A broken transport must not take the monitor down
            log.exception("Unexpected error delivering alert", count=event.count)
            self.stats.dispatch_failures += 1
            ALERTS.labels(status="failed").inc()
            return

        if isinstance(outcome, Delivered):
            self.stats.dispatched += 1
            ALERTS.labels(status="delivered").inc()
        else:
            self.stats.dispatch_failures += 1
            ALERTS.labels(status="failed").inc()

    def send_test_alert(self) -> bool:
        """Send a synthetic alert to verify the delivery transport."""
        now = datetime.now(timezone.utc)
        record = LogRecord(
            timestamp=now,
            priority=self.config.min_priority,
            service_id="journalmon",
            unit="journalmon.service",
            message="Test alert: journalmon is configured correctly.",
        )
        alert = render(AlertEvent(record, 1, record.priority, now, now), self.host)
        return isinstance(self.dispatcher.dispatch(alert.subject, alert.body), Delivered)


def install_signal_handlers(monitor: JournalMonitor) -> None:
    """Stop the monitor gracefully on SIGINT and SIGTERM."""

    def handler(signum: int, frame: FrameType | None) -> None:
        monitor.stop()

    signal.signal(signal.SIGINT, handler)
    signal.signal(signal.SIGTERM, handler)


def run_monitor(config: Config, source: LogSource | None = None) -> int:
    """Build and run the monitor for a configuration.

    Args:
        config: Loaded configuration
        source: Log source (default: follow the local journal)

    Returns:
        Process exit code
    """
    MONITOR_INFO.info({"version": __version__, "transport": config.transport})

    monitor = JournalMonitor(
        config=config,
        source=source or JournalSource(min_priority=config.min_priority),
        dispatcher=Dispatcher(build_transport(config)),
    )
    install_signal_handlers(monitor)

    if config.metrics_port:
        try:
            start_metrics_server(config.metrics_port, health=monitor.health)
        except OSError as e:
            log.error("Cannot start metrics server", port=config.metrics_port, error=str(e))
            return 1

    exit_code = monitor.run()
    if monitor.stopping:
        log.info("Stopped by signal")
    return exit_code
