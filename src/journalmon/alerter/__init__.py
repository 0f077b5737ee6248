"""Journal alerter: parse, gate, filter, coalesce, render and deliver.

Provides the pipeline that turns journal records into alerts.
"""

from .batcher import AlertEvent, Batch, Batcher, batch_key
from .classifier import Priority, admit_priority, admit_service, priority_color, priority_name
from .daemon import JournalMonitor, MonitorStats, State, run_monitor
from .dispatcher import (
    Delivered,
    DeliveryError,
    DispatchOutcome,
    Dispatcher,
    Failed,
    MailerTransport,
    Transport,
    WebhookTransport,
    build_transport,
)
from .parser import LogRecord, ParseFailure, parse_record
from .renderer import RenderedAlert, render
from .source import END_OF_STREAM, FileSource, JournalSource, LogSource, SourceError

__all__ = [
    # Daemon
    "JournalMonitor",
    "MonitorStats",
    "State",
    "run_monitor",
    # Parser
    "LogRecord",
    "ParseFailure",
    "parse_record",
    # Gate and filter
    "Priority",
    "admit_priority",
    "admit_service",
    "priority_name",
    "priority_color",
    # Batcher
    "AlertEvent",
    "Batch",
    "Batcher",
    "batch_key",
    # Renderer
    "RenderedAlert",
    "render",
    # Delivery
    "Delivered",
    "DeliveryError",
    "DispatchOutcome",
    "Dispatcher",
    "Failed",
    "MailerTransport",
    "Transport",
    "WebhookTransport",
    "build_transport",
    # Sources
    "END_OF_STREAM",
    "FileSource",
    "JournalSource",
    "LogSource",
    "SourceError",
]
