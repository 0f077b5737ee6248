"""journalmon: systemd journal error monitor with burst-coalesced alerts."""

__version__ = "1.0.0"
