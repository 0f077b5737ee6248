"""Tests for the journal record parser."""

from datetime import datetime, timezone

from journalmon.alerter import LogRecord, ParseFailure, parse_record

OBSERVED = datetime(2030, 1, 1, tzinfo=timezone.utc)


class TestParseRecord:
    """Tests for parse_record."""

    def test_full_record(self, journal_line):
        """All known fields should be extracted."""
        record = parse_record(journal_line())
        assert isinstance(record, LogRecord)
        assert record.message == "upstream timed out"
        assert record.priority == 3
        assert record.service_id == "nginx"
        assert record.unit == "nginx.service"
        assert record.hostname == "web01"
        assert record.timestamp == datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

    def test_accepts_str(self, journal_line):
        """Decoded text lines parse the same as bytes."""
        record = parse_record(journal_line().decode())
        assert isinstance(record, LogRecord)
        assert record.service_id == "nginx"

    def test_message_with_quotes_and_markup(self, journal_line):
        """Quotes inside the message must not truncate it."""
        message = 'query "SELECT 1" failed: <timeout> & retry'
        record = parse_record(journal_line(MESSAGE=message))
        assert isinstance(record, LogRecord)
        assert record.message == message

    def test_binary_message(self, journal_line):
        """journald encodes non-UTF-8 messages as byte arrays."""
        raw = list(b"disk \xff error")
        record = parse_record(journal_line(MESSAGE=raw))
        assert isinstance(record, LogRecord)
        assert record.message.startswith("disk ")
        assert record.message.endswith(" error")

    def test_missing_priority_uses_default(self, journal_line):
        record = parse_record(journal_line(PRIORITY=None), default_priority=4)
        assert isinstance(record, LogRecord)
        assert record.priority == 4

    def test_non_numeric_priority_uses_default(self, journal_line):
        record = parse_record(journal_line(PRIORITY="err"), default_priority=3)
        assert isinstance(record, LogRecord)
        assert record.priority == 3

    def test_out_of_range_priority_uses_default(self, journal_line):
        record = parse_record(journal_line(PRIORITY="12"), default_priority=2)
        assert isinstance(record, LogRecord)
        assert record.priority == 2

    def test_missing_timestamp_uses_observation_time(self, journal_line):
        record = parse_record(journal_line(**{"__REALTIME_TIMESTAMP": None}), now=OBSERVED)
        assert isinstance(record, LogRecord)
        assert record.timestamp == OBSERVED

    def test_bad_timestamp_uses_observation_time(self, journal_line):
        record = parse_record(journal_line(**{"__REALTIME_TIMESTAMP": "yesterday"}), now=OBSERVED)
        assert isinstance(record, LogRecord)
        assert record.timestamp == OBSERVED

    def test_service_falls_back_to_comm(self, journal_line):
        record = parse_record(journal_line(SYSLOG_IDENTIFIER=None, _COMM="postgres"))
        assert isinstance(record, LogRecord)
        assert record.service_id == "postgres"

    def test_unit_falls_back_to_user_unit(self, journal_line):
        record = parse_record(
            journal_line(_SYSTEMD_UNIT=None, _SYSTEMD_USER_UNIT="sync.service")
        )
        assert isinstance(record, LogRecord)
        assert record.unit == "sync.service"

    def test_missing_service_and_unit_are_empty(self, journal_line):
        record = parse_record(journal_line(SYSLOG_IDENTIFIER=None, _SYSTEMD_UNIT=None))
        assert isinstance(record, LogRecord)
        assert record.service_id == ""
        assert record.unit == ""


class TestParseFailures:
    """Malformed input yields ParseFailure and never raises."""

    def test_missing_message(self, journal_line):
        result = parse_record(journal_line(MESSAGE=None))
        assert isinstance(result, ParseFailure)
        assert "MESSAGE" in result.reason

    def test_empty_message(self, journal_line):
        assert isinstance(parse_record(journal_line(MESSAGE="")), ParseFailure)

    def test_null_message(self):
        """journald emits null for oversized fields."""
        assert isinstance(parse_record(b'{"MESSAGE": null, "PRIORITY": "3"}'), ParseFailure)

    def test_invalid_json(self):
        result = parse_record(b'{"MESSAGE": "unterminated')
        assert isinstance(result, ParseFailure)
        assert result.reason.startswith("invalid JSON")

    def test_not_an_object(self):
        assert isinstance(parse_record(b'["MESSAGE", "hello"]'), ParseFailure)

    def test_empty_line(self):
        assert isinstance(parse_record(b"\n"), ParseFailure)

    def test_invalid_utf8(self):
        assert isinstance(parse_record(b"\xff\xfe\x00garbage"), ParseFailure)
