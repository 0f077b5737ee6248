"""Tests for burst coalescing."""

from datetime import timedelta

from journalmon.alerter import Batcher


class TestBatcher:
    """Tests for the coalescing batcher."""

    def test_first_record_is_held(self, make_record):
        """The first record opens a batch and emits nothing."""
        batcher = Batcher(window=60)
        assert batcher.ingest(make_record(), now=0.0) is None
        assert batcher.open_batches == 1

    def test_burst_coalesced_into_one_event(self, make_record):
        """Five records in 2 seconds become one event with count 5 after the window."""
        batcher = Batcher(window=60)
        for i in range(5):
            record = make_record(unit="db.service", service_id="postgres", message=f"err {i}")
            assert batcher.ingest(record, now=i * 0.5) is None

        assert batcher.tick(now=59.9) == []

        events = batcher.tick(now=60.0)
        assert len(events) == 1
        assert events[0].count == 5
        assert events[0].representative.message == "err 0"
        assert events[0].window == 60
        assert batcher.open_batches == 0

    def test_worst_priority_kept(self, make_record):
        batcher = Batcher(window=60)
        batcher.ingest(make_record(priority=3), now=0.0)
        batcher.ingest(make_record(priority=1), now=1.0)
        batcher.ingest(make_record(priority=2), now=2.0)

        (event,) = batcher.tick(now=60.0)
        assert event.priority == 1
        assert event.representative.priority == 3

    def test_first_and_last_seen(self, make_record):
        batcher = Batcher(window=60)
        first = make_record()
        last = make_record(timestamp=first.timestamp + timedelta(seconds=30))
        batcher.ingest(first, now=0.0)
        batcher.ingest(last, now=30.0)

        (event,) = batcher.drain()
        assert event.first_seen == first.timestamp
        assert event.last_seen == last.timestamp

    def test_single_record_flushes_with_count_one(self, make_record):
        batcher = Batcher(window=10)
        batcher.ingest(make_record(), now=0.0)

        (event,) = batcher.tick(now=10.0)
        assert event.count == 1
        assert event.batched is False

    def test_different_keys_independent(self, make_record):
        batcher = Batcher(window=60)
        batcher.ingest(make_record(unit="a.service"), now=0.0)
        batcher.ingest(make_record(unit="b.service"), now=30.0)
        batcher.ingest(make_record(unit="a.service"), now=31.0)

        events = batcher.tick(now=60.0)
        assert len(events) == 1
        assert events[0].representative.unit == "a.service"
        assert events[0].count == 2

        events = batcher.tick(now=90.0)
        assert len(events) == 1
        assert events[0].representative.unit == "b.service"
        assert events[0].count == 1

    def test_same_unit_different_service_are_separate(self, make_record):
        batcher = Batcher(window=60)
        batcher.ingest(make_record(service_id="sshd"), now=0.0)
        batcher.ingest(make_record(service_id="sudo"), now=0.0)
        assert batcher.open_batches == 2

    def test_late_record_flushes_expired_batch(self, make_record):
        """A record arriving after the window, before tick, flushes the old batch."""
        batcher = Batcher(window=60)
        batcher.ingest(make_record(message="old"), now=0.0)
        batcher.ingest(make_record(message="old again"), now=10.0)

        event = batcher.ingest(make_record(message="new"), now=61.0)
        assert event is not None
        assert event.count == 2
        assert event.representative.message == "old"

        (pending,) = batcher.drain()
        assert pending.count == 1
        assert pending.representative.message == "new"

    def test_zero_window_emits_immediately(self, make_record):
        batcher = Batcher(window=0)
        event = batcher.ingest(make_record(), now=0.0)
        assert event is not None
        assert event.count == 1
        assert batcher.open_batches == 0

    def test_negative_window_emits_immediately(self, make_record):
        batcher = Batcher(window=-5)
        assert batcher.ingest(make_record(), now=0.0) is not None

    def test_tick_flushes_oldest_first(self, make_record):
        batcher = Batcher(window=10)
        batcher.ingest(make_record(unit="first.service"), now=0.0)
        batcher.ingest(make_record(unit="second.service"), now=1.0)

        events = batcher.tick(now=100.0)
        assert [e.representative.unit for e in events] == ["first.service", "second.service"]

    def test_drain_flushes_everything_once(self, make_record):
        batcher = Batcher(window=60)
        for unit in ("a", "b", "c"):
            batcher.ingest(make_record(unit=unit), now=0.0)

        assert len(batcher.drain()) == 3
        assert batcher.drain() == []
        assert batcher.tick(now=1000.0) == []

    def test_no_loss(self, make_record):
        """Every ingested record is counted in exactly one event."""
        batcher = Batcher(window=5)
        events = []
        ingested = 0
        for step in range(200):
            record = make_record(unit=f"u{step % 3}", message=f"m{step}")
            now = step * 0.7
            event = batcher.ingest(record, now=now)
            ingested += 1
            if event is not None:
                events.append(event)
            events.extend(batcher.tick(now=now))
        events.extend(batcher.drain())

        assert sum(e.count for e in events) == ingested
