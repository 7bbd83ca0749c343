"""Tests for the provider's flush policy, teardown and reconnect sync."""

from __future__ import annotations

import threading

from learning_time.provider import TimeTrackingProvider

from conftest import FakeCollector, make_record

MINUTE = 60_000


def track(provider, clock, activity_id, ms):
    provider.start_tracking(activity_id)
    clock.advance(ms)
    return provider.stop_tracking(activity_id)


class TestTrackingApi:
    def test_stop_appends_record_to_batch(self, provider, clock):
        record = track(provider, clock, "activity-42", 125_000)

        assert record.time_spent_minutes == 3
        assert provider.pending_records == [record]

    def test_short_session_not_batched(self, provider, clock):
        assert track(provider, clock, "activity-7", 30_000) is None
        assert provider.pending_count == 0

    def test_double_stop_yields_one_record(self, provider, clock):
        provider.start_tracking("a")
        clock.advance(2 * MINUTE)
        provider.stop_tracking("a")
        provider.stop_tracking("a")
        assert provider.pending_count == 1

    def test_is_tracking_and_elapsed(self, provider, clock):
        provider.start_tracking("a")
        clock.advance(4_500)
        assert provider.is_tracking("a")
        assert provider.get_elapsed_time("a") == 4
        assert provider.active_activities == ["a"]
        assert provider.get_elapsed_time("b") == 0


class TestFlushPolicy:
    def test_empty_batch_tick_is_noop(self, provider, collector, clock):
        clock.advance(10 * MINUTE)
        assert provider.process_pending_records() is False
        assert collector.attempts == 0

    def test_young_small_batch_waits(self, provider, collector, clock):
        track(provider, clock, "a", 2 * MINUTE)
        assert provider.should_flush() is False
        assert provider.process_pending_records() is False
        assert provider.pending_count == 1
        assert collector.attempts == 0

    def test_flushes_at_fifty_records_before_age_limit(self, provider, collector, clock):
        for i in range(50):
            provider.start_tracking(f"a-{i}")
        clock.advance(MINUTE)
        for i in range(50):
            provider.stop_tracking(f"a-{i}")

        assert provider.process_pending_records() is True

        assert len(collector.batches) == 1
        assert [r.activity_id for r in collector.batches[0]] == [f"a-{i}" for i in range(50)]
        assert provider.pending_count == 0

    def test_flushes_single_record_after_five_minutes(self, provider, collector, clock):
        track(provider, clock, "a", 5 * MINUTE)

        assert provider.process_pending_records() is True
        assert len(collector.delivered) == 1
        assert provider.batch_started_at == clock.now

    def test_failure_moves_batch_to_overflow(self, provider, collector, store, clock):
        collector.online = False
        first = track(provider, clock, "a", 3 * MINUTE)
        second = track(provider, clock, "b", 2 * MINUTE)

        assert provider.process_pending_records() is True

        assert provider.pending_count == 0
        assert store.read_all() == [first, second]
        assert provider.batch_started_at == clock.now

    def test_failure_appends_to_existing_overflow(self, provider, collector, store, clock):
        earlier = make_record("old", started_at=1)
        store.append([earlier])
        collector.online = False
        record = track(provider, clock, "a", 6 * MINUTE)

        provider.process_pending_records()

        assert store.read_all() == [earlier, record]

    def test_collector_exception_is_contained(self, store, clock):
        class ExplodingCollector:
            def submit_time_batch(self, records):
                raise RuntimeError("boom")

        provider = TimeTrackingProvider(ExplodingCollector(), store, clock=clock)
        record = track(provider, clock, "a", 6 * MINUTE)

        assert provider.process_pending_records() is True
        assert store.read_all() == [record]

    def test_overlapping_tick_skips_while_in_flight(self, store, clock):
        entered = threading.Event()
        release = threading.Event()

        class SlowCollector(FakeCollector):
            def submit_time_batch(self, records):
                entered.set()
                release.wait(5)
                return super().submit_time_batch(records)

        collector = SlowCollector()
        provider = TimeTrackingProvider(collector, store, clock=clock)
        track(provider, clock, "a", 6 * MINUTE)

        worker = threading.Thread(target=provider.process_pending_records)
        worker.start()
        assert entered.wait(5)

        track(provider, clock, "b", 6 * MINUTE)
        assert provider.process_pending_records() is False

        release.set()
        worker.join(5)
        assert collector.attempts == 1
        assert provider.pending_count == 1


class TestReconnectSync:
    def test_reconnect_drains_overflow_and_flushes_batch(self, provider, collector, store, clock):
        collector.online = False
        offline = track(provider, clock, "a", 6 * MINUTE)
        provider.process_pending_records()
        assert store.read_all() == [offline]

        collector.online = True
        later = track(provider, clock, "b", 6 * MINUTE)

        assert provider.sync_offline_records() is True

        assert store.read_all() == []
        assert collector.batches == [[offline], [later]]
        assert provider.pending_count == 0

    def test_failed_drain_keeps_records(self, provider, collector, store, clock):
        record = make_record()
        store.append([record])
        collector.online = False

        assert provider.sync_offline_records() is False
        assert store.read_all() == [record]


class TestTeardown:
    def test_close_stops_active_timers_and_flushes(self, provider, collector, clock):
        provider.start_tracking("a")
        provider.start_tracking("b")
        clock.advance(20_000)
        provider.start_tracking("c")
        clock.advance(70_000)

        provider.close()

        assert sorted(r.activity_id for r in collector.delivered) == ["a", "b", "c"]
        assert provider.active_activities == []
        assert provider.closed

    def test_close_ignores_thresholds(self, provider, collector, clock):
        track(provider, clock, "a", MINUTE)
        provider.close()
        assert len(collector.delivered) == 1

    def test_close_offline_keeps_records_in_store(self, provider, collector, store, clock):
        collector.online = False
        provider.start_tracking("a")
        clock.advance(2 * MINUTE)

        provider.close()

        assert [r.activity_id for r in store.read_all()] == ["a"]

    def test_close_is_idempotent_and_blocks_new_tracking(self, provider, collector, clock):
        provider.close()
        provider.close()
        provider.start_tracking("a")
        assert not provider.is_tracking("a")
        assert collector.attempts == 0
