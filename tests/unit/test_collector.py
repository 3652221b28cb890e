"""
Unit Tests for the Collector
============================

Tests for per-source isolation, write failure policies, and the polling loop.
"""

import pytest
from unittest.mock import Mock

from feedflux.config.settings import FeedFluxSettings, WriteFailurePolicy
from feedflux.scheduler.collector import Collector, CollectorState, CycleResult
from feedflux.storage.stores import MemoryStore
from feedflux.utils.exceptions import ErrorCode, FeedFetchError, SinkWriteError

from conftest import (
    ATOM_SOURCE,
    BROKEN_SOURCE,
    RSS_SOURCE,
    SAMPLE_ATOM_FEED,
    SAMPLE_RSS_FEED,
    FakeFetcher,
)


class FlakyStore(MemoryStore):
    """Memory store whose first ``failures`` writes are rejected."""

    def __init__(self, failures: int):
        super().__init__("rss")
        self.failures = failures

    def write_batch(self, points):
        if self.failures > 0:
            self.failures -= 1
            raise SinkWriteError("write refused", database=self.database)
        super().write_batch(points)


class TestCollectorCycle:
    """Test cases for Collector.run_cycle."""

    def test_sources_processed_in_order(self, settings, memory_store, fake_fetcher):
        Collector(memory_store, settings=settings, fetcher=fake_fetcher).run_cycle()

        assert fake_fetcher.calls == [ATOM_SOURCE, BROKEN_SOURCE, RSS_SOURCE]

    def test_malformed_source_does_not_stop_cycle(self, settings, memory_store, fake_fetcher):
        collector = Collector(memory_store, settings=settings, fetcher=fake_fetcher)

        result = collector.run_cycle()

        atom, broken, rss = result.sources
        assert atom.success and atom.dialect == "Atom" and atom.written == 2
        assert not broken.success
        assert "F003" in broken.error
        assert broken.written == 0
        assert rss.success and rss.dialect == "RSS" and rss.written == 3

        assert result.points_written == 5
        assert result.failed_sources == [BROKEN_SOURCE]
        assert len(memory_store.points) == 5
        assert collector.state == CollectorState.IDLE

    def test_points_use_source_as_measurement(self, settings, memory_store, fake_fetcher):
        Collector(memory_store, settings=settings, fetcher=fake_fetcher).run_cycle()

        measurements = {point.measurement for point in memory_store.all_points()}
        assert measurements == {ATOM_SOURCE, RSS_SOURCE}

    def test_network_error_skips_source(self, settings, memory_store):
        fetcher = FakeFetcher(
            {
                ATOM_SOURCE: FeedFetchError("Status error: 503", error_code=ErrorCode.FEED_HTTP_STATUS),
                BROKEN_SOURCE: SAMPLE_ATOM_FEED,
                RSS_SOURCE: SAMPLE_RSS_FEED,
            }
        )

        result = Collector(memory_store, settings=settings, fetcher=fetcher).run_cycle()

        assert [source.success for source in result.sources] == [False, True, True]
        assert "503" in result.sources[0].error

    def test_unexpected_error_is_contained(self, settings, memory_store, fake_fetcher):
        detector = Mock()
        detector.decode.side_effect = RuntimeError("decoder exploded")

        result = Collector(
            memory_store, settings=settings, fetcher=fake_fetcher, detector=detector
        ).run_cycle()

        assert len(result.sources) == 3
        assert all(not source.success for source in result.sources)
        assert "decoder exploded" in result.sources[0].error

    def test_repeated_cycles_do_not_duplicate_points(self, settings, memory_store, fake_fetcher):
        collector = Collector(memory_store, settings=settings, fetcher=fake_fetcher)

        collector.run_cycle()
        collector.run_cycle()

        assert memory_store.write_calls == 10
        assert len(memory_store.points) == 5
        assert collector.cycles_completed == 2


class TestWriteFailurePolicy:
    """Failed writes are never retried; the policy decides what follows."""

    def test_drop_continues_with_next_event(self, settings, fake_fetcher):
        store = FlakyStore(failures=1)

        result = Collector(store, settings=settings, fetcher=fake_fetcher).run_cycle()

        atom = result.sources[0]
        assert atom.failed == 1
        assert atom.written == 1
        assert not atom.success
        assert result.sources[2].written == 3
        assert len(store.points) == 4

    def test_skip_source_abandons_rest_of_source(self, fake_fetcher):
        settings = FeedFluxSettings(
            feeds=[ATOM_SOURCE, RSS_SOURCE],
            collector={"write_failure_policy": "skip_source"},
        )
        store = FlakyStore(failures=1)
        collector = Collector(store, settings=settings, fetcher=fake_fetcher)

        result = collector.run_cycle()

        assert collector.failure_policy == WriteFailurePolicy.SKIP_SOURCE
        atom, rss = result.sources
        assert atom.failed == 1
        assert atom.written == 0
        assert rss.written == 3

    def test_failed_write_not_retried(self, settings, fake_fetcher):
        store = FlakyStore(failures=1)

        Collector(store, settings=settings, fetcher=fake_fetcher).run_cycle()

        # 5 events, one refused attempt, four accepted; nothing written twice
        assert store.write_calls == 4


class TestRunForever:
    """Test cases for the polling loop."""

    def test_sleeps_between_cycles(self, settings, memory_store, fake_fetcher):
        sleep = Mock()
        collector = Collector(memory_store, settings=settings, fetcher=fake_fetcher, sleep=sleep)

        results = collector.run_forever(max_cycles=3)

        assert len(results) == 3
        assert all(isinstance(result, CycleResult) for result in results)
        assert [result.cycle for result in results] == [1, 2, 3]
        assert sleep.call_count == 2
        sleep.assert_called_with(1.5)

    def test_single_cycle_does_not_sleep(self, settings, memory_store, fake_fetcher):
        sleep = Mock()

        Collector(memory_store, settings=settings, fetcher=fake_fetcher, sleep=sleep).run_forever(max_cycles=1)

        sleep.assert_not_called()

    def test_state_while_sleeping(self, settings, memory_store, fake_fetcher):
        states = []
        collector = Collector(memory_store, settings=settings, fetcher=fake_fetcher)
        collector.sleep = lambda seconds: states.append(collector.state)

        collector.run_forever(max_cycles=2)

        assert states == [CollectorState.SLEEPING]

    def test_interrupt_propagates(self, settings, memory_store, fake_fetcher):
        collector = Collector(
            memory_store, settings=settings, fetcher=fake_fetcher, sleep=Mock(side_effect=KeyboardInterrupt)
        )

        with pytest.raises(KeyboardInterrupt):
            collector.run_forever()
