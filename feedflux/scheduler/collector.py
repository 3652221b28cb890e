"""
FeedFlux Collector
==================

Drives fetch -> detect -> normalize -> write over every configured source,
sequentially and in list order, then sleeps a fixed interval and starts over.

A failure inside one source (network, undecodable document, rejected write) is
logged and confined to that source for the current cycle; the remaining
sources still run.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional

from ..config.settings import FeedFluxSettings, WriteFailurePolicy, get_settings
from ..ingestion.detector import SchemaDetector
from ..ingestion.fetcher import FeedFetcher
from ..ingestion.normalizer import normalize
from ..storage.sink import EventSink
from ..storage.stores import TimeSeriesStore
from ..utils.exceptions import (
    DetectionError,
    FeedFetchError,
    SinkWriteError,
    handle_exception,
)
from ..utils.logging import PerformanceLogger, get_logger_for_component


class CollectorState(str, Enum):
    """Where the collector is within a cycle."""
    IDLE = "idle"
    FETCHING = "fetching"
    PROCESSING = "processing"
    SLEEPING = "sleeping"


@dataclass
class SourceResult:
    """Outcome of one source within one cycle."""

    feed_url: str
    success: bool = False
    dialect: Optional[str] = None
    entries: int = 0
    written: int = 0
    failed: int = 0
    error: Optional[str] = None
    duration_seconds: float = 0.0


@dataclass
class CycleResult:
    """Outcome of one pass over all sources."""

    cycle: int
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    sources: List[SourceResult] = field(default_factory=list)

    @property
    def points_written(self) -> int:
        return sum(source.written for source in self.sources)

    @property
    def failed_sources(self) -> List[str]:
        return [source.feed_url for source in self.sources if not source.success]


class Collector:
    """Sequential, fixed-interval feed collector."""

    def __init__(
        self,
        store: TimeSeriesStore,
        settings: Optional[FeedFluxSettings] = None,
        fetcher: Optional[FeedFetcher] = None,
        detector: Optional[SchemaDetector] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.settings = settings or get_settings()
        self.feeds = list(self.settings.feeds)
        self.fetcher = fetcher or FeedFetcher(self.settings)
        self.detector = detector or SchemaDetector()
        self.sink = EventSink(store, text_as_field=self.settings.collector.text_as_field)
        self.failure_policy = self.settings.collector.write_failure_policy
        self.sleep = sleep or time.sleep
        self.logger = get_logger_for_component("collector")

        self.state = CollectorState.IDLE
        self.cycles_completed = 0

    def process_source(self, feed_url: str) -> SourceResult:
        """Run one source through the whole pipeline.

        Never raises for feed, decode or write failures; they are reported in
        the returned ``SourceResult``.
        """
        result = SourceResult(feed_url=feed_url)
        source_logger = get_logger_for_component("collector", feed_url=feed_url)

        try:
            with PerformanceLogger(source_logger, f"processing {feed_url}") as perf:
                self.state = CollectorState.FETCHING
                raw = self.fetcher.fetch(feed_url)

                self.state = CollectorState.PROCESSING
                feed = self.detector.decode(raw, feed_url=feed_url)
                events = normalize(feed, feed_url)
                result.dialect = feed.dialect.value
                result.entries = len(events)

                for event in events:
                    try:
                        self.sink.write(event)
                        result.written += 1
                    except SinkWriteError as e:
                        result.failed += 1
                        source_logger.error(f"failed to write: {e}", extra=e.to_dict())
                        if self.failure_policy == WriteFailurePolicy.SKIP_SOURCE:
                            remaining = len(events) - result.written - result.failed
                            source_logger.warning(
                                f"Skipping {remaining} remaining events from {feed_url} this cycle"
                            )
                            break

            result.success = result.failed == 0
            result.duration_seconds = perf.duration or 0.0

        except (FeedFetchError, DetectionError) as e:
            result.error = str(e)
            source_logger.error(f"Skipping {feed_url} this cycle: {e}", extra=e.to_dict())
        except Exception as e:
            error = handle_exception(e, source_logger, "process_source", {"feed_url": feed_url})
            result.error = str(error)

        return result

    def run_cycle(self) -> CycleResult:
        """Process every configured source once, in order."""
        cycle = CycleResult(cycle=self.cycles_completed + 1)
        for feed_url in self.feeds:
            cycle.sources.append(self.process_source(feed_url))

        self.cycles_completed += 1
        self.state = CollectorState.IDLE
        self.logger.info(
            f"Cycle {cycle.cycle} finished: {cycle.points_written} points from "
            f"{len(self.feeds) - len(cycle.failed_sources)}/{len(self.feeds)} sources",
            extra={"failed_sources": cycle.failed_sources},
        )
        return cycle

    def run_forever(self, max_cycles: Optional[int] = None) -> List[CycleResult]:
        """Cycle, sleep, repeat.

        Args:
            max_cycles: Stop after this many cycles (``None`` loops until the
                process is terminated). No sleep follows the final cycle.

        Returns:
            Results of the cycles run, when ``max_cycles`` is set
        """
        self.logger.info(
            f"Starting collector for {len(self.feeds)} feeds, "
            f"sleeping {self.settings.collector.sleep_interval_ms}ms between cycles"
        )
        results: List[CycleResult] = []

        while True:
            cycle = self.run_cycle()
            if max_cycles is not None:
                results.append(cycle)
                if len(results) >= max_cycles:
                    return results

            self.state = CollectorState.SLEEPING
            self.sleep(self.settings.sleep_seconds)
            self.state = CollectorState.IDLE
