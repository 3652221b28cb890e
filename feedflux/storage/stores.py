"""
Time-Series Stores
==================

The narrow store contract the sink depends on (connect, ensure a database
exists, write a batch of points) and its two implementations:

- ``InfluxDBStore`` talks to InfluxDB 1.x through the ``influxdb`` client.
- ``MemoryStore`` keeps points in a dict with the same last-write-wins
  identity rule as InfluxDB; it backs dry runs.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

import requests
from influxdb import InfluxDBClient
from influxdb.exceptions import InfluxDBClientError, InfluxDBServerError

from ..config.settings import InfluxSettings
from ..utils.exceptions import ErrorCode, SinkError, SinkWriteError
from ..utils.logging import get_logger_for_component


@dataclass(frozen=True)
class TimeSeriesPoint:
    """One measurement at an instant."""

    measurement: str
    time: datetime
    tags: Dict[str, str] = field(default_factory=dict)
    fields: Dict[str, object] = field(default_factory=dict)

    @property
    def epoch_seconds(self) -> int:
        return int(self.time.timestamp())

    def identity(self) -> Tuple[str, Tuple[Tuple[str, str], ...], int]:
        """Key under which the store keeps a single point."""
        return self.measurement, tuple(sorted(self.tags.items())), self.epoch_seconds

    def to_influx(self) -> Dict[str, object]:
        """Render as the dict ``InfluxDBClient.write_points`` expects."""
        return {
            "measurement": self.measurement,
            "tags": dict(self.tags),
            "fields": dict(self.fields),
            "time": self.epoch_seconds,
        }


class TimeSeriesStore(ABC):
    """Contract between the sink and a concrete time-series backend."""

    database: str

    @abstractmethod
    def connect(self) -> "TimeSeriesStore":
        """Open the long-lived handle."""

    @abstractmethod
    def ensure_database(self, name: Optional[str] = None) -> None:
        """Create the target database when missing."""

    @abstractmethod
    def write_batch(self, points: Sequence[TimeSeriesPoint]) -> None:
        """Write ``points``; raise ``SinkWriteError`` on failure."""

    def close(self) -> None:
        pass


_TRANSPORT_ERRORS = (InfluxDBClientError, InfluxDBServerError, requests.RequestException)


class InfluxDBStore(TimeSeriesStore):
    """InfluxDB 1.x backend."""

    def __init__(self, settings: InfluxSettings, client: Optional[InfluxDBClient] = None):
        self.settings = settings
        self.database = settings.database
        self.client = client
        self.logger = get_logger_for_component("influxdb", database=self.database)

    def connect(self) -> "InfluxDBStore":
        if self.client is None:
            self.client = InfluxDBClient(
                host=self.settings.host,
                port=self.settings.port,
                username=self.settings.username,
                password=self.settings.password,
                database=self.database,
                ssl=self.settings.ssl,
                timeout=self.settings.timeout,
            )
        self.logger.debug(f"InfluxDB client ready for {self.settings.host}:{self.settings.port}")
        return self

    def _require_client(self) -> InfluxDBClient:
        if self.client is None:
            raise SinkError(
                "InfluxDB store used before connect()",
                database=self.database,
                error_code=ErrorCode.SINK_CONNECTION,
            )
        return self.client

    def ensure_database(self, name: Optional[str] = None) -> None:
        name = name or self.database
        client = self._require_client()
        try:
            # CREATE DATABASE is a no-op when it already exists
            client.create_database(name)
        except _TRANSPORT_ERRORS as e:
            raise SinkError(
                f"Could not create database {name}: {e}",
                database=name,
                error_code=ErrorCode.SINK_DATABASE,
            ) from e
        self.logger.info(f"Database {name} is ready")

    def write_batch(self, points: Sequence[TimeSeriesPoint]) -> None:
        client = self._require_client()
        try:
            accepted = client.write_points(
                [point.to_influx() for point in points],
                time_precision="s",
                database=self.database,
            )
        except _TRANSPORT_ERRORS as e:
            raise SinkWriteError(
                f"InfluxDB rejected write: {e}",
                database=self.database,
                measurement=points[0].measurement if points else None,
            ) from e

        if not accepted:
            raise SinkWriteError(
                "InfluxDB did not acknowledge write",
                database=self.database,
                measurement=points[0].measurement if points else None,
            )

    def close(self) -> None:
        if self.client is not None:
            self.client.close()


class MemoryStore(TimeSeriesStore):
    """In-process store with InfluxDB's point identity semantics."""

    def __init__(self, database: str = "memory"):
        self.database = database
        self.databases: List[str] = []
        self.points: Dict[tuple, TimeSeriesPoint] = {}
        self.write_calls = 0

    def connect(self) -> "MemoryStore":
        return self

    def ensure_database(self, name: Optional[str] = None) -> None:
        name = name or self.database
        if name not in self.databases:
            self.databases.append(name)

    def write_batch(self, points: Sequence[TimeSeriesPoint]) -> None:
        self.write_calls += 1
        for point in points:
            # same measurement, tags and time: the later point replaces the earlier
            self.points[point.identity()] = point

    def all_points(self) -> List[TimeSeriesPoint]:
        return sorted(self.points.values(), key=lambda p: (p.measurement, p.epoch_seconds))


def create_store(settings: InfluxSettings, dry_run: bool = False) -> TimeSeriesStore:
    """Build and connect the configured store."""
    store = MemoryStore(settings.database) if dry_run else InfluxDBStore(settings)
    return store.connect()
