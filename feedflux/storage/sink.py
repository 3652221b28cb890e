"""
Event Sink
==========

Turns canonical events into time-series points and writes them one point per
batch.

Point identity is measurement + tags + time, so re-ingesting an entry that is
still in the feed on the next cycle overwrites the earlier point instead of
adding a second one. That upsert is the only deduplication in the system.

Writes are at-most-once: a failed write raises ``SinkWriteError`` and is never
retried. What happens next is the caller's ``WriteFailurePolicy``.
"""

from .stores import TimeSeriesPoint, TimeSeriesStore
from ..ingestion.models import CanonicalEvent
from ..utils.exceptions import SinkWriteError
from ..utils.logging import get_logger_for_component


TAG_KEYS = ("text", "title", "url", "id")


def build_point(event: CanonicalEvent, text_as_field: bool = False) -> TimeSeriesPoint:
    """Build the single point that represents ``event``.

    Args:
        event: Normalized entry
        text_as_field: Move ``text`` out of the tag set. This changes point
            identity: entries differing only in text then collapse together.

    Returns:
        Point with second-precision time
    """
    timestamp = int(event.timestamp.timestamp())
    tags = {
        "text": event.text or "",
        "title": event.title or "",
        "url": event.url or "",
        "id": event.id or "",
    }
    fields = {"timestamp": timestamp}

    if text_as_field:
        fields["text"] = tags.pop("text")

    return TimeSeriesPoint(
        measurement=event.measurement,
        time=event.timestamp.replace(microsecond=0),
        tags=tags,
        fields=fields,
    )


class EventSink:
    """Writes canonical events to a time-series store."""

    def __init__(self, store: TimeSeriesStore, text_as_field: bool = False):
        self.store = store
        self.text_as_field = text_as_field
        self.logger = get_logger_for_component("sink", database=store.database)
        self.points_written = 0

    def write(self, event: CanonicalEvent) -> TimeSeriesPoint:
        """Write one event as a single-point batch.

        Returns:
            The point that was written

        Raises:
            SinkWriteError: If the store rejects the write
        """
        point = build_point(event, text_as_field=self.text_as_field)
        try:
            self.store.write_batch([point])
        except SinkWriteError:
            raise
        except Exception as e:
            raise SinkWriteError(
                f"Unexpected store failure: {e}",
                database=self.store.database,
                measurement=point.measurement,
            ) from e

        self.points_written += 1
        self.logger.debug(f"Wrote point {point.tags.get('id') or point.tags.get('url')} to {point.measurement}")
        return point

