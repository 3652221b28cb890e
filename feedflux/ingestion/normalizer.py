"""
Feed Normalizer
===============

Maps decoded feed entries onto ``CanonicalEvent``.

Atom ``content`` may carry arbitrary inline markup, and every canonical field
ends up as a tag value in the time-series store, so Atom title, id and text
are HTML-escaped and text newlines become ``<br>``. RSS descriptions are taken
as already display-safe and pass through unchanged.
"""

import html
from typing import List

from .models import AtomEntry, AtomFeed, CanonicalEvent, Feed, RSSFeed, RSSItem
from ..utils.exceptions import DetectionError, ErrorCode
from ..utils.logging import get_logger_for_component


LINE_BREAK = "<br>"

logger = get_logger_for_component("normalizer")


# Numeric quote entities; tag values already stored use these spellings.
QUOTE_ENTITIES = {"'": "&#39;", '"': "&#34;"}


def escape_markup(value: str) -> str:
    """HTML-escape ``value`` with numeric entities for quotes."""
    escaped = html.escape(value, quote=False)
    for quote, entity in QUOTE_ENTITIES.items():
        escaped = escaped.replace(quote, entity)
    return escaped


def escape_text(value: str) -> str:
    """HTML-escape ``value`` and fold its newlines into ``<br>`` markers."""
    escaped = escape_markup(value)
    return escaped.replace("\r\n", "\n").replace("\n", LINE_BREAK)


def normalize_atom_entry(entry: AtomEntry, source: str) -> CanonicalEvent:
    return CanonicalEvent(
        title=escape_markup(entry.title),
        text=escape_text(entry.content),
        id=escape_markup(entry.id),
        url="",
        timestamp=entry.updated,
        measurement=source,
    )


def normalize_rss_item(item: RSSItem, source: str) -> CanonicalEvent:
    return CanonicalEvent(
        title=item.title,
        text=item.description,
        url=item.guid,
        id="",
        timestamp=item.pub_date,
        measurement=source,
    )


def normalize(feed: Feed, source: str) -> List[CanonicalEvent]:
    """Convert every native entry of ``feed`` into a canonical event.

    Args:
        feed: A decoded Atom or RSS feed
        source: Feed source URL, used as the measurement name

    Returns:
        Events in document order
    """
    if isinstance(feed, AtomFeed):
        events = [normalize_atom_entry(entry, source) for entry in feed.entries]
    elif isinstance(feed, RSSFeed):
        events = [normalize_rss_item(item, source) for item in feed.entries]
    else:
        raise DetectionError(
            f"Cannot normalize feed of type {type(feed).__name__}",
            feed_url=source,
            error_code=ErrorCode.FEED_UNKNOWN_DIALECT,
        )

    logger.debug(f"Normalized {len(events)} {feed.dialect.value} entries from {source}")
    return events
