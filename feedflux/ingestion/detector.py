"""
Feed Schema Detection
=====================

Classifies raw feed bytes as Atom or RSS and decodes them into the matching
``Feed`` variant.

Atom and RSS share element names (``title``, ``link``), so a best-effort field
match can mistake one for the other. Detection therefore peeks the declared
root element first and only then runs the structural decode for that dialect.
"""

import xml.etree.ElementTree as ET
from typing import Callable, Dict, List, Optional

from .models import AtomEntry, AtomFeed, Feed, FeedDialect, RSSFeed, RSSItem
from .timestamps import TimestampParser
from ..utils.exceptions import DetectionError, ErrorCode, TimestampFormatError
from ..utils.logging import get_logger_for_component


ROOT_ELEMENTS: Dict[str, FeedDialect] = {
    "feed": FeedDialect.ATOM,
    "rss": FeedDialect.RSS,
}


def local_name(tag: str) -> str:
    """Strip an ``{namespace}`` prefix from an element tag."""
    if isinstance(tag, str) and tag.startswith("{"):
        return tag.rsplit("}", 1)[1]
    return tag


def _children(element: ET.Element, name: str) -> List[ET.Element]:
    return [child for child in element if local_name(child.tag) == name]


def _child(element: ET.Element, name: str) -> Optional[ET.Element]:
    for child in element:
        if local_name(child.tag) == name:
            return child
    return None


def _text(element: ET.Element, name: str) -> str:
    """Full text content of the first ``name`` child, empty when absent."""
    child = _child(element, name)
    if child is None:
        return ""
    return "".join(child.itertext())


def peek_root_element(raw: bytes) -> str:
    """Return the local name of the document's root element.

    Only enough of the document to see the first start tag is consumed; the
    rest is never built into a tree.

    Raises:
        DetectionError: If no start tag can be read
    """
    parser = ET.XMLPullParser(events=("start",))
    chunk_size = 4096
    try:
        for offset in range(0, len(raw), chunk_size):
            parser.feed(raw[offset:offset + chunk_size])
            for _event, element in parser.read_events():
                return local_name(element.tag)
        parser.close()
    except ET.ParseError as e:
        raise DetectionError(
            f"Malformed XML: {e}", error_code=ErrorCode.FEED_PARSE_ERROR
        ) from e

    raise DetectionError(
        "Document has no root element", error_code=ErrorCode.FEED_PARSE_ERROR
    )


class SchemaDetector:
    """Decodes raw bytes into an ``AtomFeed`` or ``RSSFeed``."""

    def __init__(self, timestamp_parser: Optional[TimestampParser] = None):
        self.timestamp_parser = timestamp_parser or TimestampParser()
        self.logger = get_logger_for_component("detector")
        self._decoders: Dict[FeedDialect, Callable[[ET.Element], Feed]] = {
            FeedDialect.ATOM: self._decode_atom,
            FeedDialect.RSS: self._decode_rss,
        }

    def detect(self, raw: bytes) -> FeedDialect:
        """Classify ``raw`` by its root element without decoding it."""
        root_name = peek_root_element(raw)
        dialect = ROOT_ELEMENTS.get(root_name)
        if dialect is None:
            raise DetectionError(
                f"Unsupported root element <{root_name}>",
                context={"root_element": root_name},
            )
        return dialect

    def decode(self, raw: bytes, feed_url: Optional[str] = None) -> Feed:
        """Classify and decode a feed document.

        Args:
            raw: Document bytes as fetched
            feed_url: Source URL, used for log and error context only

        Returns:
            Exactly one feed variant

        Raises:
            DetectionError: If the bytes match neither dialect's structure
        """
        if isinstance(raw, str):
            raw = raw.encode("utf-8")

        try:
            dialect = self.detect(raw)
            try:
                root = ET.fromstring(raw)
            except ET.ParseError as e:
                raise DetectionError(
                    f"Malformed {dialect.value} document: {e}",
                    error_code=ErrorCode.FEED_PARSE_ERROR,
                ) from e
            feed = self._decoders[dialect](root)
        except DetectionError as e:
            if feed_url:
                e.context.setdefault("feed_url", feed_url)
            raise

        self.logger.info(
            f"{len(feed.entries)} items returned from {feed.dialect.value} ({feed_url or 'raw'})"
        )
        return feed

    # Dialect decoders

    def _timestamp(self, raw: str, dialect: FeedDialect, field_name: str):
        try:
            return self.timestamp_parser.parse(raw)
        except TimestampFormatError as e:
            raise DetectionError(
                f"{dialect.value} {field_name} {raw!r} is not a known timestamp",
                error_code=ErrorCode.FEED_MISSING_STRUCTURE,
                context={"field": field_name, "raw_value": raw},
            ) from e

    @staticmethod
    def _require(element: ET.Element, name: str, dialect: FeedDialect, position: int) -> str:
        if _child(element, name) is None:
            raise DetectionError(
                f"{dialect.value} entry {position} is missing <{name}>",
                error_code=ErrorCode.FEED_MISSING_STRUCTURE,
                context={"field": name, "position": position},
            )
        return _text(element, name).strip()

    @staticmethod
    def _atom_link(entry: ET.Element) -> str:
        links = _children(entry, "link")
        for link in links:
            if link.get("rel", "alternate") == "alternate" and link.get("href"):
                return link.get("href").strip()
        for link in links:
            if link.get("href"):
                return link.get("href").strip()
        return _text(entry, "link").strip()

    def _decode_atom(self, root: ET.Element) -> AtomFeed:
        entries = []
        for position, entry in enumerate(_children(root, "entry")):
            entry_id = self._require(entry, "id", FeedDialect.ATOM, position)
            updated = self._require(entry, "updated", FeedDialect.ATOM, position)
            entries.append(
                AtomEntry(
                    title=_text(entry, "title"),
                    content=_text(entry, "content"),
                    link=self._atom_link(entry),
                    updated=self._timestamp(updated, FeedDialect.ATOM, "updated"),
                    id=entry_id,
                )
            )

        authors = [
            _text(author, "name").strip() for author in _children(root, "author")
        ]
        return AtomFeed(
            version=root.get("version"),
            title=_text(root, "title").strip(),
            updated=_text(root, "updated").strip(),
            authors=[name for name in authors if name],
            events=entries,
        )

    def _decode_rss(self, root: ET.Element) -> RSSFeed:
        channel = _child(root, "channel")
        if channel is None:
            raise DetectionError(
                "RSS document has no <channel>",
                error_code=ErrorCode.FEED_MISSING_STRUCTURE,
            )

        items = []
        for position, item in enumerate(_children(channel, "item")):
            pub_date = self._require(item, "pubDate", FeedDialect.RSS, position)
            updated = _child(item, "updated")
            items.append(
                RSSItem(
                    title=_text(item, "title"),
                    description=_text(item, "description"),
                    link=_text(item, "link").strip(),
                    guid=_text(item, "guid").strip(),
                    pub_date=self._timestamp(pub_date, FeedDialect.RSS, "pubDate"),
                    updated=_text(item, "updated").strip() if updated is not None else None,
                )
            )

        return RSSFeed(
            version=root.get("version"),
            title=_text(channel, "title").strip(),
            description=_text(channel, "description").strip(),
            link=_text(channel, "link").strip(),
            language=_text(channel, "language").strip(),
            pub_date=_text(channel, "pubDate").strip(),
            last_build_date=_text(channel, "lastBuildDate").strip(),
            items=items,
        )


def decode_feed(raw: bytes, feed_url: Optional[str] = None) -> Feed:
    """Quick function to decode one document with default layouts."""
    return SchemaDetector().decode(raw, feed_url=feed_url)
