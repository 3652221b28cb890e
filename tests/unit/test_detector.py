"""
Unit Tests for Schema Detection
===============================

Tests for root-element classification, structural decoding of both dialects,
and rejection of documents that match neither.
"""

import pytest
from datetime import datetime, timezone

from feedflux.ingestion.detector import SchemaDetector, decode_feed, peek_root_element
from feedflux.ingestion.models import AtomFeed, FeedDialect, RSSFeed
from feedflux.utils.exceptions import DetectionError, ErrorCode, TimestampFormatError

from conftest import MALFORMED_RSS_FEED, SAMPLE_ATOM_FEED, SAMPLE_RSS_FEED, atom_document


UTC = timezone.utc


def rss_with_items(count: int) -> bytes:
    items = "".join(
        f"<item><title>t{i}</title><guid>g{i}</guid>"
        f"<pubDate>Mon, 01 Jan 2024 00:00:{i:02d} GMT</pubDate></item>"
        for i in range(count)
    )
    return f'<rss version="2.0"><channel><title>c</title>{items}</channel></rss>'.encode()


def atom_with_entries(count: int) -> bytes:
    return atom_document(
        *[
            f"<entry><id>{i}</id><updated>2024-01-01T00:00:{i:02d}Z</updated></entry>"
            for i in range(count)
        ]
    )


class TestRootPeek:
    """Test cases for peek_root_element."""

    def test_namespaced_atom_root(self):
        assert peek_root_element(SAMPLE_ATOM_FEED) == "feed"

    def test_rss_root(self):
        assert peek_root_element(SAMPLE_RSS_FEED) == "rss"

    def test_peek_ignores_errors_after_root(self):
        """Only the first start tag is read, so later breakage is not seen."""
        assert peek_root_element(MALFORMED_RSS_FEED) == "rss"

    @pytest.mark.parametrize("raw", [b"", b"not xml at all", b"<?xml version='1.0'?>"])
    def test_no_root(self, raw):
        with pytest.raises(DetectionError) as exc_info:
            peek_root_element(raw)

        assert exc_info.value.error_code == ErrorCode.FEED_PARSE_ERROR


class TestSchemaDetector:
    """Test cases for SchemaDetector."""

    def setup_method(self):
        self.detector = SchemaDetector()

    def test_detect_classifies_by_root(self):
        assert self.detector.detect(SAMPLE_ATOM_FEED) == FeedDialect.ATOM
        assert self.detector.detect(SAMPLE_RSS_FEED) == FeedDialect.RSS

    def test_decode_atom(self):
        feed = self.detector.decode(SAMPLE_ATOM_FEED, feed_url="https://example.com/atom.xml")

        assert isinstance(feed, AtomFeed)
        assert not isinstance(feed, RSSFeed)
        assert feed.dialect == FeedDialect.ATOM
        assert feed.title == "Test Atom Feed"
        assert feed.updated == "2024-09-07T00:00:01Z"
        assert feed.authors == ["Atom Author"]
        assert len(feed.entries) == 2

        first, second = feed.entries
        assert first.title == "Atom Test Article"
        assert first.id == "tag:example.com,2024:1"
        assert first.link == "http://example.com/atom-article"
        assert first.content == "<p>Full content</p>\nsecond line"
        assert first.updated == datetime(2024, 9, 5, 12, 0, tzinfo=UTC)

        assert second.title == "Second & Last"
        assert second.link == ""
        assert second.updated == datetime(2024, 9, 6, 6, 30, tzinfo=UTC)

    def test_decode_rss(self):
        feed = self.detector.decode(SAMPLE_RSS_FEED)

        assert isinstance(feed, RSSFeed)
        assert feed.dialect == FeedDialect.RSS
        assert feed.version == "2.0"
        assert feed.title == "Test RSS Feed"
        assert feed.language == "en-us"
        assert feed.pub_date == "Sat, 07 Sep 2024 00:00:01 GMT"
        assert feed.last_build_date == "Sat, 07 Sep 2024 00:00:02 GMT"
        assert len(feed.entries) == 3

        first = feed.entries[0]
        assert first.guid == "article-1-guid"
        assert first.link == "http://example.com/article1"
        assert first.description == "This is a test article summary with <strong>HTML</strong>"
        assert first.pub_date == datetime(2024, 9, 5, 12, 0, tzinfo=UTC)
        assert first.updated is None

        assert feed.entries[1].pub_date == datetime(2024, 9, 4, 15, 30, tzinfo=UTC)
        assert feed.entries[2].pub_date == datetime(2024, 9, 3, 13, 0, tzinfo=UTC)
        assert feed.entries[2].updated == "2024-09-03T14:00:00Z"

    @pytest.mark.parametrize("count", [0, 1, 7])
    def test_atom_entry_count_preserved(self, count):
        feed = self.detector.decode(atom_with_entries(count))

        assert feed.dialect == FeedDialect.ATOM
        assert len(feed.entries) == count

    @pytest.mark.parametrize("count", [0, 1, 7])
    def test_rss_item_count_preserved(self, count):
        feed = self.detector.decode(rss_with_items(count))

        assert feed.dialect == FeedDialect.RSS
        assert len(feed.entries) == count

    def test_rss_is_never_read_as_atom(self):
        """Shared tag names do not leak an RSS document into the Atom decoder."""
        feed = self.detector.decode(SAMPLE_RSS_FEED)
        assert not isinstance(feed, AtomFeed)

    def test_text_input_accepted(self):
        feed = self.detector.decode(SAMPLE_RSS_FEED.decode("utf-8"))
        assert len(feed.entries) == 3

    def test_unknown_root(self):
        with pytest.raises(DetectionError) as exc_info:
            self.detector.decode(b"<html><body><title>Not a feed</title></body></html>")

        assert exc_info.value.error_code == ErrorCode.FEED_UNKNOWN_DIALECT
        assert exc_info.value.context["root_element"] == "html"
        assert exc_info.value.recoverable

    def test_malformed_document(self):
        with pytest.raises(DetectionError) as exc_info:
            self.detector.decode(MALFORMED_RSS_FEED, feed_url="https://example.com/broken.xml")

        assert exc_info.value.error_code == ErrorCode.FEED_PARSE_ERROR
        assert exc_info.value.context["feed_url"] == "https://example.com/broken.xml"

    def test_rss_without_channel(self):
        with pytest.raises(DetectionError) as exc_info:
            self.detector.decode(b'<rss version="2.0"></rss>')

        assert exc_info.value.error_code == ErrorCode.FEED_MISSING_STRUCTURE

    def test_atom_entry_missing_updated(self):
        with pytest.raises(DetectionError) as exc_info:
            self.detector.decode(atom_document("<entry><id>1</id><title>x</title></entry>"))

        assert exc_info.value.error_code == ErrorCode.FEED_MISSING_STRUCTURE
        assert exc_info.value.context["field"] == "updated"

    def test_rss_item_missing_pub_date(self):
        raw = b'<rss><channel><item><title>x</title><guid>g</guid></item></channel></rss>'

        with pytest.raises(DetectionError) as exc_info:
            self.detector.decode(raw)

        assert exc_info.value.context["field"] == "pubDate"

    def test_unparseable_timestamp_fails_decode(self):
        """The timestamp failure is chained under the detection failure."""
        raw = atom_document("<entry><id>1</id><updated>last tuesday</updated></entry>")

        with pytest.raises(DetectionError) as exc_info:
            self.detector.decode(raw)

        assert isinstance(exc_info.value.__cause__, TimestampFormatError)
        assert exc_info.value.context["raw_value"] == "last tuesday"

    def test_nanosecond_updated_decodes(self):
        raw = atom_document("<entry><id>1</id><updated>2024-01-01T00:00:00.123456789Z</updated></entry>")

        [entry] = self.detector.decode(raw).entries

        assert entry.updated == datetime(2024, 1, 1, 0, 0, 0, 123456, tzinfo=UTC)

    def test_decode_feed_helper(self):
        assert decode_feed(SAMPLE_ATOM_FEED).dialect == FeedDialect.ATOM
