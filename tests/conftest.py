"""
PyTest Configuration and Fixtures
=================================

Shared fixtures and sample documents for FeedFlux tests.
"""

import pytest
import os
import sys
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before any imports
os.environ["FEEDFLUX_DEBUG"] = "true"
os.environ["FEEDFLUX_LOGGING__FILE_PATH"] = ""
os.environ["FEEDFLUX_LOGGING__CONSOLE_LOGGING"] = "false"


ATOM_SOURCE = "https://example.com/atom.xml"
RSS_SOURCE = "https://example.com/rss.xml"
BROKEN_SOURCE = "https://example.com/broken.xml"


SAMPLE_ATOM_FEED = b'''<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
    <title>Test Atom Feed</title>
    <link href="http://example.com"/>
    <id>http://example.com/feed</id>
    <updated>2024-09-07T00:00:01Z</updated>
    <author>
        <name>Atom Author</name>
    </author>
    <entry>
        <title>Atom Test Article</title>
        <link rel="self" href="http://example.com/atom-article/self"/>
        <link href="http://example.com/atom-article"/>
        <id>tag:example.com,2024:1</id>
        <updated>2024-09-05T12:00:00Z</updated>
        <content type="html">&lt;p&gt;Full content&lt;/p&gt;
second line</content>
    </entry>
    <entry>
        <title>Second &amp; Last</title>
        <id>tag:example.com,2024:2</id>
        <updated>2024-09-06T08:30:00+02:00</updated>
        <content>plain body</content>
    </entry>
</feed>'''


SAMPLE_RSS_FEED = b'''<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
    <channel>
        <title>Test RSS Feed</title>
        <link>http://example.com</link>
        <description>Test feed for unit testing</description>
        <language>en-us</language>
        <pubDate>Sat, 07 Sep 2024 00:00:01 GMT</pubDate>
        <lastBuildDate>Sat, 07 Sep 2024 00:00:02 GMT</lastBuildDate>
        <item>
            <title>Test Article 1</title>
            <link>http://example.com/article1</link>
            <description>This is a test article summary with &lt;strong&gt;HTML&lt;/strong&gt;</description>
            <pubDate>Thu, 05 Sep 2024 12:00:00 GMT</pubDate>
            <guid>article-1-guid</guid>
        </item>
        <item>
            <title>Test Article 2</title>
            <link>http://example.com/article2</link>
            <description>Another test article with some content</description>
            <pubDate>Wed, 04 Sep 2024 15:30:00 +0000</pubDate>
            <guid>article-2-guid</guid>
        </item>
        <item>
            <title>Test Article 3</title>
            <link>http://example.com/article3</link>
            <description>Third</description>
            <pubDate>Tue, 03 Sep 2024 09:00:00 EDT</pubDate>
            <guid>article-3-guid</guid>
            <updated>2024-09-03T14:00:00Z</updated>
        </item>
    </channel>
</rss>'''


MALFORMED_RSS_FEED = b'''<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
    <channel>
        <title>Malformed Feed</title>
        <link>http://example.com</link>
        <description>Feed with malformed XML
        <item>
            <title>Broken Article</title>
            <link>http://example.com/broken
            <description>Missing closing tags
        </item>
    </channel>
</rss>'''


def atom_document(*entries: str) -> bytes:
    """Wrap raw ``<entry>`` snippets in an Atom feed element."""
    body = "".join(entries)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<feed xmlns="http://www.w3.org/2005/Atom"><title>t</title>{body}</feed>'
    ).encode("utf-8")


class FakeFetcher:
    """Stands in for FeedFetcher; maps URLs to bytes or to exceptions."""

    def __init__(self, responses):
        self.responses = responses
        self.calls = []
        self.closed = False

    def fetch(self, feed_url):
        self.calls.append(feed_url)
        response = self.responses[feed_url]
        if isinstance(response, Exception):
            raise response
        return response

    def close(self):
        self.closed = True


@pytest.fixture
def settings():
    """Settings for three sources with a short sleep interval."""
    from feedflux.config.settings import FeedFluxSettings

    return FeedFluxSettings(
        feeds=[ATOM_SOURCE, BROKEN_SOURCE, RSS_SOURCE],
        collector={"sleep_interval_ms": 1500},
    )


@pytest.fixture
def memory_store():
    """Connected in-memory store."""
    from feedflux.storage.stores import MemoryStore

    store = MemoryStore("rss").connect()
    store.ensure_database()
    return store


@pytest.fixture
def fake_fetcher():
    """Fetcher serving one good Atom, one malformed and one good RSS document."""
    return FakeFetcher(
        {
            ATOM_SOURCE: SAMPLE_ATOM_FEED,
            BROKEN_SOURCE: MALFORMED_RSS_FEED,
            RSS_SOURCE: SAMPLE_RSS_FEED,
        }
    )


@pytest.fixture(autouse=True)
def reset_global_settings():
    """Keep the settings singleton from leaking between tests."""
    from feedflux.config import settings as settings_module

    settings_module._settings = None
    yield
    settings_module._settings = None
