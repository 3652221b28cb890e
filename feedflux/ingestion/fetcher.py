"""
Feed Fetcher
============

Blocking HTTP retrieval of feed documents. Every request carries a timeout so
one unresponsive source cannot stall the collector's cycle indefinitely.
"""

import time
from typing import Dict, Optional

import requests

from ..config.settings import FeedFluxSettings, get_settings
from ..utils.exceptions import ErrorCode, FeedFetchError
from ..utils.logging import get_logger_for_component


ACCEPT_HEADER = "application/atom+xml, application/rss+xml, application/xml, text/xml"

_STATUS_CODES: Dict[int, ErrorCode] = {
    401: ErrorCode.FEED_ACCESS_DENIED,
    403: ErrorCode.FEED_ACCESS_DENIED,
    404: ErrorCode.FEED_NOT_FOUND,
    410: ErrorCode.FEED_NOT_FOUND,
}


class FeedFetcher:
    """Fetches raw feed bytes over a shared ``requests`` session."""

    def __init__(
        self,
        settings: Optional[FeedFluxSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        self.settings = settings or get_settings()
        self.timeout = self.settings.collector.request_timeout
        self.logger = get_logger_for_component("fetcher")

        self.session = session or requests.Session()
        user_agent = (
            self.settings.collector.user_agent
            or f"{self.settings.app_name}/{self.settings.version}"
        )
        self.session.headers.update({"User-Agent": user_agent, "Accept": ACCEPT_HEADER})

    def fetch(self, feed_url: str) -> bytes:
        """Fetch one feed document.

        Args:
            feed_url: Feed source URL

        Returns:
            Response body bytes

        Raises:
            FeedFetchError: On transport failure, timeout, or non-200 status
        """
        self.logger.info(f"getting data from feed {feed_url}")
        start_time = time.time()

        try:
            response = self.session.get(feed_url, timeout=self.timeout)
        except requests.Timeout as e:
            raise FeedFetchError(
                f"Request timeout after {self.timeout}s",
                feed_url=feed_url,
                error_code=ErrorCode.FEED_FETCH_TIMEOUT,
            ) from e
        except requests.RequestException as e:
            raise FeedFetchError(
                f"Failed to fetch feed: {e}",
                feed_url=feed_url,
                error_code=ErrorCode.FEED_NETWORK_ERROR,
            ) from e

        if response.status_code != requests.codes.ok:
            raise FeedFetchError(
                f"Status error: {response.status_code}",
                feed_url=feed_url,
                error_code=_STATUS_CODES.get(response.status_code, ErrorCode.FEED_HTTP_STATUS),
                context={"status_code": response.status_code},
            )

        content = response.content
        self.logger.debug(
            f"Feed fetched in {time.time() - start_time:.2f}s, size: {len(content)} bytes"
        )
        return content

    def close(self) -> None:
        self.session.close()
