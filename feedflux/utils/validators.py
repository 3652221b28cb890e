"""
FeedFlux Input Validators
========================

Validation utilities for feed source URLs and configuration values.
"""

import re
from urllib.parse import urlparse

from .exceptions import ValidationError, ErrorCode


class URLValidator:
    """URL validation utilities."""

    # Allowed schemes for feed sources
    ALLOWED_SCHEMES = {'http', 'https'}

    # Common RSS/Atom feed patterns
    FEED_PATTERNS = [
        r'\.rss$', r'\.xml$', r'\.atom$',
        r'/rss/?$', r'/feed/?$', r'/feeds/?$',
        r'/atom/?$', r'/rss\.xml$', r'/feed\.xml$'
    ]

    @classmethod
    def validate_feed_url(cls, url: str) -> str:
        """Validate a feed source URL.

        The URL is returned stripped but otherwise untouched: it doubles as the
        measurement name, so normalizing it would silently move points to a
        different series.

        Args:
            url: URL to validate

        Returns:
            The stripped URL

        Raises:
            ValidationError: If URL is invalid
        """
        if not url or not isinstance(url, str):
            raise ValidationError(
                "URL is required and must be a string",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
                field_name="url"
            )

        url = url.strip()

        try:
            parsed = urlparse(url)
        except ValueError as e:
            raise ValidationError(
                f"Invalid URL format: {str(e)}",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url"
            )

        if parsed.scheme.lower() not in cls.ALLOWED_SCHEMES:
            raise ValidationError(
                f"URL scheme must be {' or '.join(sorted(cls.ALLOWED_SCHEMES))}",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url"
            )

        if not parsed.netloc:
            raise ValidationError(
                "URL must include a hostname",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url"
            )

        return url

    @classmethod
    def is_likely_feed_url(cls, url: str) -> bool:
        """Check if URL is likely an RSS/Atom feed."""
        url_lower = url.lower()
        return any(re.search(pattern, url_lower) for pattern in cls.FEED_PATTERNS)


def validate_url(url: str) -> bool:
    """Check a feed URL without raising.

    Args:
        url: URL to validate

    Returns:
        True if URL is valid
    """
    try:
        URLValidator.validate_feed_url(url)
        return True
    except ValidationError:
        return False
