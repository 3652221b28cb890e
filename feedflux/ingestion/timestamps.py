"""
Timestamp Parsing
=================

Feed dates arrive in a handful of layouts. ``TimestampParser`` tries an
explicit, ordered list of them and returns the first full parse as a UTC
instant, or raises ``TimestampFormatError``.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, Optional, Sequence, Tuple

from ..utils.exceptions import TimestampFormatError


# RFC 822 / RFC 1123 zone names. Anything else is rejected rather than guessed.
ZONE_ABBREVIATIONS: Dict[str, timedelta] = {
    "UT": timedelta(0),
    "UTC": timedelta(0),
    "GMT": timedelta(0),
    "Z": timedelta(0),
    "EST": timedelta(hours=-5),
    "EDT": timedelta(hours=-4),
    "CST": timedelta(hours=-6),
    "CDT": timedelta(hours=-5),
    "MST": timedelta(hours=-7),
    "MDT": timedelta(hours=-6),
    "PST": timedelta(hours=-8),
    "PDT": timedelta(hours=-7),
}


class TimestampLayout:
    """A named ``strptime``/``strftime`` pattern that must yield an aware instant."""

    def __init__(self, name: str, pattern: str):
        self.name = name
        self.pattern = pattern

    def parse(self, raw: str) -> datetime:
        """Parse ``raw`` completely or raise ``ValueError``."""
        parsed = datetime.strptime(raw, self.pattern)
        if parsed.tzinfo is None:
            raise ValueError(f"layout {self.name} produced a naive time")
        return parsed

    def format(self, instant: datetime) -> str:
        return instant.astimezone(timezone.utc).strftime(self.pattern)

    def __repr__(self) -> str:
        return f"TimestampLayout({self.name!r})"


class ZoneAbbreviationLayout(TimestampLayout):
    """Layout whose last token is a zone abbreviation such as ``GMT``.

    ``strptime``'s ``%Z`` only knows a couple of names and returns naive
    values, so the zone is split off and resolved here.
    """

    def __init__(self, name: str, pattern: str, zones: Optional[Dict[str, timedelta]] = None):
        super().__init__(name, pattern)
        self.zones = zones if zones is not None else ZONE_ABBREVIATIONS

    def parse(self, raw: str) -> datetime:
        head, _, zone = raw.rpartition(" ")
        if not head:
            raise ValueError("missing zone abbreviation")
        offset = self.zones.get(zone.upper())
        if offset is None:
            raise ValueError(f"unknown zone abbreviation {zone!r}")
        parsed = datetime.strptime(head, self.pattern)
        return parsed.replace(tzinfo=timezone(offset))

    def format(self, instant: datetime) -> str:
        return instant.astimezone(timezone.utc).strftime(self.pattern) + " GMT"


class FractionalSecondsLayout(TimestampLayout):
    """RFC 3339 layout with a fractional-second part of any length.

    ``%f`` accepts at most six digits; nanosecond fractions are cut to
    microseconds before parsing.
    """

    FRACTION = re.compile(r"\.(\d{1,6})\d*")

    def parse(self, raw: str) -> datetime:
        return super().parse(self.FRACTION.sub(r".\1", raw, count=1))


RFC1123_ZONE = ZoneAbbreviationLayout("RFC1123", "%a, %d %b %Y %H:%M:%S")
RFC1123_NUMERIC = TimestampLayout("RFC1123Z", "%a, %d %b %Y %H:%M:%S %z")
RFC3339 = TimestampLayout("RFC3339", "%Y-%m-%dT%H:%M:%S%z")
RFC3339_FRACTIONAL = FractionalSecondsLayout("RFC3339Nano", "%Y-%m-%dT%H:%M:%S.%f%z")

# Priority order: RSS-style dates first, then RFC 3339.
DEFAULT_LAYOUTS: Tuple[TimestampLayout, ...] = (
    RFC1123_ZONE,
    RFC1123_NUMERIC,
    RFC3339,
    RFC3339_FRACTIONAL,
)


class TimestampParser:
    """Ordered, first-match-wins timestamp parser."""

    def __init__(self, layouts: Sequence[TimestampLayout] = DEFAULT_LAYOUTS):
        self.layouts = self._ordered(layouts)

    @staticmethod
    def _ordered(layouts: Iterable[TimestampLayout]) -> Tuple[TimestampLayout, ...]:
        if isinstance(layouts, (set, frozenset, dict)) or not isinstance(layouts, Sequence):
            raise TypeError("timestamp layouts must be an ordered sequence")
        if not layouts:
            raise ValueError("at least one timestamp layout is required")
        return tuple(layouts)

    def parse(self, raw: str) -> datetime:
        """Return the UTC instant from the first layout that parses ``raw``.

        Raises:
            TimestampFormatError: If no layout matches
        """
        if raw is None:
            raise TimestampFormatError("Missing timestamp", raw_value=None)

        value = raw.strip()
        for layout in self.layouts:
            try:
                parsed = layout.parse(value)
            except ValueError:
                continue
            return parsed.astimezone(timezone.utc)

        raise TimestampFormatError(
            f"Couldn't match timestamp {value!r} to known format",
            raw_value=raw,
            context={"layouts": [layout.name for layout in self.layouts]},
        )


_default_parser = TimestampParser()


def parse_timestamp(raw: str, layouts: Optional[Sequence[TimestampLayout]] = None) -> datetime:
    """Parse ``raw`` with ``layouts`` (default priority list when omitted)."""
    parser = _default_parser if layouts is None else TimestampParser(layouts)
    return parser.parse(raw)
