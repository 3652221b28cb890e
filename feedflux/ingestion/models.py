"""
Feed Data Models
================

Decoded feed variants, their native entries, and the canonical event shape the
rest of the pipeline consumes.

A decoded feed is always exactly one of ``AtomFeed`` or ``RSSFeed``; callers
branch on ``feed.dialect`` (or ``isinstance``) and never see a half-filled
union of both.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class FeedDialect(str, Enum):
    """Supported feed dialects."""
    ATOM = "Atom"   # free-text, entry-based
    RSS = "RSS"     # structured-description, item-based


@dataclass(frozen=True)
class AtomEntry:
    """One ``<entry>`` of an Atom document."""

    title: str
    content: str
    link: str
    updated: datetime
    id: str


@dataclass(frozen=True)
class RSSItem:
    """One ``<item>`` of an RSS channel."""

    title: str
    description: str
    link: str
    guid: str
    pub_date: datetime
    updated: Optional[str] = None


@dataclass
class Feed:
    """Base for decoded feeds."""

    dialect = None  # set by subclasses

    @property
    def entries(self) -> list:
        raise NotImplementedError


@dataclass
class AtomFeed(Feed):
    """Decoded Atom document."""

    version: Optional[str] = None
    title: str = ""
    updated: str = ""
    authors: List[str] = field(default_factory=list)
    events: List[AtomEntry] = field(default_factory=list)

    dialect = FeedDialect.ATOM

    @property
    def entries(self) -> List[AtomEntry]:
        return self.events


@dataclass
class RSSFeed(Feed):
    """Decoded RSS document (channel metadata flattened in)."""

    version: Optional[str] = None
    title: str = ""
    description: str = ""
    link: str = ""
    language: str = ""
    pub_date: str = ""
    last_build_date: str = ""
    items: List[RSSItem] = field(default_factory=list)

    dialect = FeedDialect.RSS

    @property
    def entries(self) -> List[RSSItem]:
        return self.items


class CanonicalEvent(BaseModel):
    """Dialect-independent representation of one feed entry."""
    title: str = Field(default="", description="Entry title")
    text: str = Field(default="", description="Entry body")
    url: str = Field(default="", description="Entry URL (RSS guid)")
    id: str = Field(default="", description="Entry identifier (Atom id)")
    timestamp: datetime = Field(..., description="Entry instant, timezone-aware")
    measurement: str = Field(..., min_length=1, description="Originating feed source")

    def __str__(self) -> str:
        return f"CanonicalEvent({self.title[:50]}@{self.timestamp.isoformat()})"
