"""Shared data models for quicknews."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

Ledger = Dict[str, Dict[str, int]]


@dataclass
class FeedConfig:
    """Configuration for a single RSS feed."""

    category: str
    title: str
    url: str


@dataclass(frozen=True)
class FeedItem:
    """Normalised feed entry shared by the cache, the ranker and the API."""

    title: str
    link: str
    published: Optional[datetime]
    description: str
    source: str

    @property
    def timestamp_ms(self) -> float:
        """Publication time in epoch milliseconds, 0 when unknown."""
        if self.published is None:
            return 0.0
        return self.published.timestamp() * 1000

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "link": self.link,
            "pubDate": self.published.isoformat() if self.published else None,
            "description": self.description,
            "source": self.source,
        }


@dataclass(frozen=True)
class TrackingLink:
    """A minted tracking id together with its redirect URL."""

    id: str
    target: str
    track_link: str


@dataclass(frozen=True)
class ClickSummary:
    """Click totals for one ledger partition."""

    date: str
    total: int
    unique: int
