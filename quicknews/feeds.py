"""Feed fetching and normalisation."""

from __future__ import annotations

import calendar
import logging
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional

import feedparser
import requests
from bs4 import BeautifulSoup

from .models import FeedConfig, FeedItem

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


@dataclass
class FetchResult:
    """Outcome of fetching one source: either items or an error message."""

    feed: FeedConfig
    items: List[FeedItem] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def to_datetime(value: Optional[time.struct_time]) -> Optional[datetime]:
    """Convert feedparser's UTC struct_time values to aware datetimes."""
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(calendar.timegm(value), tz=timezone.utc)
    except (OverflowError, ValueError, TypeError):
        return None


def fetch_feed(feed: FeedConfig, timeout: float = DEFAULT_TIMEOUT) -> FetchResult:
    """Fetch and parse a single feed, reporting failures in the result."""
    logger.info("Fetching feed '%s' (%s)", feed.title, feed.url)
    try:
        response = requests.get(feed.url, timeout=timeout)
        response.raise_for_status()
        content = response.content
    except requests.RequestException as e:
        logger.warning("Failed to fetch feed '%s' (%s): %s", feed.title, feed.url, e)
        return FetchResult(feed=feed, error=str(e))

    try:
        parsed = feedparser.parse(content)
    except Exception as e:  # noqa: BLE001
        logger.warning("Failed to parse feed '%s' (%s): %s", feed.title, feed.url, e)
        return FetchResult(feed=feed, error=str(e))

    entries = getattr(parsed, "entries", None) or []
    if not entries and getattr(parsed, "bozo", False):
        reason = getattr(parsed, "bozo_exception", None) or "malformed document"
        logger.warning(
            "Feed '%s' (%s) is not a valid syndication document: %s",
            feed.title,
            feed.url,
            reason,
        )
        return FetchResult(feed=feed, error=str(reason))

    feed_meta = getattr(parsed, "feed", None) or {}
    source = _get(feed_meta, "title") or feed.url

    items = [_normalise_entry(entry, source) for entry in entries]
    logger.info("Collected %d entries from feed '%s'", len(items), feed.url)
    return FetchResult(feed=feed, items=items)


def fetch_feed_items(
    feed: FeedConfig, timeout: float = DEFAULT_TIMEOUT
) -> List[FeedItem]:
    """Return the items of one feed, or an empty list if it failed."""
    return fetch_feed(feed, timeout=timeout).items


def _normalise_entry(entry: Any, source: str) -> FeedItem:
    raw_content = _raw_content(entry)
    summary = _get(entry, "summary")
    snippet = _strip_html(raw_content) if raw_content else ""
    description = snippet or summary or raw_content or ""

    published = None
    for attr in ("published_parsed", "updated_parsed"):
        published = to_datetime(_get(entry, attr))
        if published:
            break

    return FeedItem(
        title=_get(entry, "title") or "",
        link=_get(entry, "link") or "",
        published=published,
        description=description,
        source=source,
    )


def _raw_content(entry: Any) -> Optional[str]:
    content = _get(entry, "content")
    if content:
        try:
            value = content[0].get("value")
        except (TypeError, KeyError, IndexError, AttributeError):
            value = None
        if value:
            return value
    summary_detail = _get(entry, "summary_detail")
    if summary_detail:
        value = summary_detail.get("value")
        if value:
            return value
    return _get(entry, "summary")


def _get(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _strip_html(raw_value: str) -> str:
    """Return text content extracted from HTML fragments."""
    soup = BeautifulSoup(raw_value, "html.parser")
    text = soup.get_text(separator=" ", strip=True)
    text = re.sub(r"\s+([.,;:!?])", r"\1", text)
    text = re.sub(r"\s{2,}", " ", text)
    return text.strip()
