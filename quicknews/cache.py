"""TTL-gated cache of items merged from every configured feed."""

from __future__ import annotations

import concurrent.futures
import logging
import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Iterable, List, Sequence, Tuple

from .feeds import DEFAULT_TIMEOUT, FetchResult, fetch_feed
from .models import FeedConfig, FeedItem

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(minutes=8)

Fetcher = Callable[..., FetchResult]


@dataclass(frozen=True)
class CacheSnapshot:
    """Immutable view of the cache at one point in time."""

    updated_at: float
    items: Tuple[FeedItem, ...]


def sort_by_recency(items: Iterable[FeedItem]) -> List[FeedItem]:
    """Sort newest first; undated items go last, ties keep their input order."""
    return sorted(items, key=lambda item: item.timestamp_ms, reverse=True)


class AggregationCache:
    """Merged, recency-sorted items from all feeds, refreshed at most once per TTL."""

    def __init__(
        self,
        feeds: Sequence[FeedConfig],
        ttl: timedelta = DEFAULT_TTL,
        fetcher: Fetcher = fetch_feed,
        concurrency: int = 10,
        timeout: float = DEFAULT_TIMEOUT,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.feeds = list(feeds)
        self.ttl = ttl
        self.concurrency = max(1, concurrency)
        self.timeout = timeout
        self._fetcher = fetcher
        self._clock = clock
        self._snapshot = CacheSnapshot(updated_at=0.0, items=())
        self._publish_lock = threading.Lock()

    @property
    def snapshot(self) -> CacheSnapshot:
        return self._snapshot

    def is_stale(self, now: float | None = None) -> bool:
        snapshot = self._snapshot
        if not snapshot.items:
            return True
        if now is None:
            now = self._clock()
        return now - snapshot.updated_at >= self.ttl.total_seconds()

    def get_items(self) -> Tuple[FeedItem, ...]:
        """Return the cached items, refreshing first when stale."""
        if self.is_stale():
            return self.refresh().items
        return self._snapshot.items

    def refresh(self) -> CacheSnapshot:
        """Fetch every feed concurrently and replace the snapshot."""
        logger.info("Refreshing %d feeds", len(self.feeds))
        results = self._gather()

        merged: List[FeedItem] = []
        failures = 0
        for result in results:
            if result.ok:
                merged.extend(result.items)
            else:
                failures += 1

        items = tuple(sort_by_recency(merged))
        with self._publish_lock:
            # Never move updated_at backwards if a slower concurrent refresh finishes late.
            completed_at = max(self._clock(), self._snapshot.updated_at)
            self._snapshot = CacheSnapshot(updated_at=completed_at, items=items)
            snapshot = self._snapshot

        logger.info(
            "Cache refreshed with %d items (%d of %d feeds failed)",
            len(items),
            failures,
            len(self.feeds),
        )
        return snapshot

    def _gather(self) -> List[FetchResult]:
        if not self.feeds:
            return []

        def run(feed: FeedConfig) -> FetchResult:
            try:
                return self._fetcher(feed, timeout=self.timeout)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Unexpected error fetching feed %s: %s", feed.url, exc)
                return FetchResult(feed=feed, error=str(exc))

        workers = min(self.concurrency, len(self.feeds))
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(run, feed) for feed in self.feeds]
            return [future.result() for future in futures]
