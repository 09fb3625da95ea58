"""High-level operations behind the HTTP endpoints and the CLI."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from . import db
from .cache import AggregationCache
from .config import AppConfig, EmailConfig, parse_feeds_config
from .emailing import send_summary_email
from .errors import MissingQuestionError
from .ledger import LedgerStore, utc_today
from .ranking import DEFAULT_ASK_LIMIT, DEFAULT_NEWS_LIMIT, latest, rank
from .tracking import CounterStore, LinkTracker

logger = logging.getLogger(__name__)

ASK_MODE = "free-rss"


@dataclass
class NewsService:
    """Owns the shared feed cache and click ledger for one process."""

    cache: AggregationCache
    store: CounterStore
    tracker: LinkTracker
    email: EmailConfig = field(default_factory=EmailConfig)
    news_limit: int = DEFAULT_NEWS_LIMIT
    ask_limit: int = DEFAULT_ASK_LIMIT
    today: Callable[[], str] = utc_today
    clock: Callable[[], float] = time.time
    started_at: float = field(default_factory=time.time)

    def list_news(self, limit: Optional[int] = None) -> Dict[str, Any]:
        items = latest(self.cache.get_items(), self.news_limit if limit is None else limit)
        return {
            "date": _iso_now(self.clock),
            "items": [item.to_dict() for item in items],
        }

    def ask(self, question: Any) -> Dict[str, Any]:
        if not question or not isinstance(question, str):
            raise MissingQuestionError()
        results = rank(question, self.cache.get_items(), self.ask_limit)
        logger.info("Answered %r with %d results", question, len(results))
        return {
            "mode": ASK_MODE,
            "query": question,
            "results": [item.to_dict() for item in results],
        }

    def create_link(self, target: Any, base_url: str) -> Dict[str, str]:
        link = self.tracker.create_link(target, base_url)
        return {"id": link.id, "trackLink": link.track_link}

    def redirect(self, tracking_id: str, target: Optional[str]) -> str:
        return self.tracker.dereference(tracking_id, target)

    def stats(self, include_uptime: bool = False) -> Dict[str, Any]:
        ledger = self.store.read()
        if not include_uptime:
            return ledger
        return {
            "uptime_seconds": round(self.clock() - self.started_at, 3),
            "ledger": ledger,
        }

    def send_summary(self) -> Dict[str, Any]:
        summary = self.store.summarize(self.today())
        send_summary_email(
            summary,
            to_address=self.email.to_addr,
            from_address=self.email.from_addr,
            subject=self.email.subject,
        )
        return {"status": "ok", "total": summary.total}


def _iso_now(clock: Callable[[], float]) -> str:
    return (
        datetime.fromtimestamp(clock(), tz=timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def build_store(config: AppConfig) -> CounterStore:
    """Return the SQL ledger when a database is configured, else the JSON file."""
    if config.database.enabled:
        if not config.database.connection_string:
            logger.warning(
                "Database enabled but no connection string provided. Using %s.",
                config.ledger_file,
            )
        else:
            engine = db.init_engine(config.database.connection_string)
            if engine:
                return db.SqlLedgerStore(db.get_session_factory(engine))
    return LedgerStore(config.ledger_file)


def build_service(config: AppConfig) -> NewsService:
    """Wire a service from parsed configuration."""
    feeds = parse_feeds_config(config.feeds_file)
    if not feeds:
        logger.warning("No feeds found in %s; /news will stay empty.", config.feeds_file)

    cache = AggregationCache(
        feeds,
        ttl=timedelta(minutes=config.cache_ttl_minutes),
        concurrency=config.concurrency,
        timeout=config.fetch_timeout,
    )
    store = build_store(config)
    return NewsService(
        cache=cache,
        store=store,
        tracker=LinkTracker(store),
        email=config.email,
        news_limit=config.news_limit,
        ask_limit=config.ask_limit,
    )
