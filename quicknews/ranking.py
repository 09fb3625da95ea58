"""Keyword and recency scoring over cached feed items."""

from __future__ import annotations

import logging
from typing import Iterable, List, Sequence, Tuple

from .models import FeedItem

logger = logging.getLogger(__name__)

GENERAL_INTENT_WORDS = ("latest", "today", "top", "headlines", "news")
GENERAL_INTENT_BONUS = 1.0
KEYWORD_WEIGHT = 2.0
# Epoch milliseconds are divided by this so recency only breaks keyword ties.
RECENCY_DIVISOR = 1e12

DEFAULT_ASK_LIMIT = 6
DEFAULT_NEWS_LIMIT = 20


def extract_keywords(query: str) -> List[str]:
    """Lower-case the query and split it on whitespace."""
    return query.strip().lower().split()


def is_general_intent(query: str) -> bool:
    """True when any generic news-seeking word appears anywhere in the query."""
    lowered = query.lower()
    return any(word in lowered for word in GENERAL_INTENT_WORDS)


def haystack(item: FeedItem) -> str:
    return f"{item.title} {item.description} {item.source}".lower()


def score_item(item: FeedItem, keywords: Sequence[str], general: bool) -> float:
    score = GENERAL_INTENT_BONUS if general else 0.0
    text = haystack(item)
    for keyword in keywords:
        if keyword in text:
            score += KEYWORD_WEIGHT
    return score + item.timestamp_ms / RECENCY_DIVISOR


def score_corpus(query: str, corpus: Iterable[FeedItem]) -> List[Tuple[FeedItem, float]]:
    """Return ``(item, score)`` pairs ordered best first.

    Equal scores keep the corpus order, which for cached items is recency order.
    """
    keywords = extract_keywords(query)
    general = is_general_intent(query)
    scored = [(item, score_item(item, keywords, general)) for item in corpus]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    logger.debug(
        "Scored %d items for %r (keywords=%s, general=%s)",
        len(scored),
        query,
        keywords,
        general,
    )
    return scored


def rank(
    query: str, corpus: Iterable[FeedItem], limit: int = DEFAULT_ASK_LIMIT
) -> List[FeedItem]:
    """Return the ``limit`` best matching items for a free-text query."""
    return [item for item, _ in score_corpus(query, corpus)[: max(0, limit)]]


def latest(corpus: Iterable[FeedItem], limit: int = DEFAULT_NEWS_LIMIT) -> List[FeedItem]:
    """Return the first ``limit`` items without scoring."""
    return list(corpus)[: max(0, limit)]
