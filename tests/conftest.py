from datetime import datetime, timezone

import pytest

from quicknews.ledger import LedgerStore
from quicknews.models import FeedItem


class FakeClock:
    """Manually advanced replacement for ``time.time``."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _make_item(title, published=None, description="", source="Feed", link=None):
    return FeedItem(
        title=title,
        link=link or f"https://example.com/{title.lower().replace(' ', '-')}",
        published=published,
        description=description,
        source=source,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ledger_store(tmp_path):
    return LedgerStore(tmp_path / "data.json")


@pytest.fixture
def sample_items():
    return [
        _make_item(
            "India launches new AI policy",
            published=datetime(2024, 5, 2, 9, 0, tzinfo=timezone.utc),
            description="The government outlined rules.",
            source="The Hindu",
        ),
        _make_item(
            "Monsoon arrives early",
            published=datetime(2024, 5, 3, 9, 0, tzinfo=timezone.utc),
            description="Rainfall across Kerala.",
            source="BBC News",
        ),
        _make_item(
            "Cricket final preview",
            published=datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc),
            description="Teams prepare.",
            source="NDTV",
        ),
    ]


@pytest.fixture
def make_item():
    return _make_item
