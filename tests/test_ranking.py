from datetime import datetime, timezone

import pytest

from quicknews import ranking


def test_extract_keywords_lowercases_and_drops_empty_tokens():
    assert ranking.extract_keywords("  India   AI\tPolicy \n") == ["india", "ai", "policy"]
    assert ranking.extract_keywords("   ") == []


@pytest.mark.parametrize(
    "query, expected",
    [
        ("today headlines", True),
        ("LATEST on cricket", True),
        ("what is on top", True),
        ("newsletter signup", True),
        ("India AI", False),
        ("", False),
    ],
)
def test_is_general_intent(query, expected):
    assert ranking.is_general_intent(query) is expected


def test_keyword_hits_score_two_each(make_item):
    published = datetime(2024, 5, 2, 9, 0, tzinfo=timezone.utc)
    item = make_item("India launches new AI policy", published, source="Wire")

    score = ranking.score_item(item, ranking.extract_keywords("India AI"), general=False)

    recency = item.timestamp_ms / 1e12
    assert recency > 0
    assert score == pytest.approx(4 + recency)


def test_keyword_counted_once_per_query_token(make_item):
    item = make_item("AI AI AI", description="more ai", source="ai weekly")

    assert ranking.score_item(item, ["ai"], general=False) == 2


def test_matching_item_outranks_non_matching(sample_items):
    results = ranking.rank("India AI", sample_items, limit=6)

    assert results[0].title == "India launches new AI policy"
    matched = ranking.score_item(results[0], ["india", "ai"], False)
    for other in results[1:]:
        assert matched > ranking.score_item(other, ["india", "ai"], False)


def test_general_intent_adds_baseline(sample_items):
    scored = ranking.score_corpus("today headlines", sample_items)

    for item, score in scored:
        assert score == pytest.approx(1 + item.timestamp_ms / 1e12)


def test_query_without_signal_orders_by_recency(sample_items):
    results = ranking.rank("zzz", sample_items, limit=6)

    assert [item.title for item in results] == [
        "Monsoon arrives early",
        "India launches new AI policy",
        "Cricket final preview",
    ]


def test_rank_is_stable_on_ties(make_item):
    corpus = [make_item("one"), make_item("two"), make_item("three")]

    results = ranking.rank("cricket", corpus, limit=6)

    assert [item.title for item in results] == ["one", "two", "three"]


def test_rank_is_deterministic(sample_items):
    first = ranking.rank("monsoon kerala news", sample_items)
    second = ranking.rank("monsoon kerala news", sample_items)

    assert first == second


def test_rank_truncates_to_limit(make_item):
    corpus = [make_item(f"story {i}") for i in range(10)]

    assert len(ranking.rank("story", corpus, limit=6)) == 6
    assert ranking.rank("story", corpus, limit=0) == []


def test_latest_truncates_without_scoring(sample_items):
    assert ranking.latest(sample_items, limit=2) == sample_items[:2]
